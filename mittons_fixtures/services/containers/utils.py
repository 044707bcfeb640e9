"""Utility functions for fixture lifecycle operations."""

import os
import posixpath
import shlex
import shutil
import tempfile
from contextlib import contextmanager
from datetime import timedelta
from typing import IO, TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence, Union

if TYPE_CHECKING:
    from .directives import HealthCheck

NANOSECONDS_PER_SECOND = 1_000_000_000

FileContent = Union[str, bytes, IO[bytes]]


def parse_command(command: Union[str, Sequence[str], None]) -> List[str]:
    """Convert a command into an argv list.

    Args:
        command: A shell-style string, an argv sequence, or None

    Returns:
        List of arguments, empty for a missing or blank command
    """
    if command is None:
        return []
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command if part != ""]


def ceil_seconds(duration: Optional[timedelta]) -> Optional[int]:
    """Round a duration up to whole seconds.

    250ms becomes 1s, 1000ms stays 1s and 7500ms becomes 8s.
    """
    if duration is None:
        return None
    micros = duration // timedelta(microseconds=1)
    # ceiling division on integers
    return -(-micros // 1_000_000)


def build_health_check_config(health_check: Optional["HealthCheck"]) -> Optional[Dict[str, Any]]:
    """Map a health check directive to the runtime's Healthcheck configuration.

    Args:
        health_check: The directive, or None when the service declares none

    Returns:
        None to keep the image's own health check, ``{"Test": ["NONE"]}`` when
        disabled, otherwise only the fields the directive sets
    """
    if health_check is None:
        return None
    if health_check.disabled:
        return {"Test": ["NONE"]}

    config: Dict[str, Any] = {}
    if health_check.command:
        config["Test"] = ["CMD-SHELL", health_check.command]

    durations = {
        "Interval": health_check.interval,
        "Timeout": health_check.timeout,
        "StartPeriod": health_check.start_period,
    }
    for key, duration in durations.items():
        seconds = ceil_seconds(duration)
        if seconds is not None:
            config[key] = seconds * NANOSECONDS_PER_SECOND

    if health_check.retries is not None:
        config["Retries"] = int(health_check.retries)

    return config


@contextmanager
def staged_file(content: FileContent) -> Iterator[str]:
    """Write content to a transient file in the system temp directory.

    The file is removed when the block exits, whether or not it raised.

    Args:
        content: Text, bytes, or a readable binary stream

    Yields:
        Path of the transient file
    """
    fd, path = tempfile.mkstemp(prefix="mittons-")
    try:
        with os.fdopen(fd, "wb") as handle:
            if isinstance(content, str):
                handle.write(content.encode("utf-8"))
            elif isinstance(content, (bytes, bytearray)):
                handle.write(content)
            else:
                shutil.copyfileobj(content, handle)
        yield path
    finally:
        if os.path.exists(path):
            os.remove(path)


def join_guest_path(root: str, relative: str) -> Optional[str]:
    """Join a relative path onto a directory root inside a service.

    Returns:
        The joined path, or None when ``relative`` escapes ``root``
    """
    if not relative or relative.startswith("/"):
        return None
    joined = posixpath.normpath(posixpath.join(root, relative))
    prefix = root if root.endswith("/") else root + "/"
    if not joined.startswith(prefix):
        return None
    return joined


def parse_octal_permissions(permissions: Optional[str]) -> Optional[int]:
    """Parse permissions such as "644" or "0o755" into a mode."""
    if not permissions:
        return None
    value = permissions.lower()
    if value.startswith("0o"):
        value = value[2:]
    return int(value, 8)
