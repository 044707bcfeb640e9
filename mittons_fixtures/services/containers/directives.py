"""Configuration directives describing services and networks.

A service or network is declared as an ordered sequence of directives. The
resolve functions in this module validate a sequence and assemble the
description the lifecycle services act on. Validation happens before any
runtime call is made.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Collection, Dict, List, Optional, Sequence, Tuple, Type, TypeVar, Union
from uuid import uuid4

from .exceptions import (
    ImageNameMissingError,
    InvalidArgumentError,
    InvalidOperationError,
    MultipleImageNamesProvidedError,
    UnknownNetworkError,
)
from .models import PullOption
from .utils import parse_command

RUN_ID_LABEL = "mittons.fixtures.run.id"

D = TypeVar("D")


@dataclass(frozen=True)
class Run:
    """Identifies one test run and whether its resources are torn down."""

    id: str = field(default_factory=lambda: str(uuid4()))
    teardown_on_complete: bool = True


@dataclass(frozen=True)
class Image:
    """The image a service is created from."""

    name: str
    pull_option: PullOption = PullOption.MISSING


@dataclass(frozen=True)
class Command:
    """The command a service runs, as a shell-style string or an argv sequence."""

    value: Union[str, Sequence[str]]

    @property
    def args(self) -> List[str]:
        return parse_command(self.value)


@dataclass(frozen=True)
class HealthCheck:
    """Health check policy applied when a service is created.

    When ``disabled`` is set the runtime health check is turned off and every
    other field is ignored.
    """

    disabled: bool = False
    command: Optional[str] = None
    interval: Optional[timedelta] = None
    timeout: Optional[timedelta] = None
    start_period: Optional[timedelta] = None
    retries: Optional[int] = None


@dataclass(frozen=True)
class Network:
    """Declares a network."""

    name: str


@dataclass(frozen=True)
class NetworkAlias:
    """Attaches a service to a declared network under an alias."""

    network: str
    alias: str


Directive = Union[Run, Image, Command, HealthCheck, Network, NetworkAlias]


@dataclass(frozen=True)
class ServiceSpec:
    """Everything needed to create one service."""

    image: str
    pull_option: PullOption
    command: List[str]
    health_check: Optional[HealthCheck]
    run: Run
    attachments: Tuple[NetworkAlias, ...]
    labels: Dict[str, str]

    @property
    def health_check_disabled(self) -> bool:
        return self.health_check is not None and self.health_check.disabled


@dataclass(frozen=True)
class NetworkSpec:
    """Everything needed to create one network."""

    name: str
    run: Run
    labels: Dict[str, str]


def _of_type(directives: Sequence[Any], directive_type: Type[D]) -> List[D]:
    return [d for d in directives if isinstance(d, directive_type)]


def _single(directives: Sequence[Any], directive_type: Type[D]) -> D:
    """Return the only directive of a type.

    Raises:
        InvalidOperationError: If there is not exactly one
    """
    found = _of_type(directives, directive_type)
    if len(found) != 1:
        raise InvalidOperationError(directive_type.__name__, len(found))
    return found[0]


def _single_or_none(directives: Sequence[Any], directive_type: Type[D]) -> Optional[D]:
    found = _of_type(directives, directive_type)
    if len(found) > 1:
        raise InvalidOperationError(directive_type.__name__, len(found))
    return found[0] if found else None


def run_labels(run: Run, label: str = RUN_ID_LABEL) -> Dict[str, str]:
    """Build the label set applied to every resource created for a run."""
    return {label: run.id}


def resolve_service_spec(
    directives: Sequence[Directive],
    service: Optional[str] = None,
    known_networks: Optional[Collection[str]] = None,
    run_id_label: str = RUN_ID_LABEL,
) -> ServiceSpec:
    """Resolve the directives of one service.

    Args:
        directives: Ordered directives declared for the service
        service: Declared service name, used in error messages
        known_networks: Network names aliases may reference; unchecked when None
        run_id_label: Label key carrying the run id

    Returns:
        The resolved service description

    Raises:
        ImageNameMissingError: If no Image directive is present
        MultipleImageNamesProvidedError: If more than one Image directive is present
        InvalidOperationError: If Run is missing or repeated, or Command/HealthCheck repeat
        UnknownNetworkError: If an alias references a network not in ``known_networks``
    """
    images = _of_type(directives, Image)
    if not images:
        raise ImageNameMissingError(service)
    if len(images) > 1:
        raise MultipleImageNamesProvidedError([i.name for i in images], service)
    image = images[0]

    run = _single(directives, Run)
    command = _single_or_none(directives, Command)
    health_check = _single_or_none(directives, HealthCheck)

    attachments = tuple(_of_type(directives, NetworkAlias))
    if known_networks is not None:
        for attachment in attachments:
            if attachment.network not in known_networks:
                raise UnknownNetworkError(attachment.network, attachment.alias)

    return ServiceSpec(
        image=image.name,
        pull_option=image.pull_option,
        command=command.args if command else [],
        health_check=health_check,
        run=run,
        attachments=attachments,
        labels=run_labels(run, run_id_label),
    )


def resolve_network_spec(directives: Sequence[Directive], run_id_label: str = RUN_ID_LABEL) -> NetworkSpec:
    """Resolve the directives of one network.

    Raises:
        InvalidOperationError: If Network or Run is missing or repeated
        InvalidArgumentError: If the network name is blank
    """
    network = _single(directives, Network)
    run = _single(directives, Run)

    if network.name is None or not network.name.strip():
        raise InvalidArgumentError("Network.name", "name cannot be null or whitespace")

    return NetworkSpec(name=network.name, run=run, labels=run_labels(run, run_id_label))
