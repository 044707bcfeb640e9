"""Data models for fixture lifecycle operations."""

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from .exceptions import HealthCheckCancelledError, HealthCheckTimeoutError


class PullOption(Enum):
    """When an image should be pulled before a service is created."""

    MISSING = "missing"
    ALWAYS = "always"
    NEVER = "never"


class HealthStatus(Enum):
    """Health of a service as reported by the runtime."""

    UNKNOWN = "unknown"
    RUNNING = "running"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @property
    def is_ready(self) -> bool:
        """Check if the status means the service can be used."""
        return self in (HealthStatus.RUNNING, HealthStatus.HEALTHY)


class HealthOutcome(Enum):
    """How a health check wait ended."""

    READY = "ready"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class ServiceState(Enum):
    """Lifecycle states of a container or network service."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class HealthCheckResult:
    """Result of waiting for a service to become healthy."""

    outcome: HealthOutcome
    service_id: str
    last_status: HealthStatus
    elapsed: float
    timeout: float

    @property
    def ok(self) -> bool:
        return self.outcome == HealthOutcome.READY

    def raise_for_outcome(self) -> str:
        """Return the service id, or raise the error matching a failed outcome.

        Raises:
            HealthCheckTimeoutError: If the deadline passed first
            HealthCheckCancelledError: If the caller stopped the wait
        """
        if self.outcome == HealthOutcome.TIMED_OUT:
            raise HealthCheckTimeoutError(self.service_id, self.last_status, self.timeout)
        if self.outcome == HealthOutcome.CANCELLED:
            raise HealthCheckCancelledError(self.service_id, self.last_status)
        return self.service_id


@dataclass(frozen=True)
class ServiceResource:
    """A communication endpoint of a service.

    The guest URI describes the endpoint as seen inside the service; the host
    URI is how the test process reaches it.
    """

    guest_uri: str
    host_uri: str

    @property
    def guest_path(self) -> str:
        return urlparse(self.guest_uri).path

    @property
    def scheme(self) -> str:
        return urlparse(self.guest_uri).scheme

    @property
    def is_directory(self) -> bool:
        """Check if the guest path names a directory (trailing separator)."""
        return self.guest_path.endswith("/")
