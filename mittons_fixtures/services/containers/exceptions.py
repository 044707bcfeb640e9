"""Custom exceptions for fixture lifecycle operations."""

from typing import Dict, Iterable, Optional


class FixtureError(Exception):
    """Base class for fixture errors."""


class ConfigurationError(FixtureError):
    """Base class for errors in a service or network declaration."""


class ImageNameMissingError(ConfigurationError):
    """Error raised when a service declares no image."""

    def __init__(self, service: Optional[str] = None) -> None:
        """Initialize the error.

        Args:
            service: Name of the service missing an image, when known
        """
        self.service = service
        target = f" for service '{service}'" if service else ""
        super().__init__(f"No image was provided{target}")


class MultipleImageNamesProvidedError(ConfigurationError):
    """Error raised when a service declares more than one image."""

    def __init__(self, image_names: Iterable[str], service: Optional[str] = None) -> None:
        """Initialize the error.

        Args:
            image_names: All image names that were declared
            service: Name of the service, when known
        """
        self.image_names = list(image_names)
        self.service = service
        target = f" for service '{service}'" if service else ""
        super().__init__(f"Multiple images were provided{target}: [{', '.join(self.image_names)}]")


class DuplicateNetworkDefinitionError(ConfigurationError):
    """Error raised when an environment declares the same network name twice."""

    def __init__(self, names: Iterable[str]) -> None:
        """Initialize the error.

        Args:
            names: Every network name that was declared more than once
        """
        self.names = sorted(set(names))
        super().__init__(
            "Networks with the same name cannot be created for the same environment. "
            f"The following networks were duplicated: [{', '.join(self.names)}]"
        )


class InvalidOperationError(ConfigurationError):
    """Error raised when a directive is missing or declared too many times."""

    def __init__(self, directive: str, count: int) -> None:
        """Initialize the error.

        Args:
            directive: Name of the directive type
            count: How many were found
        """
        self.directive = directive
        self.count = count
        super().__init__(f"Expected exactly one {directive} directive, found {count}")


class InvalidArgumentError(ConfigurationError):
    """Error raised when a directive carries an invalid value."""

    def __init__(self, argument: str, reason: str) -> None:
        """Initialize the error.

        Args:
            argument: Name of the offending argument
            reason: Why the value was rejected
        """
        self.argument = argument
        self.reason = reason
        super().__init__(f"Invalid value for '{argument}': {reason}")


class UnknownNetworkError(ConfigurationError):
    """Error raised when a network alias names a network that is not declared."""

    def __init__(self, network: str, alias: str) -> None:
        self.network = network
        self.alias = alias
        super().__init__(f"Alias '{alias}' references unknown network '{network}'")


class ReadinessError(FixtureError):
    """Base class for errors raised while waiting for a service to become usable."""

    def __init__(self, service_id: str, last_status: object, message: str) -> None:
        self.service_id = service_id
        self.last_status = last_status
        super().__init__(message)


class HealthCheckTimeoutError(ReadinessError):
    """Error raised when a service does not become healthy before its deadline."""

    def __init__(self, service_id: str, last_status: object, timeout: float) -> None:
        """Initialize the error.

        Args:
            service_id: Runtime id of the service
            last_status: Last health status observed before the deadline
            timeout: The deadline in seconds
        """
        self.timeout = timeout
        super().__init__(
            service_id,
            last_status,
            f"Service '{service_id}' was not healthy after {timeout}s (last status: {last_status})",
        )


class HealthCheckCancelledError(ReadinessError):
    """Error raised when the caller stops a health check before it completes."""

    def __init__(self, service_id: str, last_status: object) -> None:
        super().__init__(
            service_id,
            last_status,
            f"Health check for service '{service_id}' was cancelled (last status: {last_status})",
        )


class RuntimeGatewayError(FixtureError):
    """Error raised when the container runtime rejects an operation."""

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize the error.

        Args:
            operation: The gateway operation that failed
            reason: Reason for the failure
        """
        self.operation = operation
        self.reason = reason
        super().__init__(f"Runtime operation '{operation}' failed: {reason}")


class FixtureSetupError(FixtureError):
    """Error raised when one or more services or networks fail to initialize."""

    def __init__(
        self,
        failures: Dict[str, BaseException],
        teardown_failures: Optional[Dict[str, BaseException]] = None,
    ) -> None:
        """Initialize the error.

        Args:
            failures: The exception raised by each failed member, keyed by declared name
            teardown_failures: Errors raised while disposing what had already been created
        """
        self.failures = dict(failures)
        self.teardown_failures = dict(teardown_failures or {})
        details = "; ".join(f"{name}: {error}" for name, error in self.failures.items())
        super().__init__(f"Failed to initialize {len(self.failures)} fixture member(s): {details}")


class FixtureTeardownError(FixtureError):
    """Error raised when one or more services or networks fail to dispose."""

    def __init__(self, failures: Dict[str, BaseException]) -> None:
        self.failures = dict(failures)
        details = "; ".join(f"{name}: {error}" for name, error in self.failures.items())
        super().__init__(f"Failed to dispose {len(self.failures)} fixture member(s): {details}")
