"""Container and network services for ephemeral test environments.

This package turns directive declarations into live runtime resources: it
creates services, waits for them to report healthy, discovers the endpoints
the test process can reach them through, and attaches them to networks.
"""

from .adapters import DirectoryResourceAdapter, FileResourceAdapter
from .container_service import ContainerService
from .directives import Command, HealthCheck, Image, Network, NetworkAlias, Run
from .exceptions import (
    ConfigurationError,
    DuplicateNetworkDefinitionError,
    FixtureError,
    FixtureSetupError,
    FixtureTeardownError,
    HealthCheckCancelledError,
    HealthCheckTimeoutError,
    ImageNameMissingError,
    InvalidArgumentError,
    InvalidOperationError,
    MultipleImageNamesProvidedError,
    ReadinessError,
    RuntimeGatewayError,
    UnknownNetworkError,
)
from .gateway import NetworkGateway, RuntimeGateway, ServiceGateway
from .health import HealthCheckPoller
from .models import HealthOutcome, HealthStatus, PullOption, ServiceResource, ServiceState
from .network_service import NetworkService
