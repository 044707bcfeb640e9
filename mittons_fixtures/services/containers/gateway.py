"""Abstract base classes for container runtime gateways."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import HealthStatus, PullOption


class ServiceGateway(ABC):
    """Abstract base class defining the runtime operations on services."""

    @abstractmethod
    async def create_service(
        self,
        image: str,
        pull_option: PullOption,
        labels: Mapping[str, str],
        command: Sequence[str],
        health_check: Optional[Dict[str, Any]],
    ) -> str:
        """Create and start a service.

        Args:
            image: Name of the image to run
            pull_option: When to pull the image
            labels: Labels applied to the service
            command: Command arguments, empty to keep the image default
            health_check: Runtime health check configuration, None to keep the image's

        Returns:
            Runtime id of the new service

        Raises:
            ImageNameMissingError: If the image name is blank
            RuntimeGatewayError: If the runtime rejects the request
        """
        pass

    @abstractmethod
    async def remove_service(self, service_id: str) -> None:
        """Remove a service and its anonymous volumes.

        Removing a service that no longer exists is not an error.

        Raises:
            RuntimeGatewayError: If the runtime rejects the request
        """
        pass

    @abstractmethod
    async def get_health_status(self, service_id: str) -> HealthStatus:
        """Get the current health status of a service."""
        pass

    @abstractmethod
    async def get_available_resources(self, service_id: str) -> List[Tuple[str, str]]:
        """List the endpoints a service exposes.

        Returns:
            Pairs of (guest URI, host URI)
        """
        pass

    @abstractmethod
    async def add_file(
        self,
        service_id: str,
        host_path: str,
        container_path: str,
        owner: Optional[str] = None,
        permissions: Optional[str] = None,
    ) -> None:
        """Copy a host file into a service.

        Args:
            service_id: Runtime id of the service
            host_path: Path of the file on the host
            container_path: Destination path inside the service
            owner: Optional ``user[:group]`` to own the file
            permissions: Optional octal permissions such as ``"644"``
        """
        pass

    @abstractmethod
    async def remove_file(self, service_id: str, container_path: str) -> None:
        """Delete a file inside a service."""
        pass

    @abstractmethod
    async def read_file(self, service_id: str, container_path: str) -> bytes:
        """Read the contents of a file inside a service."""
        pass

    @abstractmethod
    async def list_files(self, service_id: str, container_path: str) -> List[str]:
        """List file paths below a directory inside a service, relative to it."""
        pass


class NetworkGateway(ABC):
    """Abstract base class defining the runtime operations on networks."""

    @abstractmethod
    async def create_network(self, name: str, labels: Mapping[str, str]) -> str:
        """Create a network.

        Returns:
            Runtime id of the new network
        """
        pass

    @abstractmethod
    async def remove_network(self, network_id: str) -> None:
        """Remove a network."""
        pass

    @abstractmethod
    async def connect_network(self, network_id: str, service_id: str, alias: str) -> None:
        """Attach a service to a network under an alias.

        Every call is forwarded to the runtime; repeated calls are not merged.
        """
        pass


class RuntimeGateway(ServiceGateway, NetworkGateway):
    """A gateway serving both services and networks."""

    async def close(self) -> None:
        """Close the gateway and clean up any resources."""
        pass

    async def __aenter__(self):
        """Enter the async context."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit the async context and ensure resources are cleaned up."""
        await self.close()
