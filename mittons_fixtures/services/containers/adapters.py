"""Resource discovery and read/write adapters over service resources."""

from typing import Iterable, List, Tuple, Union

from loguru import logger

from .exceptions import InvalidArgumentError
from .gateway import ServiceGateway
from .models import ServiceResource
from .utils import FileContent, join_guest_path, staged_file

logger = logger.bind(name=__name__)


def discover_resources(pairs: Iterable[Tuple[str, str]]) -> Tuple[ServiceResource, ...]:
    """Build one resource per (guest URI, host URI) pair, keeping order."""
    return tuple(ServiceResource(guest_uri=guest, host_uri=host) for guest, host in pairs)


class ResourceAdapter:
    """Base class for views over a single service resource."""

    def __init__(self, resource: ServiceResource, gateway: ServiceGateway, service_id: str) -> None:
        self.resource = resource
        self.gateway = gateway
        self.service_id = service_id

    @property
    def path(self) -> str:
        """Path of the resource inside the service."""
        return self.resource.guest_path

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.resource.guest_uri!r})"


class FileResourceAdapter(ResourceAdapter):
    """Whole-content access to a single file inside a service."""

    async def read(self) -> bytes:
        return await self.gateway.read_file(self.service_id, self.path)

    async def read_text(self, encoding: str = "utf-8") -> str:
        return (await self.read()).decode(encoding)

    async def write(self, content: FileContent) -> None:
        """Replace the file's content."""
        with staged_file(content) as host_path:
            await self.gateway.add_file(self.service_id, host_path, self.path)

    async def delete(self) -> None:
        await self.gateway.remove_file(self.service_id, self.path)


class DirectoryResourceAdapter(ResourceAdapter):
    """Access to files by relative path below a directory inside a service."""

    def _resolve(self, relative: str) -> str:
        """Resolve a relative path under the directory root.

        Raises:
            InvalidArgumentError: If the path is absolute or escapes the root
        """
        path = join_guest_path(self.path, relative)
        if path is None:
            raise InvalidArgumentError("relative", f"'{relative}' is not inside {self.path}")
        return path

    async def list(self) -> List[str]:
        """List files below the directory, relative to it."""
        return await self.gateway.list_files(self.service_id, self.path)

    async def read(self, relative: str) -> bytes:
        return await self.gateway.read_file(self.service_id, self._resolve(relative))

    async def read_text(self, relative: str, encoding: str = "utf-8") -> str:
        return (await self.read(relative)).decode(encoding)

    async def write(self, relative: str, content: FileContent) -> None:
        destination = self._resolve(relative)
        with staged_file(content) as host_path:
            await self.gateway.add_file(self.service_id, host_path, destination)

    async def delete(self, relative: str) -> None:
        await self.gateway.remove_file(self.service_id, self._resolve(relative))


AnyResourceAdapter = Union[FileResourceAdapter, DirectoryResourceAdapter]


def build_adapter(resource: ServiceResource, gateway: ServiceGateway, service_id: str) -> AnyResourceAdapter:
    """Pick the adapter for a resource by the trailing separator of its guest path."""
    if resource.is_directory:
        return DirectoryResourceAdapter(resource, gateway, service_id)
    return FileResourceAdapter(resource, gateway, service_id)


def build_adapters(
    resources: Iterable[ServiceResource], gateway: ServiceGateway, service_id: str
) -> Tuple[AnyResourceAdapter, ...]:
    """Classify every resource exactly once, preserving order."""
    adapters = tuple(build_adapter(resource, gateway, service_id) for resource in resources)
    logger.debug(
        f"Built {len(adapters)} adapter(s) for {service_id}: "
        f"{sum(isinstance(a, DirectoryResourceAdapter) for a in adapters)} directory"
    )
    return adapters
