"""Lifecycle of a single container-backed service."""

import asyncio
from typing import Any, Mapping, Optional, Sequence, Tuple

from loguru import logger

from mittons_fixtures.config import Settings, settings as default_settings
from .adapters import (
    AnyResourceAdapter,
    DirectoryResourceAdapter,
    FileResourceAdapter,
    build_adapters,
    discover_resources,
)
from .directives import ServiceSpec, resolve_service_spec
from .gateway import ServiceGateway
from .health import HealthCheckPoller
from .models import ServiceResource, ServiceState
from .network_service import NetworkService
from .utils import FileContent, build_health_check_config, staged_file

logger = logger.bind(name=__name__)


class ContainerService:
    """Creates a service, waits for it to be usable, discovers its resources and attaches it to networks.

    The runtime id is recorded as soon as the create call returns, so a
    service whose later steps fail can still be disposed.
    """

    def __init__(
        self,
        gateway: ServiceGateway,
        networks: Optional[Mapping[str, NetworkService]] = None,
        settings: Optional[Settings] = None,
        name: Optional[str] = None,
        health_timeout: Optional[float] = None,
        poller: Optional[HealthCheckPoller] = None,
    ) -> None:
        """Initialize the service.

        Args:
            gateway: Gateway used for every runtime call
            networks: Network services aliases may attach to, keyed by declared name
            settings: Settings overriding the module defaults
            name: Declared name, used in logs and errors
            health_timeout: Seconds to wait for the service to become healthy
            poller: Health check poller, built from the gateway when omitted
        """
        self.gateway = gateway
        self.networks = networks if networks is not None else {}
        self.settings = settings or default_settings
        self.name = name
        self.health_timeout = (
            health_timeout if health_timeout is not None else self.settings.HEALTH_CHECK_TIMEOUT_SECONDS
        )
        self.poller = poller or HealthCheckPoller(gateway, self.settings.poll_interval_seconds)

        self.service_id: Optional[str] = None
        self.spec: Optional[ServiceSpec] = None
        self.resources: Tuple[ServiceResource, ...] = ()
        self.adapters: Tuple[AnyResourceAdapter, ...] = ()
        self.teardown_on_dispose = False
        self.state = ServiceState.UNINITIALIZED

    @property
    def label(self) -> str:
        return self.name or self.service_id or "<uncreated>"

    def resolve(self, directives: Sequence[Any]) -> ServiceSpec:
        """Validate directives without touching the runtime."""
        return resolve_service_spec(
            directives,
            service=self.name,
            known_networks=self.networks.keys(),
            run_id_label=self.settings.RUN_ID_LABEL,
        )

    async def initialize(self, directives: Sequence[Any], stop: Optional[asyncio.Event] = None) -> None:
        """Create the service and bring it to the ready state.

        Args:
            directives: Ordered directives declared for the service
            stop: Optional event the caller sets to abandon the health check

        Raises:
            ConfigurationError: If the directives are invalid; nothing is created
            ReadinessError: If the service is not healthy in time or ``stop`` is set
        """
        spec = self.resolve(directives)

        self.spec = spec
        self.teardown_on_dispose = spec.run.teardown_on_complete
        self.state = ServiceState.INITIALIZING

        try:
            self.service_id = await self.gateway.create_service(
                spec.image,
                spec.pull_option,
                spec.labels,
                spec.command,
                build_health_check_config(spec.health_check),
            )
            logger.info(f"Created service {self.label} ({self.service_id}) from {spec.image} for run {spec.run.id}")

            if spec.health_check_disabled:
                logger.debug(f"Health check disabled for {self.label}, skipping readiness wait")
            else:
                result = await self.poller.wait_until_healthy(self.service_id, self.health_timeout, stop)
                result.raise_for_outcome()

            await self.refresh_resources()

            for attachment in spec.attachments:
                await self.networks[attachment.network].connect(self.service_id, attachment.alias)
        except BaseException:
            self.state = ServiceState.FAILED
            logger.error(f"Failed to initialize service {self.label}")
            raise

        self.state = ServiceState.READY

    async def refresh_resources(self) -> Tuple[ServiceResource, ...]:
        """Rediscover resources, replacing the previous resources and adapters wholesale."""
        pairs = await self.gateway.get_available_resources(self.service_id)
        resources = discover_resources(pairs)
        adapters = build_adapters(resources, self.gateway, self.service_id)
        self.resources, self.adapters = resources, adapters
        logger.debug(f"Discovered {len(resources)} resource(s) for {self.label}")
        return resources

    def file(self, path: str) -> FileResourceAdapter:
        """Get the file adapter whose guest path is ``path``.

        Raises:
            KeyError: If no file resource has that path
        """
        for adapter in self.adapters:
            if isinstance(adapter, FileResourceAdapter) and adapter.path == path:
                return adapter
        raise KeyError(path)

    def directory(self, path: str) -> DirectoryResourceAdapter:
        """Get the directory adapter whose guest path is ``path``."""
        wanted = path if path.endswith("/") else path + "/"
        for adapter in self.adapters:
            if isinstance(adapter, DirectoryResourceAdapter) and adapter.path == wanted:
                return adapter
        raise KeyError(path)

    async def add_file(
        self,
        host_path: str,
        destination: str,
        owner: Optional[str] = None,
        permissions: Optional[str] = None,
    ) -> None:
        await self.gateway.add_file(self.service_id, host_path, destination, owner, permissions)

    async def remove_file(self, destination: str) -> None:
        await self.gateway.remove_file(self.service_id, destination)

    async def create_file(
        self,
        content: FileContent,
        destination: str,
        owner: Optional[str] = None,
        permissions: Optional[str] = None,
    ) -> None:
        """Upload text, bytes or a binary stream as a file inside the service.

        The content is staged in a transient host file that is removed before
        this returns, including when the upload fails.
        """
        with staged_file(content) as host_path:
            await self.add_file(host_path, destination, owner, permissions)

    async def dispose(self) -> None:
        """Remove this service if it was created and the run tears resources down."""
        if self.service_id is None or self.state == ServiceState.DISPOSED:
            return

        # marked first so a concurrent dispose does not remove the service twice
        previous, self.state = self.state, ServiceState.DISPOSED
        if self.teardown_on_dispose:
            try:
                await self.gateway.remove_service(self.service_id)
            except BaseException:
                self.state = previous
                raise
            logger.info(f"Removed service {self.label} ({self.service_id})")
        else:
            logger.warning(f"Keeping service {self.label} ({self.service_id}): teardown disabled for this run")

    def __repr__(self) -> str:
        return f"ContainerService(name={self.name!r}, service_id={self.service_id!r}, state={self.state.value})"
