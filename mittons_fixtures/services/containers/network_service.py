"""Lifecycle of a single run-scoped network."""

from typing import Any, Optional, Sequence

from loguru import logger

from mittons_fixtures.config import Settings, settings as default_settings
from .directives import resolve_network_spec
from .gateway import NetworkGateway
from .models import ServiceState

logger = logger.bind(name=__name__)


class NetworkService:
    """Creates, connects services to, and removes one network."""

    def __init__(self, gateway: NetworkGateway, settings: Optional[Settings] = None) -> None:
        self.gateway = gateway
        self.settings = settings or default_settings
        self.name: Optional[str] = None
        self.service_id: Optional[str] = None
        self.teardown_on_dispose = False
        self.state = ServiceState.UNINITIALIZED

    async def initialize(self, directives: Sequence[Any]) -> None:
        """Create the network declared by the directives.

        Raises:
            InvalidOperationError: If Network or Run is missing or repeated
            InvalidArgumentError: If the network name is blank
        """
        spec = resolve_network_spec(directives, self.settings.RUN_ID_LABEL)

        self.state = ServiceState.INITIALIZING
        self.teardown_on_dispose = spec.run.teardown_on_complete
        self.name = spec.name

        try:
            self.service_id = await self.gateway.create_network(spec.name, spec.labels)
        except BaseException:
            self.state = ServiceState.FAILED
            raise

        self.state = ServiceState.READY
        logger.info(f"Created network {self.name} ({self.service_id}) for run {spec.run.id}")

    async def connect(self, service_id: str, alias: str) -> None:
        """Attach a service to this network under an alias."""
        logger.debug(f"Connecting {service_id} to network {self.name} as {alias}")
        await self.gateway.connect_network(self.service_id, service_id, alias)
        logger.info(f"Connected {service_id} to network {self.name} as {alias}")

    async def dispose(self) -> None:
        """Remove the network if it was created and the run tears resources down."""
        if self.service_id is None or self.state == ServiceState.DISPOSED:
            return

        previous, self.state = self.state, ServiceState.DISPOSED
        if self.teardown_on_dispose:
            try:
                await self.gateway.remove_network(self.service_id)
            except BaseException:
                self.state = previous
                raise
            logger.info(f"Removed network {self.name} ({self.service_id})")
        else:
            logger.warning(f"Keeping network {self.name} ({self.service_id}): teardown disabled for this run")

    def __repr__(self) -> str:
        return f"NetworkService(name={self.name!r}, service_id={self.service_id!r}, state={self.state.value})"
