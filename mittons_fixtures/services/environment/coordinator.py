"""Run-scoped coordination of the networks and services of one test environment."""

import asyncio
from collections import Counter
from types import MappingProxyType
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import uuid4

from loguru import logger

from mittons_fixtures.config import Settings, settings as default_settings
from mittons_fixtures.services.containers.container_service import ContainerService
from mittons_fixtures.services.containers.directives import Network, Run, resolve_network_spec
from mittons_fixtures.services.containers.exceptions import (
    DuplicateNetworkDefinitionError,
    FixtureSetupError,
    FixtureTeardownError,
)
from mittons_fixtures.services.containers.gateway import RuntimeGateway
from mittons_fixtures.services.containers.network_service import NetworkService

logger = logger.bind(name=__name__)

NETWORK_KEY_PREFIX = "network:"


class EnvironmentFixture:
    """Owns every network and service declared for one environment in a run.

    Networks are created before services and removed after them. Within each
    phase members are handled concurrently, and a phase ends only when every
    member has finished.
    """

    def __init__(
        self,
        gateway: RuntimeGateway,
        networks: Iterable[Network] = (),
        containers: Optional[Mapping[str, Sequence[Any]]] = None,
        run: Optional[Run] = None,
        settings: Optional[Settings] = None,
        health_timeout: Optional[float] = None,
    ) -> None:
        """Validate the declarations and register their services.

        Nothing is created in the runtime until ``initialize`` is called.

        Args:
            gateway: Gateway shared by every network and service
            networks: Declared networks; names must be unique
            containers: Directives of each service, keyed by declared name; the run is appended to each
            run: The run this environment belongs to, generated when omitted
            settings: Settings overriding the module defaults
            health_timeout: Seconds each service may take to become healthy

        Raises:
            DuplicateNetworkDefinitionError: If a network name is declared twice
            ConfigurationError: If any network or service declaration is invalid
        """
        self.gateway = gateway
        self.settings = settings or default_settings
        self.run = run or Run()
        self.instance_id = str(uuid4())

        networks = list(networks)
        duplicates = [name for name, count in Counter(n.name for n in networks).items() if count > 1]
        if duplicates:
            raise DuplicateNetworkDefinitionError(duplicates)

        self._network_directives: Dict[str, List[Any]] = {}
        self._networks: Dict[str, NetworkService] = {}
        for network in networks:
            resolve_network_spec([network, self.run], self.settings.RUN_ID_LABEL)
            self._network_directives[network.name] = [Network(self.runtime_network_name(network.name)), self.run]
            self._networks[network.name] = NetworkService(gateway, self.settings)

        self._container_directives: Dict[str, List[Any]] = {}
        self._containers: Dict[str, ContainerService] = {}
        for name, directives in (containers or {}).items():
            directives = [*directives, self.run]
            service = ContainerService(
                gateway,
                networks=self._networks,
                settings=self.settings,
                name=name,
                health_timeout=health_timeout,
            )
            service.resolve(directives)
            self._container_directives[name] = directives
            self._containers[name] = service

    def runtime_network_name(self, name: str) -> str:
        """Name a declared network is created under, unique to this environment instance."""
        return f"{name}-{self.instance_id}"

    @property
    def containers(self) -> Mapping[str, ContainerService]:
        return MappingProxyType(self._containers)

    @property
    def networks(self) -> Mapping[str, NetworkService]:
        return MappingProxyType(self._networks)

    def container(self, name: str) -> ContainerService:
        return self._containers[name]

    def network(self, name: str) -> NetworkService:
        return self._networks[name]

    def __getitem__(self, name: str) -> ContainerService:
        return self._containers[name]

    async def _run_phase(self, phase: str, calls: Dict[str, Awaitable[None]]) -> Dict[str, BaseException]:
        """Run calls concurrently and wait for all of them.

        Returns:
            The exception raised by each failed call, keyed by member name
        """
        if not calls:
            return {}
        logger.debug(f"Starting phase {phase} with {len(calls)} member(s)")
        results = await asyncio.gather(*calls.values(), return_exceptions=True)
        failures = {name: result for name, result in zip(calls, results) if isinstance(result, BaseException)}
        for name, error in failures.items():
            logger.error(f"Phase {phase} failed for {name}: {error}")
        return failures

    async def initialize(self, stop: Optional[asyncio.Event] = None) -> None:
        """Create every network, then every service.

        On failure everything already created is disposed before raising.

        Args:
            stop: Optional event the caller sets to abandon pending health checks

        Raises:
            FixtureSetupError: If any network or service failed to initialize
        """
        logger.info(
            f"Initializing environment {self.instance_id} for run {self.run.id}: "
            f"{len(self._networks)} network(s), {len(self._containers)} service(s)"
        )

        failures = await self._run_phase(
            "network initialization",
            {
                NETWORK_KEY_PREFIX + name: network.initialize(self._network_directives[name])
                for name, network in self._networks.items()
            },
        )
        if not failures:
            failures = await self._run_phase(
                "service initialization",
                {
                    name: service.initialize(self._container_directives[name], stop)
                    for name, service in self._containers.items()
                },
            )

        if failures:
            teardown_failures: Dict[str, BaseException] = {}
            try:
                await self.dispose()
            except FixtureTeardownError as e:
                teardown_failures = e.failures
            raise FixtureSetupError(failures, teardown_failures) from next(iter(failures.values()))

        logger.info(f"Environment {self.instance_id} is ready")

    async def dispose(self) -> None:
        """Dispose every service, then every network.

        Every member is attempted even when others fail.

        Raises:
            FixtureTeardownError: If any member failed to dispose
        """
        failures = await self._run_phase(
            "service disposal",
            {name: service.dispose() for name, service in self._containers.items()},
        )
        failures.update(
            await self._run_phase(
                "network disposal",
                {NETWORK_KEY_PREFIX + name: network.dispose() for name, network in self._networks.items()},
            )
        )
        if failures:
            raise FixtureTeardownError(failures)

        logger.info(f"Environment {self.instance_id} disposed")

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.dispose()
