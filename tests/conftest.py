"""Test configuration and fixtures."""

import asyncio
import itertools
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from mittons_fixtures.config import Settings
from mittons_fixtures.services.containers.gateway import RuntimeGateway
from mittons_fixtures.services.containers.models import HealthStatus, PullOption


class RecordingGateway(RuntimeGateway):
    """In-memory gateway that records every call in the order it was made."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self.events: List[Tuple[str, str]] = []
        self.health_sequence: List[HealthStatus] = []
        self.default_health = HealthStatus.RUNNING
        self.resources: List[Tuple[str, str]] = []
        self.files: Dict[Tuple[str, str], bytes] = {}
        self.uploads: List[Dict[str, object]] = []
        self.errors: Dict[Tuple[str, str], BaseException] = {}
        self.delays: Dict[str, float] = {}
        self._service_ids = itertools.count(1)
        self._network_ids = itertools.count(1)

    def calls_to(self, operation: str) -> List[tuple]:
        return [args for name, args in self.calls if name == operation]

    async def _record(self, operation: str, subject: str, *args) -> None:
        self.events.append(("start", operation))
        self.calls.append((operation, args))
        if operation in self.delays:
            await asyncio.sleep(self.delays[operation])
        self.events.append(("end", operation))
        error = self.errors.get((operation, subject)) or self.errors.get((operation, "*"))
        if error is not None:
            raise error

    async def create_service(
        self,
        image: str,
        pull_option: PullOption,
        labels: Mapping[str, str],
        command: Sequence[str],
        health_check: Optional[dict],
    ) -> str:
        await self._record("create_service", image, image, pull_option, dict(labels), list(command), health_check)
        return f"service-{next(self._service_ids)}"

    async def remove_service(self, service_id: str) -> None:
        await self._record("remove_service", service_id, service_id)

    async def get_health_status(self, service_id: str) -> HealthStatus:
        await self._record("get_health_status", service_id, service_id)
        if self.health_sequence:
            return self.health_sequence.pop(0)
        return self.default_health

    async def get_available_resources(self, service_id: str) -> List[Tuple[str, str]]:
        await self._record("get_available_resources", service_id, service_id)
        return list(self.resources)

    async def add_file(self, service_id, host_path, container_path, owner=None, permissions=None) -> None:
        await self._record("add_file", service_id, service_id, host_path, container_path, owner, permissions)
        with open(host_path, "rb") as handle:
            content = handle.read()
        self.uploads.append({"service_id": service_id, "host_path": host_path, "destination": container_path, "content": content})
        self.files[(service_id, container_path)] = content

    async def remove_file(self, service_id: str, container_path: str) -> None:
        await self._record("remove_file", service_id, service_id, container_path)
        self.files.pop((service_id, container_path), None)

    async def read_file(self, service_id: str, container_path: str) -> bytes:
        await self._record("read_file", service_id, service_id, container_path)
        return self.files[(service_id, container_path)]

    async def list_files(self, service_id: str, container_path: str) -> List[str]:
        await self._record("list_files", service_id, service_id, container_path)
        return sorted(
            path[len(container_path):]
            for (sid, path) in self.files
            if sid == service_id and path.startswith(container_path)
        )

    async def create_network(self, name: str, labels: Mapping[str, str]) -> str:
        await self._record("create_network", name, name, dict(labels))
        return f"network-{next(self._network_ids)}"

    async def remove_network(self, network_id: str) -> None:
        await self._record("remove_network", network_id, network_id)

    async def connect_network(self, network_id: str, service_id: str, alias: str) -> None:
        await self._record("connect_network", service_id, network_id, service_id, alias)


@pytest.fixture
def gateway() -> RecordingGateway:
    """Provide a fresh recording gateway."""
    return RecordingGateway()


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short health check deadlines for unit tests."""
    return Settings(HEALTH_CHECK_TIMEOUT_SECONDS=0.5, HEALTH_CHECK_POLL_INTERVAL_MS=10)
