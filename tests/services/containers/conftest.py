"""Test fixtures for Docker-backed gateway tests."""

from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from docker import DockerClient
from docker.errors import DockerException, ImageNotFound

from mittons_fixtures.config import Settings
from mittons_fixtures.services.containers.sdk_gateway import SDKDockerGateway

# Test image to use for Docker operations
TEST_IMAGE = "alpine:3.19"


@pytest.fixture
def docker_client() -> Generator[DockerClient, None, None]:
    """Provide a Docker SDK client, skipping when no daemon is reachable."""
    try:
        client = DockerClient.from_env()
        client.ping()
    except DockerException as e:
        pytest.skip(f"Docker daemon not available: {e}")

    try:
        client.images.get(TEST_IMAGE)
    except ImageNotFound:
        client.images.pull(TEST_IMAGE)

    yield client
    client.close()


@pytest_asyncio.fixture
async def sdk_gateway(docker_client: DockerClient) -> AsyncGenerator[SDKDockerGateway, None]:
    """Provide a gateway talking to the local daemon."""
    gateway = SDKDockerGateway(Settings(HEALTH_CHECK_TIMEOUT_SECONDS=30))
    yield gateway
    await gateway.close()


@pytest.fixture
def test_image() -> str:
    return TEST_IMAGE
