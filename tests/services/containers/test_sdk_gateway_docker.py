"""Integration tests for the Docker SDK gateway against a local daemon."""

import pytest
from docker import DockerClient
from docker.errors import NotFound

from mittons_fixtures.services.containers.directives import Command, Image, Network, NetworkAlias, Run
from mittons_fixtures.services.containers.models import HealthStatus, PullOption
from mittons_fixtures.services.containers.sdk_gateway import SDKDockerGateway
from mittons_fixtures.services.environment.coordinator import EnvironmentFixture

pytestmark = pytest.mark.docker


@pytest.mark.asyncio
async def test_service_lifecycle(sdk_gateway: SDKDockerGateway, docker_client: DockerClient, test_image: str):
    """Test create, health and removal of a real container."""
    run = Run()
    service_id = await sdk_gateway.create_service(
        test_image,
        PullOption.MISSING,
        {sdk_gateway.settings.RUN_ID_LABEL: run.id},
        ["tail", "-f", "/dev/null"],
        None,
    )
    try:
        container = docker_client.containers.get(service_id)
        assert container.labels[sdk_gateway.settings.RUN_ID_LABEL] == run.id
        assert await sdk_gateway.get_health_status(service_id) == HealthStatus.RUNNING

        await sdk_gateway.remove_file(service_id, "/tmp/missing.txt")
    finally:
        await sdk_gateway.remove_service(service_id)

    with pytest.raises(NotFound):
        docker_client.containers.get(service_id)


@pytest.mark.asyncio
async def test_environment_roundtrip(sdk_gateway: SDKDockerGateway, docker_client: DockerClient, test_image: str):
    """Test a network with one aliased service end to end."""
    environment = EnvironmentFixture(
        sdk_gateway,
        networks=[Network("backend")],
        containers={
            "app": [Image(test_image), Command("tail -f /dev/null"), NetworkAlias("backend", "app")],
        },
        run=Run(),
        settings=sdk_gateway.settings,
    )

    async with environment:
        app = environment["app"]
        network_id = environment.network("backend").service_id

        await app.create_file("hello-world", "/tmp/out.txt", permissions="600")
        assert await sdk_gateway.read_file(app.service_id, "/tmp/out.txt") == b"hello-world"

        attached = docker_client.networks.get(network_id).attrs["Containers"]
        assert app.service_id in attached

    with pytest.raises(NotFound):
        docker_client.containers.get(app.service_id)
    with pytest.raises(NotFound):
        docker_client.networks.get(network_id)
