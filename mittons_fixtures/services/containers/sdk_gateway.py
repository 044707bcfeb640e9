"""Runtime gateway implementation using the Docker SDK."""

import asyncio
import io
import json
import posixpath
import tarfile
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlparse

import aiodocker
from aiodocker.exceptions import DockerError
from loguru import logger

from mittons_fixtures.config import Settings, settings as default_settings
from .exceptions import ImageNameMissingError, RuntimeGatewayError
from .gateway import RuntimeGateway
from .models import HealthStatus, PullOption
from .utils import parse_octal_permissions

logger = logger.bind(name=__name__)

HEALTH_STATUSES = {
    "healthy": HealthStatus.HEALTHY,
    "unhealthy": HealthStatus.UNHEALTHY,
    "starting": HealthStatus.UNKNOWN,
}


def split_image_reference(image: str) -> Tuple[str, Optional[str]]:
    """Split an image reference into repository and tag.

    Digest references are returned whole so the runtime resolves them.
    """
    if "@" in image:
        return image, None
    repository, _, last = image.rpartition("/")
    if ":" in last:
        name, tag = last.rsplit(":", 1)
        return (f"{repository}/{name}" if repository else name), tag
    return image, "latest"


class SDKDockerGateway(RuntimeGateway):
    """Runtime gateway implementation using the Docker SDK."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[aiodocker.Docker] = None) -> None:
        """Initialize the Docker SDK gateway.

        Args:
            settings: Settings overriding the module defaults
            client: An existing aiodocker client, created from settings when omitted
        """
        self.settings = settings or default_settings
        self.timeout = self.settings.GATEWAY_TIMEOUT_SECONDS
        self.pull_timeout = self.settings.PULL_TIMEOUT_SECONDS
        if client is not None:
            self.client = client
            return
        try:
            self.client = aiodocker.Docker(url=self.settings.DOCKER_URL)
        except Exception as e:
            raise RuntimeGatewayError("connect", f"Failed to initialize Docker client: {str(e)}")

    @asynccontextmanager
    async def _operation(self, operation: str, timeout: Optional[float] = None) -> AsyncIterator[None]:
        """Bound a runtime call by a timeout and translate runtime failures.

        Args:
            operation: Name used in logs and errors
            timeout: Seconds allowed, defaults to the gateway timeout
        """
        if timeout is None:
            timeout = self.timeout
        logger.debug(f"Docker {operation}")
        try:
            async with asyncio.timeout(timeout):
                yield
        except DockerError as e:
            raise RuntimeGatewayError(operation, str(e)) from e
        except TimeoutError as e:
            raise RuntimeGatewayError(operation, f"timed out after {timeout}s") from e

    async def _ensure_image(self, image: str, pull_option: PullOption) -> None:
        if pull_option == PullOption.NEVER:
            return
        if pull_option == PullOption.MISSING:
            try:
                await self.client.images.inspect(image)
                return
            except DockerError as e:
                if e.status != 404:
                    raise
        repository, tag = split_image_reference(image)
        logger.info(f"Pulling image {image}")
        await self.client.images.pull(repository, tag=tag)

    async def create_service(
        self,
        image: str,
        pull_option: PullOption,
        labels: Mapping[str, str],
        command: Sequence[str],
        health_check: Optional[Dict[str, Any]],
    ) -> str:
        if not image or not image.strip():
            raise ImageNameMissingError()

        config: Dict[str, Any] = {
            "Image": image,
            "Labels": dict(labels),
            "HostConfig": {"PublishAllPorts": True},
        }
        if command:
            config["Cmd"] = list(command)
        if health_check is not None:
            config["Healthcheck"] = health_check

        async with self._operation("pull_image", self.pull_timeout):
            await self._ensure_image(image, pull_option)

        container = None
        try:
            async with self._operation("create_service"):
                container = await self.client.containers.create(config)
                await container.start()
        except BaseException:
            if container is not None:
                # the caller never receives this id
                await asyncio.shield(self._discard(container.id))
            raise

        logger.debug(f"Started container {container.id} from {image}")
        return container.id

    async def _discard(self, service_id: str) -> None:
        """Remove a container that failed to start, keeping the original error."""
        try:
            await self.remove_service(service_id)
        except RuntimeGatewayError as e:
            logger.error(f"Failed to remove container {service_id} after a failed start: {e}")

    async def remove_service(self, service_id: str) -> None:
        async with self._operation("remove_service"):
            try:
                await self.client.containers.container(service_id).delete(force=True, v=True)
            except DockerError as e:
                if e.status != 404:
                    raise
                logger.warning(f"Container {service_id} was already removed")

    async def _inspect(self, service_id: str) -> Dict[str, Any]:
        return await self.client.containers.container(service_id).show()

    async def get_health_status(self, service_id: str) -> HealthStatus:
        async with self._operation("get_health_status"):
            info = await self._inspect(service_id)
        return self._parse_health_status(info.get("State") or {})

    def _parse_health_status(self, state: Dict[str, Any]) -> HealthStatus:
        """Map a container's inspected state to a health status.

        A container with a health check reports its health; one without is
        RUNNING once its process runs.
        """
        health = state.get("Health")
        if health:
            return HEALTH_STATUSES.get(health.get("Status", ""), HealthStatus.UNKNOWN)
        if state.get("Status") == "running":
            return HealthStatus.RUNNING
        return HealthStatus.UNKNOWN

    async def get_available_resources(self, service_id: str) -> List[Tuple[str, str]]:
        async with self._operation("get_available_resources"):
            info = await self._inspect(service_id)
        return (
            self._parse_port_resources(info)
            + self._parse_volume_resources(info)
            + self._parse_label_resources(service_id, info)
        )

    def _container_ip(self, network_settings: Dict[str, Any]) -> Optional[str]:
        ip = network_settings.get("IPAddress")
        if ip:
            return ip
        for network in (network_settings.get("Networks") or {}).values():
            if network.get("IPAddress"):
                return network["IPAddress"]
        return None

    def _parse_port_resources(self, info: Dict[str, Any]) -> List[Tuple[str, str]]:
        """Build resources for exposed ports.

        Args:
            info: Container inspection data

        Returns:
            (guest URI, host URI) pairs, guest side addressed by the container hostname
        """
        hostname = (info.get("Config") or {}).get("Hostname") or info.get("Id", "")[:12]
        network_settings = info.get("NetworkSettings") or {}
        resources = []
        for key, bindings in sorted((network_settings.get("Ports") or {}).items()):
            port, _, protocol = key.partition("/")
            protocol = protocol or "tcp"
            guest_uri = f"{protocol}://{hostname}:{port}"

            if self.settings.HOST_RESOLUTION == "container_ip":
                ip = self._container_ip(network_settings)
                if not ip:
                    continue
                host_uri = f"{protocol}://{ip}:{port}"
            else:
                if not bindings:
                    continue
                host_uri = f"{protocol}://{self.settings.PUBLISHED_HOST}:{bindings[0]['HostPort']}"

            resources.append((guest_uri, host_uri))
        return resources

    def _parse_volume_resources(self, info: Dict[str, Any]) -> List[Tuple[str, str]]:
        """Build directory resources for declared volumes, reachable on the host through their mount source."""
        volumes = (info.get("Config") or {}).get("Volumes") or {}
        sources = {m.get("Destination"): m.get("Source") for m in info.get("Mounts") or []}
        resources = []
        for destination in sorted(volumes):
            source = sources.get(destination)
            if not source:
                continue
            resources.append((f"file://{destination.rstrip('/')}/", f"file://{source.rstrip('/')}/"))
        return resources

    def _parse_label_resources(self, service_id: str, info: Dict[str, Any]) -> List[Tuple[str, str]]:
        """Build resources declared through resource labels on the image or container.

        A label such as ``mittons.fixtures.resource.config=file:///etc/app/config.json``
        declares a file; a trailing separator declares a directory. They are
        reached from the host through the gateway's file operations.
        """
        labels = (info.get("Config") or {}).get("Labels") or {}
        prefix = self.settings.RESOURCE_LABEL_PREFIX
        resources = []
        for key in sorted(labels):
            if not key.startswith(prefix):
                continue
            parsed = urlparse(labels[key])
            if not parsed.scheme or not parsed.path:
                logger.warning(f"Ignoring malformed resource label {key}={labels[key]}")
                continue
            resources.append((labels[key], f"{parsed.scheme}://{service_id[:12]}{parsed.path}"))
        return resources

    async def _exec(self, service_id: str, cmd: List[str]) -> None:
        """Run a command as root inside a container and wait for it to finish."""
        container = self.client.containers.container(service_id)
        execution = await container.exec(cmd, user="root")
        output = []
        async with execution.start(detach=False) as stream:
            while True:
                message = await stream.read_out()
                if message is None:
                    break
                output.append(message.data)
        details = await execution.inspect()
        if details.get("ExitCode"):
            reason = b"".join(output).decode("utf-8", errors="replace").strip()
            raise RuntimeGatewayError(" ".join(cmd), f"exit code {details['ExitCode']}: {reason}")

    async def add_file(
        self,
        service_id: str,
        host_path: str,
        container_path: str,
        owner: Optional[str] = None,
        permissions: Optional[str] = None,
    ) -> None:
        with open(host_path, "rb") as handle:
            data = handle.read()

        info = tarfile.TarInfo(name=posixpath.basename(container_path))
        info.size = len(data)
        info.mtime = int(time.time())
        info.mode = parse_octal_permissions(permissions) or 0o644

        archive = io.BytesIO()
        with tarfile.open(fileobj=archive, mode="w") as tar:
            tar.addfile(info, io.BytesIO(data))

        async with self._operation("add_file"):
            container = self.client.containers.container(service_id)
            await container.put_archive(posixpath.dirname(container_path) or "/", archive.getvalue())
            if owner:
                await self._exec(service_id, ["chown", owner, container_path])
        logger.debug(f"Copied {host_path} to {service_id}:{container_path}")

    async def remove_file(self, service_id: str, container_path: str) -> None:
        async with self._operation("remove_file"):
            await self._exec(service_id, ["rm", "-f", container_path])

    async def read_file(self, service_id: str, container_path: str) -> bytes:
        async with self._operation("read_file"):
            tar = await self.client.containers.container(service_id).get_archive(container_path)
        with tar:
            member = next((m for m in tar.getmembers() if m.isfile()), None)
            if member is None:
                raise RuntimeGatewayError("read_file", f"{container_path} is not a file")
            return tar.extractfile(member).read()

    async def list_files(self, service_id: str, container_path: str) -> List[str]:
        root = container_path.rstrip("/") or "/"
        async with self._operation("list_files"):
            tar = await self.client.containers.container(service_id).get_archive(root)
        with tar:
            names = [m.name for m in tar.getmembers() if m.isfile()]
        # archive members are prefixed with the directory's own name
        return sorted(name.split("/", 1)[1] for name in names if "/" in name)

    async def create_network(self, name: str, labels: Mapping[str, str]) -> str:
        async with self._operation("create_network"):
            network = await self.client.networks.create(
                {"Name": name, "Labels": dict(labels), "CheckDuplicate": True}
            )
        return network.id

    async def remove_network(self, network_id: str) -> None:
        async with self._operation("remove_network"):
            try:
                network = await self.client.networks.get(network_id)
                await network.delete()
            except DockerError as e:
                if e.status != 404:
                    raise
                logger.warning(f"Network {network_id} was already removed")

    async def connect_network(self, network_id: str, service_id: str, alias: str) -> None:
        async with self._operation("connect_network"):
            network = await self.client.networks.get(network_id)
            await network.connect({"Container": service_id, "EndpointConfig": {"Aliases": [alias]}})

    async def prune_run(self, run_id: str) -> Dict[str, int]:
        """Remove every container and network labelled with a run id.

        Returns:
            Number of containers and networks removed
        """
        label_filter = {"label": [f"{self.settings.RUN_ID_LABEL}={run_id}"]}
        async with self._operation("prune_run"):
            containers = await self.client.containers.list(all=True, filters=json.dumps(label_filter))
            networks = await self.client.networks.list(filters=label_filter)

        for container in containers:
            logger.info(f"Pruning container {container.id} from run {run_id}")
            await self.remove_service(container.id)
        for network in networks:
            logger.info(f"Pruning network {network['Id']} from run {run_id}")
            await self.remove_network(network["Id"])

        return {"containers": len(containers), "networks": len(networks)}

    async def close(self) -> None:
        """Close the client and clean up resources."""
        await self.client.close()
