"""Class-based declaration of test environments.

Example::

    class SftpEnvironment(DeclarativeEnvironment, networks=["backend"]):
        sftp = Container(Image("atmoz/sftp:alpine"), Command("guest:guest"), NetworkAlias("backend", "sftp"))
        redis = Container(Image("redis:alpine"), NetworkAlias("backend", "cache"))

    async with SftpEnvironment(gateway) as env:
        port = env.sftp.resources[0].host_uri
"""

from typing import Any, Dict, Iterable, Optional, Tuple, Union

from mittons_fixtures.config import Settings
from mittons_fixtures.services.containers.directives import Network, Run
from mittons_fixtures.services.containers.gateway import RuntimeGateway
from mittons_fixtures.services.containers.sdk_gateway import SDKDockerGateway
from .coordinator import EnvironmentFixture


class Container:
    """Declares a service on a ``DeclarativeEnvironment`` subclass.

    Reading the attribute from an environment instance returns its live
    ``ContainerService``.
    """

    def __init__(self, *directives: Any) -> None:
        self.directives: Tuple[Any, ...] = directives
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Optional[EnvironmentFixture], owner: type):
        if instance is None:
            return self
        return instance.container(self.name)


class DeclarativeEnvironment(EnvironmentFixture):
    """An environment whose networks and services are declared as class attributes."""

    _declared_containers: Dict[str, Container] = {}
    _declared_networks: Tuple[Network, ...] = ()

    def __init_subclass__(cls, networks: Optional[Iterable[Union[str, Network]]] = None, **kwargs: Any) -> None:
        """Collect declarations.

        Networks may be given as the ``networks=`` class keyword or as a
        ``networks`` class attribute. The attribute is removed from the class
        so it does not hide ``EnvironmentFixture.networks``.

        Raises:
            TypeError: If a class uses both forms
        """
        super().__init_subclass__(**kwargs)
        if "networks" in vars(cls):
            if networks is not None:
                raise TypeError(f"{cls.__name__} declares networks both as a class keyword and as an attribute")
            networks = vars(cls)["networks"]
            delattr(cls, "networks")
        declared: Dict[str, Container] = {}
        # base classes first so subclasses can override a declaration
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, Container):
                    declared[name] = value
        cls._declared_containers = declared
        if networks is not None:
            cls._declared_networks = tuple(n if isinstance(n, Network) else Network(n) for n in networks)

    def __init__(
        self,
        gateway: RuntimeGateway,
        run: Optional[Run] = None,
        settings: Optional[Settings] = None,
        health_timeout: Optional[float] = None,
    ) -> None:
        super().__init__(
            gateway,
            networks=type(self)._declared_networks,
            containers={name: declaration.directives for name, declaration in type(self)._declared_containers.items()},
            run=run,
            settings=settings,
            health_timeout=health_timeout,
        )


def create_environment(
    environment_cls: type = EnvironmentFixture,
    *args: Any,
    settings: Optional[Settings] = None,
    **kwargs: Any,
) -> EnvironmentFixture:
    """Build an environment wired to the default Docker gateway.

    Must be called from a running event loop. The gateway is closed by
    ``close_environment``.
    """
    gateway = SDKDockerGateway(settings)
    return environment_cls(gateway, *args, settings=settings, **kwargs)


async def close_environment(environment: EnvironmentFixture) -> None:
    """Dispose an environment built by ``create_environment`` and close its gateway."""
    try:
        await environment.dispose()
    finally:
        await environment.gateway.close()
