"""Tests for directive resolution."""

from datetime import timedelta

import pytest

from mittons_fixtures.services.containers.directives import (
    Command,
    HealthCheck,
    Image,
    Network,
    NetworkAlias,
    Run,
    resolve_network_spec,
    resolve_service_spec,
)
from mittons_fixtures.services.containers.exceptions import (
    ImageNameMissingError,
    InvalidArgumentError,
    InvalidOperationError,
    MultipleImageNamesProvidedError,
    UnknownNetworkError,
)
from mittons_fixtures.services.containers.models import PullOption


def test_service_spec_with_image_and_run():
    """Test resolving the minimal service declaration."""
    run = Run("run-1")
    spec = resolve_service_spec([Image("alpine:3.15"), run])

    assert spec.image == "alpine:3.15"
    assert spec.pull_option == PullOption.MISSING
    assert spec.command == []
    assert spec.health_check is None
    assert spec.run == run
    assert spec.attachments == ()
    assert spec.labels == {"mittons.fixtures.run.id": "run-1"}


@pytest.mark.parametrize("directives", [[], [Run()], [Command("echo"), Run()]])
def test_service_spec_without_image(directives):
    """Test that a declaration with no image is rejected."""
    with pytest.raises(ImageNameMissingError):
        resolve_service_spec(directives)


@pytest.mark.parametrize("count", [2, 3])
def test_service_spec_with_multiple_images(count):
    """Test that a declaration with several images is rejected and names them."""
    images = [Image(f"alpine:3.{n}") for n in range(count)]

    with pytest.raises(MultipleImageNamesProvidedError) as exc_info:
        resolve_service_spec(images + [Run()], service="db")

    assert exc_info.value.image_names == [i.name for i in images]
    assert "db" in str(exc_info.value)


def test_image_checked_before_run():
    """Test that image errors win over a missing run."""
    with pytest.raises(ImageNameMissingError):
        resolve_service_spec([])


@pytest.mark.parametrize("runs", [[], [Run("a"), Run("b")]])
def test_service_spec_requires_exactly_one_run(runs):
    with pytest.raises(InvalidOperationError) as exc_info:
        resolve_service_spec([Image("alpine")] + runs)

    assert exc_info.value.directive == "Run"
    assert exc_info.value.count == len(runs)


def test_service_spec_rejects_repeated_command():
    with pytest.raises(InvalidOperationError):
        resolve_service_spec([Image("alpine"), Command("a"), Command("b"), Run()])


def test_service_spec_rejects_repeated_health_check():
    with pytest.raises(InvalidOperationError):
        resolve_service_spec([Image("alpine"), HealthCheck(), HealthCheck(disabled=True), Run()])


@pytest.mark.parametrize(
    "command,expected",
    [
        ("guest:guest", ["guest:guest"]),
        ("tail -f /dev/null", ["tail", "-f", "/dev/null"]),
        ("sh -c 'echo hello world'", ["sh", "-c", "echo hello world"]),
        (["redis-server", "--save", ""], ["redis-server", "--save"]),
        ("", []),
    ],
)
def test_command_arguments(command, expected):
    """Test that commands become argv lists."""
    spec = resolve_service_spec([Image("alpine"), Command(command), Run()])
    assert spec.command == expected


def test_health_check_disabled_flag():
    spec = resolve_service_spec([Image("alpine"), HealthCheck(disabled=True, command="true"), Run()])
    assert spec.health_check_disabled


def test_health_check_enabled_by_default():
    spec = resolve_service_spec([Image("alpine"), HealthCheck(interval=timedelta(seconds=1)), Run()])
    assert not spec.health_check_disabled


def test_attachments_keep_declaration_order():
    aliases = [NetworkAlias("net1", "first"), NetworkAlias("net2", "second"), NetworkAlias("net1", "third")]
    spec = resolve_service_spec([Image("alpine"), *aliases, Run()], known_networks={"net1", "net2"})
    assert spec.attachments == tuple(aliases)


def test_attachment_to_unknown_network():
    """Test that aliases to undeclared networks are rejected."""
    with pytest.raises(UnknownNetworkError) as exc_info:
        resolve_service_spec([Image("alpine"), NetworkAlias("missing", "db"), Run()], known_networks={"net1"})

    assert exc_info.value.network == "missing"
    assert exc_info.value.alias == "db"


def test_run_label_uses_custom_key():
    spec = resolve_service_spec([Image("alpine"), Run("abc")], run_id_label="custom.run")
    assert spec.labels == {"custom.run": "abc"}


def test_run_defaults():
    """Test that runs get a unique id and tear down by default."""
    first, second = Run(), Run()
    assert first.id != second.id
    assert first.teardown_on_complete


def test_network_spec():
    spec = resolve_network_spec([Network("backend"), Run("run-2")])

    assert spec.name == "backend"
    assert spec.labels == {"mittons.fixtures.run.id": "run-2"}


@pytest.mark.parametrize(
    "directives",
    [
        [Run()],
        [Network("a"), Network("b"), Run()],
        [Network("a")],
        [Network("a"), Run(), Run()],
    ],
)
def test_network_spec_requires_one_network_and_one_run(directives):
    with pytest.raises(InvalidOperationError):
        resolve_network_spec(directives)


@pytest.mark.parametrize("name", ["", " ", "\t\n", None])
def test_network_spec_rejects_blank_names(name):
    with pytest.raises(InvalidArgumentError):
        resolve_network_spec([Network(name), Run()])
