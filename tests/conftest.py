"""Shared test fixtures."""

from __future__ import annotations

import json
import textwrap
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from workload_discovery.cluster import ClusterClient, CommandResult


UBUNTU_OS_RELEASE = textwrap.dedent("""\
    PRETTY_NAME="Ubuntu 22.04.4 LTS"
    NAME="Ubuntu"
    VERSION_ID="22.04"
    VERSION="22.04.4 LTS (Jammy Jellyfish)"
    ID=ubuntu
    ID_LIKE=debian
    HOME_URL="https://www.ubuntu.com/"
    """)

DEBIAN_OS_RELEASE = textwrap.dedent("""\
    PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
    NAME="Debian GNU/Linux"
    VERSION_ID="12"
    ID=debian
    """)

ALPINE_OS_RELEASE = textwrap.dedent("""\
    NAME="Alpine Linux"
    ID=alpine
    VERSION_ID=3.19.1
    PRETTY_NAME="Alpine Linux v3.19"
    """)

UBI_FIPS_OS_RELEASE = textwrap.dedent("""\
    NAME="Red Hat Enterprise Linux"
    VERSION="8.9 (Ootpa)"
    ID="rhel"
    ID_LIKE="fedora"
    FIPS_MODE=yes
    """)

WOLFI_OS_RELEASE = textwrap.dedent("""\
    ID=wolfi
    NAME="Wolfi"
    PRETTY_NAME="Wolfi"
    """)


def pod(namespace: str, name: str, *containers: tuple[str, str]) -> dict[str, Any]:
    """Build a minimal pod item as returned by ``kubectl get pods -o json``."""
    return {
        "metadata": {"namespace": namespace, "name": name},
        "spec": {"containers": [{"name": c, "image": img} for c, img in containers]},
    }


def pod_list(*pods: dict[str, Any]) -> str:
    return json.dumps({"apiVersion": "v1", "kind": "List", "items": list(pods)})


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(command="kubectl", returncode=0, stdout=stdout, stderr="")


def failed(stderr: str = "error") -> CommandResult:
    return CommandResult(command="kubectl", returncode=1, stdout="", stderr=stderr)


FakeClientFactory = Callable[..., MagicMock]


@pytest.fixture()
def make_client() -> FakeClientFactory:
    """Return a factory for ``ClusterClient`` mocks.

    ``pods`` is a list of pod items (or a ``CommandResult`` to return from
    ``list_pods`` as-is). ``releases`` maps ``(namespace, pod, container)`` to
    os-release text; missing keys make the exec fail like a distroless image.
    """

    def _factory(
        pods: list[dict[str, Any]] | CommandResult,
        releases: dict[tuple[str, str, str], str] | None = None,
    ) -> MagicMock:
        releases = releases or {}
        client = MagicMock(spec=ClusterClient)

        if isinstance(pods, CommandResult):
            client.list_pods.return_value = pods
        else:
            client.list_pods.return_value = ok(pod_list(*pods))

        def _exec(namespace, pod_name, container, command, timeout=10):
            content = releases.get((namespace, pod_name, container))
            if content is None:
                return failed('cat: can\'t open \'/etc/os-release\': No such file or directory')
            return ok(content)

        client.exec_in_container.side_effect = _exec
        client.check_connectivity.return_value = ok('{"serverVersion": {}}')
        return client

    return _factory
