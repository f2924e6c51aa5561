"""Shared test fixtures for kafkaprov."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from kafkaprov.models import Topology
from kafkaprov.preflight.base import PreflightContext
from kafkaprov.topology import build_topology

BANKING_OVERRIDE = "1:172.20.2.113,2:172.20.2.114,3:172.20.2.115"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop KAFKAPROV_/KAFKA_NODES env vars and the cached settings singleton."""
    from kafkaprov.config import _clear_settings_cache

    for key in list(os.environ):
        if key.startswith("KAFKAPROV_") or key == "KAFKA_NODES":
            monkeypatch.delenv(key, raising=False)
    _clear_settings_cache()


@pytest.fixture
def three_node_topology() -> Topology:
    """The three-node banking cluster."""
    return build_topology({1: "172.20.2.113", 2: "172.20.2.114", 3: "172.20.2.115"})


@dataclass
class FakeFilesystem:
    """In-memory FilesystemInfo."""

    free: dict[Path, int] = field(default_factory=dict)
    mounts: set[Path] = field(default_factory=set)
    dirs: set[Path] = field(default_factory=set)

    def exists(self, path: Path) -> bool:
        return path in self.dirs

    def free_bytes(self, path: Path) -> int:
        return self.free[path]

    def is_mount(self, path: Path) -> bool:
        return path in self.mounts


@dataclass
class FakeHttp:
    """HttpProbe returning a fixed status or raising a fixed error."""

    status_code: int = 200
    error: Exception | None = None
    calls: list[tuple[str, float]] = field(default_factory=list)

    def head(self, url: str, timeout: float) -> int:
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.status_code


@dataclass
class FakePorts:
    """PortConnector where only the listed endpoints accept connections."""

    open: set[tuple[str, int]] = field(default_factory=set)
    timeouts: set[tuple[str, int]] = field(default_factory=set)
    calls: list[tuple[str, int, float]] = field(default_factory=list)

    def connect(self, host: str, port: int, timeout: float) -> None:
        self.calls.append((host, port, timeout))
        if (host, port) in self.timeouts:
            msg = "timed out"
            raise TimeoutError(msg)
        if (host, port) not in self.open:
            msg = "Connection refused"
            raise ConnectionRefusedError(msg)


@dataclass
class FakeAddress:
    """AddressProvider returning a fixed address."""

    address: str | None = None

    def local_address(self) -> str | None:
        return self.address


@pytest.fixture
def fake_fs() -> FakeFilesystem:
    return FakeFilesystem()


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def fake_address() -> FakeAddress:
    return FakeAddress(address="172.20.2.114")


@pytest.fixture
def fake_ports() -> FakePorts:
    return FakePorts()


@pytest.fixture
def preflight_context(
    three_node_topology: Topology,
    fake_fs: FakeFilesystem,
    fake_http: FakeHttp,
    fake_address: FakeAddress,
    fake_ports: FakePorts,
) -> PreflightContext:
    """Context for node 2 running as root with fake providers."""
    return PreflightContext(
        topology=three_node_topology,
        local_id=2,
        is_privileged=True,
        filesystem=fake_fs,
        http=fake_http,
        address=fake_address,
        ports=fake_ports,
    )
