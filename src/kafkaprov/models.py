"""Pydantic models and enums for kafkaprov."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TopologySource(StrEnum):
    """Provenance of a resolved topology."""

    DEFAULT = "default"
    OVERRIDE = "override"


class ArtifactKind(StrEnum):
    """Kinds of configuration artifact the generator renders."""

    BROKER_CONFIG = "broker"
    COORDINATION_CONFIG = "coordination"


class NodeAddress(BaseModel):
    """One cluster member."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int = Field(ge=1)
    host: str = Field(min_length=1)


class Topology(BaseModel):
    """Full cluster membership, immutable once resolved.

    ``members`` is exposed as a read-only mapping keyed by node id.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    members: Mapping[int, NodeAddress]
    source: TopologySource = TopologySource.DEFAULT

    @field_validator("members", mode="after")
    @classmethod
    def _freeze_members(cls, v: Mapping[int, NodeAddress]) -> Mapping[int, NodeAddress]:
        for key, node in v.items():
            if key != node.id:
                msg = f"Member key {key} does not match node id {node.id}"
                raise ValueError(msg)
        return MappingProxyType(dict(v))

    def __len__(self) -> int:
        return len(self.members)

    def ordered(self) -> list[NodeAddress]:
        """Return members sorted by ascending id."""
        return [self.members[node_id] for node_id in sorted(self.members)]

    def describe(self) -> list[tuple[int, str]]:
        """Return ``(id, host)`` pairs in ascending id order for display."""
        return [(node.id, node.host) for node in self.ordered()]

    def missing_ids(self) -> list[int]:
        """Return ids absent from the dense range ``1..max(id)``."""
        if not self.members:
            return []
        return [i for i in range(1, max(self.members) + 1) if i not in self.members]


class BrokerOptions(BaseModel):
    """Options for rendering the broker ``server.properties`` artifact."""

    model_config = ConfigDict(extra="forbid")

    data_dir: str = "/data/kafka"
    listen_port: int = Field(default=9092, ge=1, le=65535)
    coordination_port: int = Field(default=2181, ge=1, le=65535)
    advertised_host: str | None = None
    extra_properties: list[str] = []


class CoordinationOptions(BaseModel):
    """Options for rendering the ZooKeeper ``zoo.cfg`` artifact."""

    model_config = ConfigDict(extra="forbid")

    data_dir: str = "/data/zookeeper"
    data_log_dir: str | None = None
    client_port: int = Field(default=2181, ge=1, le=65535)
    peer_port: int = Field(default=2888, ge=1, le=65535)
    election_port: int = Field(default=3888, ge=1, le=65535)


class GeneratedArtifact(BaseModel):
    """Rendered configuration payload, consumed by the file-writing layer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ArtifactKind
    local_id: int
    body: tuple[tuple[str, str | None], ...]

    def lines(self) -> list[str]:
        """Return the body as ``key=value`` lines in insertion order.

        Passthrough lines are stored with a ``None`` value and returned verbatim.
        """
        return [key if value is None else f"{key}={value}" for key, value in self.body]

    def get(self, key: str) -> str | None:
        """Return the first value stored under *key*, or None if the key is absent.

        Passthrough lines are not properties and are never matched.
        """
        for k, v in self.body:
            if k == key and v is not None:
                return v
        return None

    def passthrough(self) -> list[str]:
        """Return the raw passthrough lines in body order."""
        return [k for k, v in self.body if v is None]
