"""kafkaprov - topology resolution and config generation for Kafka/ZooKeeper clusters."""

from __future__ import annotations

__version__ = "0.1.0"

from kafkaprov.artifacts import ArtifactGenerator, UnknownLocalIdError
from kafkaprov.models import GeneratedArtifact, NodeAddress, Topology, TopologySource
from kafkaprov.preflight import PreflightReport, PreflightRunner
from kafkaprov.topology import (
    DuplicateIdError,
    InsufficientMembersError,
    MalformedEntryError,
    TopologyError,
    TopologyResolver,
)

__all__ = [
    "__version__",
    "ArtifactGenerator",
    "DuplicateIdError",
    "GeneratedArtifact",
    "InsufficientMembersError",
    "MalformedEntryError",
    "NodeAddress",
    "PreflightReport",
    "PreflightRunner",
    "Topology",
    "TopologyError",
    "TopologyResolver",
    "TopologySource",
    "UnknownLocalIdError",
]
