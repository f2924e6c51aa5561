"""Topology resolution for the Kafka/ZooKeeper cluster.

Turns an ``id:host(,id:host)*`` override string, or the built-in default
membership, into an immutable :class:`~kafkaprov.models.Topology`.

Parsing rules:
- Entries are separated by ``,``; surrounding whitespace is ignored.
- ``id`` is a positive integer without leading zeros.
- ``host`` is an IPv4 dotted-quad, every group <= 255.
- An exact ``id:host`` repeat is ignored (first one kept); the same id with
  a different host is a conflict.
- The result must hold at least ``minimum_members`` distinct ids.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import yaml

from kafkaprov.models import NodeAddress, Topology, TopologySource
from kafkaprov.validation import parse_entry, validate_ipv4, validate_node_id

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MINIMUM_MEMBERS = 3

DEFAULT_NODES: dict[int, str] = {
    1: "172.20.2.113",
    2: "172.20.2.114",
    3: "172.20.2.115",
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TopologyError(Exception):
    """Base class for topology resolution failures."""


class MalformedEntryError(TopologyError):
    """Raised when an override entry does not match ``id:IPv4``."""

    def __init__(self, entry: str) -> None:
        self.entry = entry
        super().__init__(
            f"Malformed topology entry {entry!r}: expected 'ID:IP' "
            f"such as '1:172.20.2.113'"
        )


class DuplicateIdError(TopologyError):
    """Raised when one node id is mapped to two different hosts."""

    def __init__(self, node_id: int, first_host: str, second_host: str) -> None:
        self.node_id = node_id
        self.first_host = first_host
        self.second_host = second_host
        super().__init__(
            f"Node id {node_id} is assigned to both {first_host} and {second_host}"
        )


class InsufficientMembersError(TopologyError):
    """Raised when fewer distinct members than the quorum minimum are given."""

    def __init__(self, count: int, minimum: int) -> None:
        self.count = count
        self.minimum = minimum
        super().__init__(
            f"Cluster requires at least {minimum} nodes, found {count}"
        )


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def build_topology(
    nodes: Mapping[int, str],
    source: TopologySource = TopologySource.DEFAULT,
) -> Topology:
    """Build a Topology from a plain ``{id: host}`` mapping."""
    members = {node_id: NodeAddress(id=node_id, host=host) for node_id, host in nodes.items()}
    return Topology(members=members, source=source)


def default_topology() -> Topology:
    """Return the built-in three-node banking topology."""
    return build_topology(DEFAULT_NODES)


def _add_member(nodes: dict[int, str], node_id: int, host: str, entry: str) -> None:
    existing = nodes.get(node_id)
    if existing is None:
        nodes[node_id] = host
    elif existing != host:
        raise DuplicateIdError(node_id, existing, host)
    else:
        logger.debug("Ignoring repeated topology entry %s", entry)


def parse_override(override: str) -> dict[int, str]:
    """Parse an override string into an ``{id: host}`` mapping.

    Raises:
        MalformedEntryError: On the first entry not matching ``id:IPv4``.
        DuplicateIdError: When an id reappears with a different host.
    """
    nodes: dict[int, str] = {}
    for raw in override.split(","):
        entry = raw.strip()
        parsed = parse_entry(entry)
        if parsed is None:
            raise MalformedEntryError(entry)
        node_id, host = parsed
        _add_member(nodes, node_id, host, entry)
    return nodes


def parse_node_mapping(mapping: Mapping[Any, Any]) -> dict[int, str]:
    """Validate an ``{id: host}`` mapping read from a structured source.

    Each pair is checked on its own; nothing is joined or re-split.

    Raises:
        MalformedEntryError: If an id or host is invalid.
        DuplicateIdError: When two keys resolve to the same id with different hosts.
    """
    nodes: dict[int, str] = {}
    for raw_id, raw_host in mapping.items():
        entry = f"{raw_id}:{raw_host}"
        if not isinstance(raw_host, str):
            raise MalformedEntryError(entry)
        try:
            node_id = validate_node_id(raw_id)
            host = validate_ipv4(raw_host)
        except ValueError as exc:
            raise MalformedEntryError(entry) from exc
        _add_member(nodes, node_id, host, entry)
    return nodes


def load_topology_file(path: Path, minimum_members: int = DEFAULT_MINIMUM_MEMBERS) -> Topology:
    """Load default membership from a YAML file.

    The file holds a ``nodes`` mapping of id to IPv4 host::

        nodes:
          1: 10.0.0.1
          2: 10.0.0.2
          3: 10.0.0.3

    Every pair is validated with the same id and IPv4 rules as an
    override entry.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the YAML is malformed.
        TopologyError: If an entry is invalid or quorum is not met.
    """
    if not path.is_file():
        msg = f"Topology file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open(encoding="utf-8") as fh:
        data: Any = yaml.safe_load(fh)

    if not isinstance(data, dict) or not isinstance(data.get("nodes"), dict):
        msg = f"Topology file {path} must contain a 'nodes' mapping"
        raise ValueError(msg)

    nodes = parse_node_mapping(data["nodes"])
    _check_quorum(nodes, minimum_members)
    logger.info("Loaded default topology from %s (%d nodes)", path, len(nodes))
    return build_topology(nodes)


def _check_quorum(nodes: Mapping[int, str], minimum_members: int) -> None:
    if len(nodes) < minimum_members:
        raise InsufficientMembersError(len(nodes), minimum_members)


# ---------------------------------------------------------------------------
# TopologyResolver
# ---------------------------------------------------------------------------


class TopologyResolver:
    """Resolves, inspects and formats cluster topologies.

    Parameters
    ----------
    minimum_members:
        Minimum number of distinct ids an override must provide.
        Defaults to 3, the quorum the installers have always required.
    """

    def __init__(self, minimum_members: int = DEFAULT_MINIMUM_MEMBERS) -> None:
        if minimum_members < 1:
            msg = f"minimum_members must be >= 1, got {minimum_members}"
            raise ValueError(msg)
        self.minimum_members = minimum_members

    def resolve(self, override: str | None, defaults: Topology) -> Topology:
        """Return the override topology if given, else *defaults*.

        Defaults are returned untouched; they are validated when they are
        built or loaded, not on every resolve.

        Raises:
            MalformedEntryError: An entry does not match ``id:IPv4``.
            DuplicateIdError: An id is assigned two different hosts.
            InsufficientMembersError: Fewer than ``minimum_members`` ids.
        """
        if override is None or not override.strip():
            logger.info("No topology override, using defaults (%d nodes)", len(defaults))
            return defaults

        nodes = parse_override(override)
        _check_quorum(nodes, self.minimum_members)

        topology = build_topology(nodes, TopologySource.OVERRIDE)
        missing = topology.missing_ids()
        if missing:
            logger.warning(
                "Topology ids are not contiguous, missing: %s",
                ", ".join(str(i) for i in missing),
            )
        logger.info("Resolved topology override with %d nodes", len(topology))
        return topology

    @staticmethod
    def lookup(topology: Topology, node_id: int) -> NodeAddress | None:
        """Return the member with *node_id*, or None."""
        return topology.members.get(node_id)

    @staticmethod
    def connection_string(topology: Topology, port: int) -> str:
        """Render ``host1:port,host2:port,...`` ordered by ascending id."""
        return ",".join(f"{node.host}:{port}" for node in topology.ordered())


def resolve(
    override: str | None,
    defaults: Topology,
    *,
    minimum_members: int = DEFAULT_MINIMUM_MEMBERS,
) -> Topology:
    """Convenience wrapper around :meth:`TopologyResolver.resolve`."""
    return TopologyResolver(minimum_members=minimum_members).resolve(override, defaults)


def resolve_from_settings(
    nodes: str | None,
    topology_file: Path | None,
    minimum_members: int = DEFAULT_MINIMUM_MEMBERS,
) -> Topology:
    """Resolve using the override and defaults file named in settings."""
    if topology_file is not None:
        defaults = load_topology_file(topology_file, minimum_members)
    else:
        defaults = default_topology()
    return resolve(nodes, defaults, minimum_members=minimum_members)
