"""Deterministic rendering of broker and ZooKeeper configuration artifacts.

Every render is a pure function of the topology, the local node id and the
options object: the same inputs always produce the same ordered body.
Nodes are always emitted in ascending id order so artifacts generated on
different members differ only in their node-local lines.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kafkaprov.models import (
    ArtifactKind,
    BrokerOptions,
    CoordinationOptions,
    GeneratedArtifact,
)
from kafkaprov.topology import TopologyResolver

if TYPE_CHECKING:
    from kafkaprov.models import NodeAddress, Topology

logger = logging.getLogger(__name__)

_INTER_BROKER_PROTOCOL = "3.9-IV0"


class ArtifactError(Exception):
    """Base class for artifact rendering failures."""


class UnknownLocalIdError(ArtifactError):
    """Raised when the local node id is not a member of the topology."""

    def __init__(self, local_id: int, known_ids: list[int]) -> None:
        self.local_id = local_id
        self.known_ids = known_ids
        known = ", ".join(str(i) for i in known_ids)
        super().__init__(f"Node id {local_id} is not in the topology (known ids: {known})")


def replication_factors(member_count: int) -> tuple[int, int]:
    """Return ``(replication_factor, min_insync_replicas)`` for a cluster size.

    The replication factor is capped at 3 and never exceeds the number of
    members; min in-sync is one less than that, but at least 1.
    """
    factor = max(1, min(3, member_count))
    min_isr = factor - 1 if factor > 1 else 1
    return factor, min_isr


class ArtifactGenerator:
    """Renders the configuration artifacts for one cluster member."""

    def __init__(self, resolver: TopologyResolver | None = None) -> None:
        self._resolver = resolver or TopologyResolver()

    def _require_member(self, topology: Topology, local_id: int) -> NodeAddress:
        node = self._resolver.lookup(topology, local_id)
        if node is None:
            raise UnknownLocalIdError(local_id, sorted(topology.members))
        return node

    def render_broker_config(
        self,
        topology: Topology,
        local_id: int,
        options: BrokerOptions | None = None,
    ) -> GeneratedArtifact:
        """Render ``server.properties`` for broker *local_id*.

        Raises:
            UnknownLocalIdError: If *local_id* is not in *topology*.
        """
        options = options or BrokerOptions()
        node = self._require_member(topology, local_id)

        advertised = options.advertised_host or node.host
        zk_connect = self._resolver.connection_string(topology, options.coordination_port)
        factor, min_isr = replication_factors(len(topology))

        body: list[tuple[str, str | None]] = [
            # identity
            ("broker.id", str(local_id)),
            # listeners
            ("listeners", f"PLAINTEXT://0.0.0.0:{options.listen_port}"),
            ("advertised.listeners", f"PLAINTEXT://{advertised}:{options.listen_port}"),
            ("listener.security.protocol.map", "PLAINTEXT:PLAINTEXT"),
            # coordination
            ("zookeeper.connect", zk_connect),
            ("zookeeper.connection.timeout.ms", "18000"),
            ("zookeeper.session.timeout.ms", "18000"),
            # data
            ("log.dirs", options.data_dir),
            ("num.network.threads", "8"),
            ("num.io.threads", "8"),
            ("socket.send.buffer.bytes", "102400"),
            ("socket.receive.buffer.bytes", "102400"),
            ("socket.request.max.bytes", "104857600"),
            # replication
            ("num.partitions", "5"),
            ("num.recovery.threads.per.data.dir", "1"),
            ("offsets.topic.replication.factor", str(factor)),
            ("transaction.state.log.replication.factor", str(factor)),
            ("transaction.state.log.min.isr", str(min_isr)),
            ("default.replication.factor", str(factor)),
            ("min.insync.replicas", str(min_isr)),
            # retention
            ("log.retention.hours", "168"),
            ("log.retention.bytes", "-1"),
            ("log.segment.bytes", "1073741824"),
            ("log.retention.check.interval.ms", "300000"),
            ("log.cleanup.policy", "delete"),
            # group coordinator
            ("group.initial.rebalance.delay.ms", "3000"),
            ("offsets.topic.num.partitions", "50"),
            ("offsets.retention.minutes", "10080"),
            # compression
            ("compression.type", "lz4"),
            ("message.max.bytes", "1000000"),
            ("replica.fetch.max.bytes", "1048576"),
            # operations
            ("auto.create.topics.enable", "true"),
            ("delete.topic.enable", "true"),
            ("controlled.shutdown.enable", "true"),
            ("controlled.shutdown.max.retries", "3"),
            ("controlled.shutdown.retry.backoff.ms", "5000"),
            ("inter.broker.protocol.version", _INTER_BROKER_PROTOCOL),
            ("log.message.format.version", _INTER_BROKER_PROTOCOL),
        ]
        body.extend((line, None) for line in options.extra_properties)

        logger.debug(
            "Rendered broker config for node %d (replication %d/%d, %d extra lines)",
            local_id,
            factor,
            min_isr,
            len(options.extra_properties),
        )
        return GeneratedArtifact(
            kind=ArtifactKind.BROKER_CONFIG,
            local_id=local_id,
            body=tuple(body),
        )

    def render_coordination_config(
        self,
        topology: Topology,
        local_id: int,
        options: CoordinationOptions | None = None,
    ) -> GeneratedArtifact:
        """Render ``zoo.cfg`` for ZooKeeper member *local_id*.

        Raises:
            UnknownLocalIdError: If *local_id* is not in *topology*.
        """
        options = options or CoordinationOptions()
        self._require_member(topology, local_id)

        body: list[tuple[str, str | None]] = [
            ("tickTime", "2000"),
            ("initLimit", "10"),
            ("syncLimit", "5"),
            ("dataDir", options.data_dir),
        ]
        if options.data_log_dir:
            body.append(("dataLogDir", options.data_log_dir))
        body.extend(
            [
                ("clientPort", str(options.client_port)),
                ("maxClientCnxns", "60"),
                ("maxSessionTimeout", "40000"),
                ("minSessionTimeout", "4000"),
                ("autopurge.snapRetainCount", "5"),
                ("autopurge.purgeInterval", "24"),
                ("preAllocSize", "65536"),
                ("snapCount", "100000"),
                ("4lw.commands.whitelist", "stat,ruok,conf,isro,srvr,mntr"),
            ]
        )
        for node in topology.ordered():
            body.append(
                (f"server.{node.id}", f"{node.host}:{options.peer_port}:{options.election_port}")
            )

        logger.debug(
            "Rendered coordination config for node %d (%d peers)", local_id, len(topology)
        )
        return GeneratedArtifact(
            kind=ArtifactKind.COORDINATION_CONFIG,
            local_id=local_id,
            body=tuple(body),
        )

    def render_myid(self, topology: Topology, local_id: int) -> str:
        """Return the content of ZooKeeper's ``myid`` file for *local_id*.

        Raises:
            UnknownLocalIdError: If *local_id* is not in *topology*.
        """
        self._require_member(topology, local_id)
        return f"{local_id}\n"
