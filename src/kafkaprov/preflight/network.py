"""Network preflight checks: repository reachability, advertised address and
cluster port reachability.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kafkaprov.preflight.base import CheckResult, CheckStatus

if TYPE_CHECKING:
    from kafkaprov.preflight.base import PreflightContext

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class RemoteReachableCheck:
    """Passes iff a HEAD request to *url* gets a non-error response in time.

    Parameters:
        url: Repository URL to probe.
        timeout: Seconds before the probe is abandoned (default 5).
    """

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        if timeout <= 0:
            msg = f"timeout must be > 0, got {timeout}"
            raise ValueError(msg)
        self._url = url
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "remote-reachable"

    def check(self, context: PreflightContext) -> CheckResult:
        try:
            status_code = context.http.head(self._url, self._timeout)
        except (TimeoutError, ConnectionError, OSError) as exc:
            logger.warning("Repository probe failed: %s", exc)
            return CheckResult(
                self.name,
                CheckStatus.FAIL,
                f"Repository unreachable at {self._url}: {exc}",
                remediation="Check the repository server address and firewall rules.",
            )

        if status_code >= 400:
            return CheckResult(
                self.name,
                CheckStatus.FAIL,
                f"Repository at {self._url} answered HTTP {status_code}",
                remediation="Verify the repository path is published on the server.",
            )
        return CheckResult(
            self.name,
            CheckStatus.PASS,
            f"Repository reachable at {self._url} (HTTP {status_code})",
        )


class AdvertisedAddressCheck:
    """Compares the topology host of the local node with the real address.

    A mismatch only warns: the broker then advertises the detected address.
    """

    @property
    def name(self) -> str:
        return "advertised-address"

    def check(self, context: PreflightContext) -> CheckResult:
        node = context.topology.members.get(context.local_id)
        if node is None:
            return CheckResult(
                self.name,
                CheckStatus.FAIL,
                f"Node id {context.local_id} is not in the topology",
                remediation="Pass a --node-id listed in KAFKA_NODES.",
            )

        actual = context.address.local_address()
        if actual is None:
            return CheckResult(
                self.name,
                CheckStatus.WARN,
                f"Could not detect the local address; configured {node.host}",
            )
        if actual != node.host:
            return CheckResult(
                self.name,
                CheckStatus.WARN,
                f"Configured address {node.host} differs from detected address {actual}",
                remediation=f"Use --advertised-host {actual} or fix KAFKA_NODES.",
            )
        return CheckResult(self.name, CheckStatus.PASS, f"Local address matches {node.host}")


class PortReachableCheck:
    """Passes iff a TCP connection to ``host:port`` opens within *timeout*.

    Parameters:
        service: Label for the listening service, ``zookeeper`` or ``kafka``.
        node_id: Topology id of the member being checked.
        host: Member address.
        port: Port the service should listen on.
        timeout: Seconds before the connection attempt is abandoned.
    """

    def __init__(
        self,
        service: str,
        node_id: int,
        host: str,
        port: int,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if timeout <= 0:
            msg = f"timeout must be > 0, got {timeout}"
            raise ValueError(msg)
        self._service = service
        self._node_id = node_id
        self._host = host
        self._port = port
        self._timeout = timeout

    @property
    def name(self) -> str:
        return f"port-reachable:{self._service}:{self._node_id}"

    def check(self, context: PreflightContext) -> CheckResult:
        endpoint = f"{self._host}:{self._port}"
        try:
            context.ports.connect(self._host, self._port, self._timeout)
        except TimeoutError:
            return CheckResult(
                self.name,
                CheckStatus.FAIL,
                f"{self._service} on node {self._node_id} ({endpoint}) timed out "
                f"after {self._timeout}s",
                remediation=f"Check that {self._service} is running and the port is open.",
            )
        except OSError as exc:
            return CheckResult(
                self.name,
                CheckStatus.FAIL,
                f"{self._service} on node {self._node_id} ({endpoint}) is not listening: {exc}",
                remediation=f"Check that {self._service} is running and the port is open.",
            )
        return CheckResult(
            self.name,
            CheckStatus.PASS,
            f"{self._service} is listening on node {self._node_id} ({endpoint})",
        )
