"""Preflight validation system for kafkaprov installations.

Runs an ordered battery of independent checks against the host and the
resolved topology.  A failing or crashing check never stops the batch:
every outcome lands in the report and the caller decides on go/no-go.

Usage:
    from kafkaprov.preflight import run_preflight

    report = run_preflight(context, settings)
    if not report.overall_go:
        print("Preflight failed!")

Or with custom checks:
    from kafkaprov.preflight import PreflightRunner, PrivilegeCheck

    report = PreflightRunner(checks=[PrivilegeCheck()]).run(context)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kafkaprov.preflight.base import (
    CheckResult,
    CheckStatus,
    FunctionCheck,
    PreflightCheck,
    PreflightContext,
    PreflightReport,
)
from kafkaprov.preflight.host import (
    DirectoryPresentCheck,
    DiskSpaceCheck,
    MountPresentCheck,
    PrivilegeCheck,
)
from kafkaprov.preflight.network import (
    AdvertisedAddressCheck,
    PortReachableCheck,
    RemoteReachableCheck,
)
from kafkaprov.preflight.providers import (
    AddressProvider,
    FilesystemInfo,
    HttpProbe,
    HttpxProbe,
    LocalFilesystemInfo,
    PortConnector,
    SocketPortConnector,
    UdpAddressProvider,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from kafkaprov.config import KafkaprovSettings
    from kafkaprov.models import Topology

__all__ = [
    "AddressProvider",
    "AdvertisedAddressCheck",
    "CheckResult",
    "CheckStatus",
    "DirectoryPresentCheck",
    "DiskSpaceCheck",
    "FilesystemInfo",
    "FunctionCheck",
    "HttpProbe",
    "HttpxProbe",
    "LocalFilesystemInfo",
    "MountPresentCheck",
    "PortConnector",
    "PortReachableCheck",
    "PreflightCheck",
    "PreflightContext",
    "PreflightReport",
    "PreflightRunner",
    "PrivilegeCheck",
    "RemoteReachableCheck",
    "SocketPortConnector",
    "UdpAddressProvider",
    "default_checks",
    "diagnostic_checks",
    "run_diagnostics",
    "run_preflight",
]

logger = logging.getLogger(__name__)


class PreflightRunner:
    """Orchestrates running multiple preflight checks.

    Only coordinates check execution, not the checks themselves.
    Checks run sequentially in the given order; an exception raised by a
    check is captured as a FAIL result and the next check still runs.

    Parameters
    ----------
    checks:
        Ordered preflight checks to run.
    """

    def __init__(self, checks: Sequence[PreflightCheck]) -> None:
        self.checks = list(checks)

    def run(self, context: PreflightContext) -> PreflightReport:
        """Run every check against *context*, in order.

        Returns
        -------
        PreflightReport:
            One result per check, in execution order.
        """
        report = PreflightReport()
        for check in self.checks:
            result = self._run_one(check, context)
            log = logger.warning if result.status is not CheckStatus.PASS else logger.info
            log("[%s] %s: %s", result.status.value.upper(), result.name, result.detail)
            report.results.append(result)
        return report

    @staticmethod
    def _run_one(check: PreflightCheck, context: PreflightContext) -> CheckResult:
        try:
            name = check.name
        except Exception:  # noqa: BLE001
            name = type(check).__name__
        try:
            return check.check(context)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Preflight check %r raised", name)
            return CheckResult(
                name=name,
                status=CheckStatus.FAIL,
                detail=str(exc) or type(exc).__name__,
            )

    @staticmethod
    def format_issues(report: PreflightReport) -> str:
        """Format failures and warnings as a human-readable message."""
        lines = []
        for result in report.results:
            if result.status is CheckStatus.PASS:
                continue
            lines.append(f"[{result.status.value.upper()}] {result.name}: {result.detail}")
            if result.remediation:
                lines.append(f"  Remediation: {result.remediation}")
        return "\n".join(lines)


def default_checks(settings: KafkaprovSettings) -> list[PreflightCheck]:
    """Build the standard ordered battery for a broker node.

    Order: privilege, data directory, data disk space, logs disk space,
    dedicated mount, repository reachability, advertised address.
    """
    return [
        PrivilegeCheck(),
        DirectoryPresentCheck(settings.kafka_data_dir),
        DiskSpaceCheck(settings.kafka_data_dir, settings.min_data_bytes, label="data"),
        DiskSpaceCheck(settings.kafka_logs_dir, settings.min_logs_bytes, label="logs"),
        MountPresentCheck(settings.kafka_data_dir),
        RemoteReachableCheck(settings.repo_url, settings.http_timeout),
        AdvertisedAddressCheck(),
    ]


def diagnostic_checks(topology: Topology, settings: KafkaprovSettings) -> list[PreflightCheck]:
    """Build the cluster port battery: ZooKeeper on every member, then Kafka.

    Members are checked in ascending id order.
    """
    members = topology.ordered()
    checks: list[PreflightCheck] = [
        PortReachableCheck(
            "zookeeper", node.id, node.host, settings.client_port, settings.connect_timeout
        )
        for node in members
    ]
    checks.extend(
        PortReachableCheck(
            "kafka", node.id, node.host, settings.listen_port, settings.connect_timeout
        )
        for node in members
    )
    return checks


def run_preflight(context: PreflightContext, settings: KafkaprovSettings) -> PreflightReport:
    """Convenience function to run the default checks."""
    return PreflightRunner(default_checks(settings)).run(context)


def run_diagnostics(context: PreflightContext, settings: KafkaprovSettings) -> PreflightReport:
    """Convenience function to run the cluster port checks for ``context.topology``."""
    return PreflightRunner(diagnostic_checks(context.topology, settings)).run(context)
