"""Tests for the preflight validation system.

- CheckResult / PreflightReport aggregation
- PreflightRunner ordering and exception containment
- Host checks (privilege, directory, mount, disk space)
- Network checks (repository reachability, advertised address)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from kafkaprov.config import KafkaprovSettings
from kafkaprov.preflight import (
    AdvertisedAddressCheck,
    CheckResult,
    CheckStatus,
    DirectoryPresentCheck,
    DiskSpaceCheck,
    FunctionCheck,
    MountPresentCheck,
    PortReachableCheck,
    PreflightReport,
    PreflightRunner,
    PrivilegeCheck,
    RemoteReachableCheck,
    default_checks,
    diagnostic_checks,
    run_diagnostics,
    run_preflight,
)
from kafkaprov.topology import build_topology

if TYPE_CHECKING:
    from kafkaprov.preflight import PreflightContext
    from tests.conftest import FakeAddress, FakeFilesystem, FakeHttp, FakePorts

GIB = 1024 * 1024 * 1024
DATA = Path("/data/kafka")


def _result(name: str, status: CheckStatus) -> CheckResult:
    return CheckResult(name=name, status=status, detail=f"{name} {status}")


# ---------------------------------------------------------------------------
# PreflightReport
# ---------------------------------------------------------------------------


class TestPreflightReport:
    """Aggregation of check results."""

    def test_empty_report_is_go(self) -> None:
        assert PreflightReport().overall_go is True

    def test_warn_does_not_block(self) -> None:
        report = PreflightReport([_result("a", CheckStatus.PASS), _result("b", CheckStatus.WARN)])
        assert report.overall_go is True
        assert [r.name for r in report.warnings()] == ["b"]

    def test_fail_blocks(self) -> None:
        report = PreflightReport([_result("a", CheckStatus.FAIL), _result("b", CheckStatus.PASS)])
        assert report.overall_go is False
        assert [r.name for r in report.failures()] == ["a"]

    def test_to_dict(self) -> None:
        report = PreflightReport([_result("a", CheckStatus.WARN)])
        data = report.to_dict()
        assert data["overall_go"] is True
        assert data["results"] == [
            {"name": "a", "status": "warn", "detail": "a warn", "remediation": None}
        ]


# ---------------------------------------------------------------------------
# PreflightRunner
# ---------------------------------------------------------------------------


class TestPreflightRunner:
    """Ordering, containment and formatting."""

    def test_runs_in_given_order(self, preflight_context: PreflightContext) -> None:
        seen: list[str] = []

        def make(name: str) -> FunctionCheck:
            def fn(_ctx: PreflightContext) -> CheckResult:
                seen.append(name)
                return _result(name, CheckStatus.PASS)

            return FunctionCheck(name, fn)

        report = PreflightRunner([make("c"), make("a"), make("b")]).run(preflight_context)
        assert seen == ["c", "a", "b"]
        assert [r.name for r in report.results] == ["c", "a", "b"]

    def test_raising_check_is_contained(self, preflight_context: PreflightContext) -> None:
        def boom(_ctx: PreflightContext) -> CheckResult:
            msg = "statvfs failed"
            raise OSError(msg)

        checks = [
            FunctionCheck("first", lambda _ctx: _result("first", CheckStatus.PASS)),
            FunctionCheck("broken", boom),
            FunctionCheck("last", lambda _ctx: _result("last", CheckStatus.WARN)),
        ]
        report = PreflightRunner(checks).run(preflight_context)

        assert [r.name for r in report.results] == ["first", "broken", "last"]
        broken = report.results[1]
        assert broken.status is CheckStatus.FAIL
        assert broken.detail == "statvfs failed"
        assert report.results[2].status is CheckStatus.WARN
        assert report.overall_go is False

    def test_exception_without_message_uses_type_name(
        self, preflight_context: PreflightContext
    ) -> None:
        def boom(_ctx: PreflightContext) -> CheckResult:
            raise RuntimeError

        report = PreflightRunner([FunctionCheck("x", boom)]).run(preflight_context)
        assert report.results[0].detail == "RuntimeError"

    def test_provider_failure_is_contained(
        self, preflight_context: PreflightContext, fake_fs: FakeFilesystem
    ) -> None:
        # fake_fs has no free-space entry for DATA, so free_bytes raises KeyError
        report = PreflightRunner(
            [DiskSpaceCheck(DATA, GIB), PrivilegeCheck()]
        ).run(preflight_context)
        assert report.results[0].status is CheckStatus.FAIL
        assert report.results[1].status is CheckStatus.PASS

    def test_format_issues(self) -> None:
        report = PreflightReport(
            [
                _result("ok", CheckStatus.PASS),
                CheckResult("disk-space", CheckStatus.FAIL, "too small", remediation="grow it"),
                _result("mount-present", CheckStatus.WARN),
            ]
        )
        text = PreflightRunner.format_issues(report)
        assert "[FAIL] disk-space: too small" in text
        assert "Remediation: grow it" in text
        assert "[WARN] mount-present" in text
        assert "ok" not in text


# ---------------------------------------------------------------------------
# Host checks
# ---------------------------------------------------------------------------


class TestPrivilegeCheck:
    def test_name(self) -> None:
        assert PrivilegeCheck().name == "privilege-level"

    def test_pass_when_privileged(self, preflight_context: PreflightContext) -> None:
        assert PrivilegeCheck().check(preflight_context).status is CheckStatus.PASS

    def test_fail_when_not_privileged(self, preflight_context: PreflightContext) -> None:
        preflight_context.is_privileged = False
        result = PrivilegeCheck().check(preflight_context)
        assert result.status is CheckStatus.FAIL
        assert result.remediation is not None


class TestDirectoryPresentCheck:
    def test_pass(self, preflight_context: PreflightContext, fake_fs: FakeFilesystem) -> None:
        fake_fs.dirs.add(DATA)
        assert DirectoryPresentCheck(DATA).check(preflight_context).status is CheckStatus.PASS

    def test_fail(self, preflight_context: PreflightContext) -> None:
        result = DirectoryPresentCheck(DATA).check(preflight_context)
        assert result.status is CheckStatus.FAIL
        assert str(DATA) in result.detail


class TestMountPresentCheck:
    def test_pass_on_dedicated_mount(
        self, preflight_context: PreflightContext, fake_fs: FakeFilesystem
    ) -> None:
        fake_fs.mounts.add(DATA)
        result = MountPresentCheck(DATA).check(preflight_context)
        assert result.name == "mount-present"
        assert result.status is CheckStatus.PASS

    def test_warns_not_fails(self, preflight_context: PreflightContext) -> None:
        assert MountPresentCheck(DATA).check(preflight_context).status is CheckStatus.WARN


class TestDiskSpaceCheck:
    @pytest.mark.parametrize(
        ("free", "expected"),
        [
            (20 * GIB, CheckStatus.PASS),
            (11 * GIB, CheckStatus.PASS),
            (int(10.5 * GIB), CheckStatus.WARN),
            (10 * GIB, CheckStatus.WARN),
            (10 * GIB - 1, CheckStatus.FAIL),
            (0, CheckStatus.FAIL),
        ],
    )
    def test_thresholds(
        self,
        preflight_context: PreflightContext,
        fake_fs: FakeFilesystem,
        free: int,
        expected: CheckStatus,
    ) -> None:
        fake_fs.free[DATA] = free
        result = DiskSpaceCheck(DATA, 10 * GIB).check(preflight_context)
        assert result.name == "disk-space"
        assert result.status is expected

    def test_fail_detail_mentions_sizes(
        self, preflight_context: PreflightContext, fake_fs: FakeFilesystem
    ) -> None:
        fake_fs.free[DATA] = 2 * GIB
        result = DiskSpaceCheck(DATA, 10 * GIB).check(preflight_context)
        assert "10.00 GB" in result.detail
        assert "2.00 GB" in result.detail

    def test_label_is_part_of_name(self) -> None:
        assert DiskSpaceCheck(DATA, GIB, label="logs").name == "disk-space:logs"

    def test_negative_minimum_rejected(self) -> None:
        with pytest.raises(ValueError, match="minimum_bytes"):
            DiskSpaceCheck(DATA, -1)


# ---------------------------------------------------------------------------
# Network checks
# ---------------------------------------------------------------------------


class TestRemoteReachableCheck:
    URL = "http://repo.local/repos/kafka3/"

    def test_pass_on_success(
        self, preflight_context: PreflightContext, fake_http: FakeHttp
    ) -> None:
        result = RemoteReachableCheck(self.URL, timeout=2.5).check(preflight_context)
        assert result.status is CheckStatus.PASS
        assert fake_http.calls == [(self.URL, 2.5)]

    def test_redirect_status_passes(
        self, preflight_context: PreflightContext, fake_http: FakeHttp
    ) -> None:
        fake_http.status_code = 301
        assert RemoteReachableCheck(self.URL).check(preflight_context).status is CheckStatus.PASS

    def test_error_status_fails(
        self, preflight_context: PreflightContext, fake_http: FakeHttp
    ) -> None:
        fake_http.status_code = 404
        result = RemoteReachableCheck(self.URL).check(preflight_context)
        assert result.status is CheckStatus.FAIL
        assert "404" in result.detail

    def test_timeout_fails(self, preflight_context: PreflightContext, fake_http: FakeHttp) -> None:
        fake_http.error = TimeoutError("HEAD timed out after 5.0s")
        result = RemoteReachableCheck(self.URL).check(preflight_context)
        assert result.status is CheckStatus.FAIL
        assert "timed out" in result.detail

    def test_connection_error_fails(
        self, preflight_context: PreflightContext, fake_http: FakeHttp
    ) -> None:
        fake_http.error = ConnectionError("refused")
        assert RemoteReachableCheck(self.URL).check(preflight_context).status is CheckStatus.FAIL

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            RemoteReachableCheck(self.URL, timeout=0)


class TestAdvertisedAddressCheck:
    def test_match(self, preflight_context: PreflightContext) -> None:
        assert AdvertisedAddressCheck().check(preflight_context).status is CheckStatus.PASS

    def test_mismatch_warns(
        self, preflight_context: PreflightContext, fake_address: FakeAddress
    ) -> None:
        fake_address.address = "192.168.1.20"
        result = AdvertisedAddressCheck().check(preflight_context)
        assert result.status is CheckStatus.WARN
        assert "192.168.1.20" in result.detail

    def test_undetected_warns(
        self, preflight_context: PreflightContext, fake_address: FakeAddress
    ) -> None:
        fake_address.address = None
        assert AdvertisedAddressCheck().check(preflight_context).status is CheckStatus.WARN

    def test_unknown_local_id_fails(self, preflight_context: PreflightContext) -> None:
        preflight_context.local_id = 7
        assert AdvertisedAddressCheck().check(preflight_context).status is CheckStatus.FAIL


# ---------------------------------------------------------------------------
# Default battery
# ---------------------------------------------------------------------------


class TestDefaultChecks:
    def test_order(self) -> None:
        names = [c.name for c in default_checks(KafkaprovSettings())]
        assert names == [
            "privilege-level",
            "directory-present",
            "disk-space:data",
            "disk-space:logs",
            "mount-present",
            "remote-reachable",
            "advertised-address",
        ]

    def test_all_green(
        self,
        preflight_context: PreflightContext,
        fake_fs: FakeFilesystem,
        fake_http: FakeHttp,
    ) -> None:
        settings = KafkaprovSettings()
        fake_fs.dirs.add(settings.kafka_data_dir)
        fake_fs.mounts.add(settings.kafka_data_dir)
        fake_fs.free[settings.kafka_data_dir] = 100 * GIB
        fake_fs.free[settings.kafka_logs_dir] = 100 * GIB

        report = run_preflight(preflight_context, settings)

        assert report.overall_go is True
        assert all(r.status is CheckStatus.PASS for r in report.results)
        assert fake_http.calls == [(settings.repo_url, settings.http_timeout)]

    def test_one_pass_reports_everything(
        self, preflight_context: PreflightContext, fake_http: FakeHttp
    ) -> None:
        """Without root, dirs, mounts or space every check still reports."""
        preflight_context.is_privileged = False
        fake_http.error = TimeoutError("timed out")

        report = run_preflight(preflight_context, KafkaprovSettings())

        assert len(report.results) == 7
        assert report.overall_go is False
        statuses = [r.status for r in report.results]
        assert statuses == [
            CheckStatus.FAIL,
            CheckStatus.FAIL,
            CheckStatus.FAIL,
            CheckStatus.FAIL,
            CheckStatus.WARN,
            CheckStatus.FAIL,
            CheckStatus.PASS,
        ]

    def test_disk_checks_precede_mount_check(self) -> None:
        names = [c.name for c in default_checks(KafkaprovSettings())]
        assert names.index("privilege-level") == 0
        assert names.index("disk-space:data") < names.index("mount-present")
        assert names.index("disk-space:logs") < names.index("mount-present")
        assert names.index("mount-present") < names.index("remote-reachable")

    def test_disk_rows_are_distinguishable_in_report(
        self, preflight_context: PreflightContext, fake_fs: FakeFilesystem
    ) -> None:
        settings = KafkaprovSettings()
        fake_fs.free[settings.kafka_data_dir] = 100 * GIB
        fake_fs.free[settings.kafka_logs_dir] = 0

        rows = {
            r["name"]: r["status"]
            for r in run_preflight(preflight_context, settings).to_dict()["results"]
        }
        assert rows["disk-space:data"] == "pass"
        assert rows["disk-space:logs"] == "fail"


# ---------------------------------------------------------------------------
# Cluster port diagnostics
# ---------------------------------------------------------------------------


class TestPortReachableCheck:
    def test_pass(self, preflight_context: PreflightContext, fake_ports: FakePorts) -> None:
        fake_ports.open.add(("172.20.2.113", 2181))
        check = PortReachableCheck("zookeeper", 1, "172.20.2.113", 2181, timeout=3.0)
        result = check.check(preflight_context)
        assert result.name == "port-reachable:zookeeper:1"
        assert result.status is CheckStatus.PASS
        assert fake_ports.calls == [("172.20.2.113", 2181, 3.0)]

    def test_refused_fails(self, preflight_context: PreflightContext) -> None:
        result = PortReachableCheck("kafka", 2, "172.20.2.114", 9092).check(preflight_context)
        assert result.status is CheckStatus.FAIL
        assert "172.20.2.114:9092" in result.detail
        assert "Connection refused" in result.detail

    def test_timeout_fails(
        self, preflight_context: PreflightContext, fake_ports: FakePorts
    ) -> None:
        fake_ports.timeouts.add(("172.20.2.115", 9092))
        result = PortReachableCheck("kafka", 3, "172.20.2.115", 9092, timeout=1.5).check(
            preflight_context
        )
        assert result.status is CheckStatus.FAIL
        assert "timed out after 1.5s" in result.detail

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            PortReachableCheck("kafka", 1, "10.0.0.1", 9092, timeout=0)


class TestDiagnosticChecks:
    def test_zookeeper_then_kafka_in_id_order(self) -> None:
        topology = build_topology({3: "10.0.0.3", 1: "10.0.0.1", 2: "10.0.0.2"})
        names = [c.name for c in diagnostic_checks(topology, KafkaprovSettings())]
        assert names == [
            "port-reachable:zookeeper:1",
            "port-reachable:zookeeper:2",
            "port-reachable:zookeeper:3",
            "port-reachable:kafka:1",
            "port-reachable:kafka:2",
            "port-reachable:kafka:3",
        ]

    def test_uses_configured_ports_and_timeout(
        self, preflight_context: PreflightContext, fake_ports: FakePorts
    ) -> None:
        settings = KafkaprovSettings(client_port=2182, listen_port=19092, connect_timeout=2.0)
        run_diagnostics(preflight_context, settings)
        assert fake_ports.calls[0] == ("172.20.2.113", 2182, 2.0)
        assert fake_ports.calls[-1] == ("172.20.2.115", 19092, 2.0)

    def test_healthy_cluster(
        self, preflight_context: PreflightContext, fake_ports: FakePorts
    ) -> None:
        for host in ("172.20.2.113", "172.20.2.114", "172.20.2.115"):
            fake_ports.open.update({(host, 2181), (host, 9092)})
        report = run_diagnostics(preflight_context, KafkaprovSettings())
        assert report.overall_go is True
        assert len(report.results) == 6

    def test_one_down_broker_is_reported_and_others_still_run(
        self, preflight_context: PreflightContext, fake_ports: FakePorts
    ) -> None:
        for host in ("172.20.2.113", "172.20.2.114", "172.20.2.115"):
            fake_ports.open.add((host, 2181))
        fake_ports.open.update({("172.20.2.113", 9092), ("172.20.2.115", 9092)})

        report = run_diagnostics(preflight_context, KafkaprovSettings())

        assert report.overall_go is False
        assert [r.name for r in report.failures()] == ["port-reachable:kafka:2"]
        assert len(report.results) == 6
