"""Base types for the preflight validation system.

Provides the Protocol for preflight checks, the CheckResult and
PreflightReport dataclasses, and the PreflightContext that carries the
topology and the injected host providers to every check.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from kafkaprov.models import Topology
    from kafkaprov.preflight.providers import (
        AddressProvider,
        FilesystemInfo,
        HttpProbe,
        PortConnector,
    )


class CheckStatus(StrEnum):
    """Outcome of a single preflight check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class CheckResult:
    """Result of a preflight check.

    Attributes
    ----------
    name:
        Identifier of the check that produced this result.
    status:
        PASS, WARN or FAIL. Only FAIL blocks the installation.
    detail:
        Human-readable explanation.
    remediation:
        Optional hint for the operator when the check did not pass.
    """

    name: str
    status: CheckStatus
    detail: str
    remediation: str | None = None

    @property
    def blocking(self) -> bool:
        return self.status is CheckStatus.FAIL


@dataclass
class PreflightReport:
    """Ordered results of one preflight run."""

    results: list[CheckResult] = field(default_factory=list)

    @property
    def overall_go(self) -> bool:
        """True iff no result has FAIL status."""
        return not any(r.blocking for r in self.results)

    def failures(self) -> list[CheckResult]:
        return [r for r in self.results if r.status is CheckStatus.FAIL]

    def warnings(self) -> list[CheckResult]:
        return [r for r in self.results if r.status is CheckStatus.WARN]

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable view of the report."""
        return {
            "overall_go": self.overall_go,
            "results": [
                {
                    "name": r.name,
                    "status": r.status.value,
                    "detail": r.detail,
                    "remediation": r.remediation,
                }
                for r in self.results
            ],
        }


@dataclass
class PreflightContext:
    """Everything a check may inspect about the host and the cluster.

    Providers are injected so checks never touch the real disk, network
    or process credentials directly.
    """

    topology: Topology
    local_id: int
    is_privileged: bool
    filesystem: FilesystemInfo
    http: HttpProbe
    address: AddressProvider
    ports: PortConnector


class PreflightCheck(Protocol):
    """Protocol for preflight checks.

    Each check validates one aspect of the host before installation
    proceeds.  New checks can be added without modifying the runner.
    """

    @property
    def name(self) -> str:
        """Return the name of this check."""
        ...

    def check(self, context: PreflightContext) -> CheckResult:
        """Run the check against *context*."""
        ...


class FunctionCheck:
    """Adapts a plain ``(name, fn)`` pair to the PreflightCheck protocol."""

    def __init__(self, name: str, fn: Callable[[PreflightContext], CheckResult]) -> None:
        self._name = name
        self._fn = fn

    @property
    def name(self) -> str:
        return self._name

    def check(self, context: PreflightContext) -> CheckResult:
        return self._fn(context)
