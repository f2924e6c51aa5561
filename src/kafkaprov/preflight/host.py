"""Host-level preflight checks: privilege, directories, mounts, disk space.

Provides:
- PrivilegeCheck: installation must run with elevated privileges
- DirectoryPresentCheck: a data directory must already exist
- MountPresentCheck: a data directory should sit on a dedicated filesystem
- DiskSpaceCheck: a filesystem must have a minimum of free space
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from kafkaprov.preflight.base import CheckResult, CheckStatus

if TYPE_CHECKING:
    from kafkaprov.preflight.base import PreflightContext

# Free space within this fraction above the minimum is reported as a warning.
DEFAULT_WARN_MARGIN = 0.1


class PrivilegeCheck:
    """Passes iff the caller reports elevated privileges.

    The privilege flag comes from the context rather than ``os.geteuid``
    so the check can be exercised without root.
    """

    @property
    def name(self) -> str:
        return "privilege-level"

    def check(self, context: PreflightContext) -> CheckResult:
        if context.is_privileged:
            return CheckResult(self.name, CheckStatus.PASS, "Running with root privileges")
        return CheckResult(
            self.name,
            CheckStatus.FAIL,
            "Installation must run as root",
            remediation="Re-run the installer with sudo or as root.",
        )


class DirectoryPresentCheck:
    """Fails when a required directory does not exist."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def name(self) -> str:
        return "directory-present"

    def check(self, context: PreflightContext) -> CheckResult:
        if context.filesystem.exists(self._path):
            return CheckResult(self.name, CheckStatus.PASS, f"Directory exists: {self._path}")
        return CheckResult(
            self.name,
            CheckStatus.FAIL,
            f"Directory missing: {self._path}",
            remediation=f"Create and mount {self._path} before installing.",
        )


class MountPresentCheck:
    """Warns when a path is not its own mount point.

    Production data should live on a dedicated filesystem, but the
    installers have only ever treated this as advisory.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def name(self) -> str:
        return "mount-present"

    def check(self, context: PreflightContext) -> CheckResult:
        if context.filesystem.is_mount(self._path):
            return CheckResult(
                self.name, CheckStatus.PASS, f"{self._path} is on a dedicated filesystem"
            )
        return CheckResult(
            self.name,
            CheckStatus.WARN,
            f"{self._path} is not a dedicated mount point (not recommended in production)",
        )


class DiskSpaceCheck:
    """Checks free space at *path* against *minimum_bytes*.

    Parameters:
        path: Directory whose filesystem is measured.
        minimum_bytes: Required free space.
        warn_margin: Fraction above the minimum that still warns
            (default 0.1 = within 10%).
        label: Suffix that tells several disk checks apart in a report,
            e.g. ``data`` gives the name ``disk-space:data``.
    """

    def __init__(
        self,
        path: Path,
        minimum_bytes: int,
        warn_margin: float = DEFAULT_WARN_MARGIN,
        label: str | None = None,
    ) -> None:
        if minimum_bytes < 0:
            msg = f"minimum_bytes must be >= 0, got {minimum_bytes}"
            raise ValueError(msg)
        self._path = Path(path)
        self._minimum_bytes = minimum_bytes
        self._warn_margin = warn_margin
        self._label = label

    @property
    def name(self) -> str:
        return f"disk-space:{self._label}" if self._label else "disk-space"

    def check(self, context: PreflightContext) -> CheckResult:
        available = context.filesystem.free_bytes(self._path)
        required = _format_bytes(self._minimum_bytes)

        if available < self._minimum_bytes:
            return CheckResult(
                self.name,
                CheckStatus.FAIL,
                (
                    f"Insufficient disk space on {self._path}: "
                    f"need {required}, only {_format_bytes(available)} available"
                ),
                remediation=f"Free up or extend the filesystem holding {self._path}.",
            )

        if available < self._minimum_bytes * (1 + self._warn_margin):
            return CheckResult(
                self.name,
                CheckStatus.WARN,
                (
                    f"Disk space on {self._path} is close to the minimum: "
                    f"{_format_bytes(available)} available, {required} required"
                ),
            )

        return CheckResult(
            self.name,
            CheckStatus.PASS,
            f"Sufficient disk space on {self._path}: {_format_bytes(available)} available",
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _format_bytes(size_bytes: int) -> str:
    """Format bytes as human-readable string."""
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    return f"{size:.2f} {units[unit_index]}"
