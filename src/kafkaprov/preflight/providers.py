"""Host capability providers injected into preflight checks.

The protocols let tests substitute fakes for the filesystem, the HTTP
client and local address detection.  The default implementations talk
to the real host.
"""

from __future__ import annotations

import logging
import os
import shutil
import socket
from pathlib import Path
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

# Any routable address works; no packet is sent for a UDP connect.
_ROUTE_PROBE_ADDR = ("8.8.8.8", 80)


class FilesystemInfo(Protocol):
    """Read-only view of the local filesystems."""

    def exists(self, path: Path) -> bool: ...

    def free_bytes(self, path: Path) -> int: ...

    def is_mount(self, path: Path) -> bool: ...


class HttpProbe(Protocol):
    """Issues a HEAD request and returns the HTTP status code.

    Implementations raise ``TimeoutError`` when *timeout* elapses and
    ``ConnectionError`` on any other transport failure.
    """

    def head(self, url: str, timeout: float) -> int: ...


class AddressProvider(Protocol):
    """Reports the address this host uses for outbound traffic."""

    def local_address(self) -> str | None: ...


class PortConnector(Protocol):
    """Opens a TCP connection to check that a port is listening.

    Implementations raise ``TimeoutError`` when *timeout* elapses and
    ``OSError`` (typically ``ConnectionRefusedError``) otherwise.
    """

    def connect(self, host: str, port: int, timeout: float) -> None: ...


class LocalFilesystemInfo:
    """FilesystemInfo backed by ``shutil`` and ``os.path``."""

    def exists(self, path: Path) -> bool:
        return path.is_dir()

    def free_bytes(self, path: Path) -> int:
        """Free bytes on the filesystem holding *path*.

        If path doesn't exist, measures the nearest existing parent directory.
        """
        check_path = path
        while not check_path.exists():
            parent = check_path.parent
            if parent == check_path:  # Reached root
                break
            check_path = parent
        return shutil.disk_usage(check_path).free

    def is_mount(self, path: Path) -> bool:
        return os.path.ismount(path)


class HttpxProbe:
    """HttpProbe backed by ``httpx``."""

    def __init__(self, follow_redirects: bool = True) -> None:
        self._follow_redirects = follow_redirects

    def head(self, url: str, timeout: float) -> int:
        try:
            with httpx.Client(timeout=timeout, follow_redirects=self._follow_redirects) as client:
                response = client.head(url)
        except httpx.TimeoutException as exc:
            msg = f"HEAD {url} timed out after {timeout}s"
            raise TimeoutError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"HEAD {url} failed: {exc}"
            raise ConnectionError(msg) from exc
        return response.status_code


class UdpAddressProvider:
    """Finds the outbound address the kernel would pick for a public route.

    Equivalent to ``ip route get 8.8.8.8``: a connected UDP socket exposes
    the chosen source address without sending anything.
    """

    def __init__(self, probe_addr: tuple[str, int] = _ROUTE_PROBE_ADDR) -> None:
        self._probe_addr = probe_addr

    def local_address(self) -> str | None:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.connect(self._probe_addr)
                address: str = sock.getsockname()[0]
        except OSError as exc:
            logger.debug("Local address detection failed: %s", exc)
            return None
        return address


class SocketPortConnector:
    """PortConnector backed by ``socket.create_connection``.

    The connection is closed as soon as it is established; nothing is sent.
    """

    def connect(self, host: str, port: int, timeout: float) -> None:
        with socket.create_connection((host, port), timeout=timeout):
            logger.debug("Connected to %s:%d", host, port)
