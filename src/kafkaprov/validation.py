"""Shared input validation for kafkaprov.

Provides regex-based validators for node ids, IPv4 hosts, ports and
override entries used by the topology resolver and the settings layer.
"""

from __future__ import annotations

import re

# Used with fullmatch(); the patterns carry no anchors.
NODE_ID_RE = re.compile(r"[1-9][0-9]*")
IPV4_RE = re.compile(r"([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})")
ENTRY_RE = re.compile(r"(?P<id>[1-9][0-9]*):(?P<host>[0-9.]+)")
MAX_PORT = 65535


def is_ipv4(value: str) -> bool:
    """Return True when *value* is a dotted-quad with every group <= 255."""
    match = IPV4_RE.fullmatch(value)
    if match is None:
        return False
    return all(int(group) <= 255 for group in match.groups())


def validate_ipv4(value: str) -> str:
    """Validate an IPv4 dotted-quad address.

    Parameters
    ----------
    value:
        The address string to validate.

    Returns
    -------
    str
        The validated address.

    Raises
    ------
    ValueError
        If the address is not four dot-separated groups of 1-3 digits,
        each numerically <= 255.
    """
    if not is_ipv4(value):
        msg = f"Invalid IPv4 address: {value!r}"
        raise ValueError(msg)
    return value


def validate_node_id(value: int | str) -> int:
    """Validate a node id and return it as an int.

    Raises
    ------
    ValueError
        If the id is not a positive integer without leading zeros.
    """
    if isinstance(value, bool) or not NODE_ID_RE.fullmatch(str(value)):
        msg = f"Invalid node id: {value!r}"
        raise ValueError(msg)
    return int(value)


def validate_port(value: int) -> int:
    """Validate a TCP port number (1..65535)."""
    if not 1 <= value <= MAX_PORT:
        msg = f"Port must be between 1 and {MAX_PORT}, got {value}"
        raise ValueError(msg)
    return value


def parse_entry(entry: str) -> tuple[int, str] | None:
    """Parse one ``id:host`` override entry.

    Returns ``None`` when the entry does not match the grammar or the host
    is not a valid IPv4 address.
    """
    match = ENTRY_RE.fullmatch(entry)
    if match is None:
        return None
    host = match.group("host")
    if not is_ipv4(host):
        return None
    return int(match.group("id")), host
