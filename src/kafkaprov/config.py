"""Centralized configuration for kafkaprov.

All settings are configurable via environment variables with the ``KAFKAPROV_``
prefix.  For example, ``KAFKAPROV_REPO_SERVER`` overrides the repository host.

Environment Variables
---------------------
KAFKAPROV_NODES / KAFKA_NODES : str
    Topology override in the ``id:host(,id:host)*`` grammar.  The bare
    ``KAFKA_NODES`` name is accepted because the installers have always
    exported it.
    Default: None (built-in defaults are used)
KAFKAPROV_TOPOLOGY_FILE : str
    YAML file replacing the built-in default topology.
    Default: None
KAFKAPROV_MINIMUM_MEMBERS : int
    Minimum number of distinct members a topology must have. Must be >= 1.
    Default: 3
KAFKAPROV_KAFKA_DATA_DIR / KAFKAPROV_KAFKA_LOGS_DIR : str
    Broker data and log directories.
    Default: ``/data/kafka`` and ``/var/log/kafka``
KAFKAPROV_ZK_DATA_DIR / KAFKAPROV_ZK_LOGS_DIR : str
    ZooKeeper data and log directories.
    Default: ``/data/zookeeper`` and ``/var/log/zookeeper``
KAFKAPROV_KAFKA_HOME : str
    Kafka installation directory used in rendered unit files.
    Default: ``/opt/kafka``
KAFKAPROV_REPO_SERVER : str
    Host (and optional port) of the internal package repository.
    Default: ``172.20.2.109``
KAFKAPROV_MIN_DATA_BYTES / KAFKAPROV_MIN_LOGS_BYTES : int
    Minimum free space required on the data and log filesystems.
    Default: 10 GiB and 2 GiB
KAFKAPROV_LISTEN_PORT, KAFKAPROV_CLIENT_PORT, KAFKAPROV_PEER_PORT,
KAFKAPROV_ELECTION_PORT : int
    Broker listener port and ZooKeeper client/peer/election ports.
    Default: 9092, 2181, 2888, 3888
KAFKAPROV_HTTP_TIMEOUT : float
    Timeout in seconds for the repository reachability probe.
    Default: 5.0
KAFKAPROV_CONNECT_TIMEOUT : float
    Timeout in seconds for each TCP connect made by ``kafkaprov diagnose``.
    Default: 5.0
KAFKAPROV_LOG_LEVEL : str
    Logging level. One of: DEBUG, INFO, WARNING, ERROR, CRITICAL.
    Default: ``INFO``
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kafkaprov.validation import validate_port

_GIB = 1024 * 1024 * 1024


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class KafkaprovSettings(BaseSettings):
    """Centralized settings for the kafkaprov application.

    All fields can be overridden via environment variables prefixed with
    ``KAFKAPROV_``.  See module docstring for the full list.
    """

    model_config = SettingsConfigDict(
        env_prefix="KAFKAPROV_",
        populate_by_name=True,
    )

    # Topology
    nodes: str | None = Field(
        default=None,
        validation_alias=AliasChoices("KAFKAPROV_NODES", "KAFKA_NODES"),
    )
    topology_file: Path | None = None
    minimum_members: int = Field(default=3, ge=1)

    # Filesystem layout
    kafka_data_dir: Path = Path("/data/kafka")
    kafka_logs_dir: Path = Path("/var/log/kafka")
    zk_data_dir: Path = Path("/data/zookeeper")
    zk_logs_dir: Path = Path("/var/log/zookeeper")
    kafka_home: Path = Path("/opt/kafka")

    # Repository
    repo_server: str = "172.20.2.109"
    http_timeout: float = Field(default=5.0, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)

    # Preflight thresholds
    min_data_bytes: int = Field(default=10 * _GIB, ge=0)
    min_logs_bytes: int = Field(default=2 * _GIB, ge=0)

    # Ports
    listen_port: int = 9092
    client_port: int = 2181
    peer_port: int = 2888
    election_port: int = 3888

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase and validate."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("listen_port", "client_port", "peer_port", "election_port")
    @classmethod
    def _validate_ports(cls, v: int) -> int:
        return validate_port(v)

    @field_validator("repo_server")
    @classmethod
    def _validate_repo_server(cls, v: str) -> str:
        """Reject a scheme or path; the URL is built from the bare host."""
        if "://" in v or "/" in v:
            msg = f"repo_server must be a bare host[:port], got {v!r}"
            raise ValueError(msg)
        if not v:
            msg = "repo_server must not be empty"
            raise ValueError(msg)
        return v

    @property
    def repo_url(self) -> str:
        """URL probed by the repository reachability check."""
        return f"http://{self.repo_server}/repos/kafka3/"


# ---------------------------------------------------------------------------
# Singleton / cached accessor
# ---------------------------------------------------------------------------

_settings_instance: KafkaprovSettings | None = None


def get_settings() -> KafkaprovSettings:
    """Return the cached KafkaprovSettings singleton.

    Creates the instance on first call, then returns the same object
    on subsequent calls.  Use :func:`_clear_settings_cache` in tests
    to reset.
    """
    global _settings_instance  # noqa: PLW0603
    if _settings_instance is None:
        _settings_instance = KafkaprovSettings()
    return _settings_instance


def _clear_settings_cache() -> None:
    """Clear the settings singleton cache.

    Intended for test teardown so each test can start with fresh settings.
    """
    global _settings_instance  # noqa: PLW0603
    _settings_instance = None
