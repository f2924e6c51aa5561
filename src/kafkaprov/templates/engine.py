"""Jinja2 template rendering engine for kafkaprov artifacts and systemd units.

Uses SandboxedEnvironment for security and StrictUndefined to catch
missing variables at render time.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import FileSystemLoader, StrictUndefined
from jinja2.sandbox import SandboxedEnvironment

from kafkaprov import __version__
from kafkaprov.models import ArtifactKind

if TYPE_CHECKING:
    from kafkaprov.models import GeneratedArtifact

# Map service names to their corresponding unit template file names.
_UNIT_TEMPLATE_MAP: dict[str, str] = {
    "kafka": "kafka.service.j2",
    "zookeeper": "zookeeper.service.j2",
}

_ARTIFACT_TITLES: dict[ArtifactKind, str] = {
    ArtifactKind.BROKER_CONFIG: "KAFKA BROKER CONFIGURATION",
    ArtifactKind.COORDINATION_CONFIG: "ZOOKEEPER CLUSTER CONFIGURATION",
}

# Pattern for validating template names: only allow simple filenames.
_SAFE_NAME_RE = re.compile(r"^[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_.]+$")

_TEMPLATES_DIR = Path(__file__).parent
_SEARCH_DIRS = ("config", "systemd")


class TemplateEngine:
    """Renders Jinja2 templates for configuration files and systemd units.

    Security:
    - Uses ``SandboxedEnvironment`` to prevent template injection attacks.
    - Uses ``StrictUndefined`` to fail on missing variables.
    - Validates template names against path traversal.
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        """Initialize the engine with the built-in templates directory."""
        self._templates_dir = templates_dir or _TEMPLATES_DIR
        self._env = SandboxedEnvironment(
            loader=FileSystemLoader([str(self._templates_dir / d) for d in _SEARCH_DIRS]),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def _validate_template_name(self, template_name: str) -> None:
        """Validate that a template name is safe (no path traversal).

        Raises:
            ValueError: If the template name contains path traversal or
                is an absolute path.
        """
        if ".." in template_name:
            msg = f"Invalid template name (path traversal detected): {template_name}"
            raise ValueError(msg)
        if template_name.startswith("/"):
            msg = f"Invalid template name (absolute path not allowed): {template_name}"
            raise ValueError(msg)
        if not _SAFE_NAME_RE.match(template_name):
            msg = f"Invalid template name: {template_name}"
            raise ValueError(msg)

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a named template with the given context.

        Raises:
            ValueError: If the template name is invalid.
            jinja2.TemplateNotFound: If the template does not exist.
            jinja2.UndefinedError: If a required variable is missing.
        """
        self._validate_template_name(template_name)
        template = self._env.get_template(template_name)
        return template.render(**context)

    def render_properties(self, artifact: GeneratedArtifact) -> str:
        """Serialize an artifact into properties-file text.

        The header carries no timestamp, so the same artifact always
        serializes to the same bytes.
        """
        context: dict[str, Any] = {
            "title": _ARTIFACT_TITLES[artifact.kind],
            "generator": "kafkaprov",
            "version": __version__,
            "node_id": artifact.local_id,
            "kind": artifact.kind.value,
            "lines": artifact.lines(),
        }
        return self.render("properties.j2", context)

    def render_service_unit(self, service: str, context: dict[str, Any]) -> str:
        """Render the systemd unit file for ``kafka`` or ``zookeeper``.

        Args:
            service: Service name, ``kafka`` or ``zookeeper``.
            context: Unit variables (node_id, user, group, java_home,
                heap_size, kafka_home, data_dir, logs_dir).

        Raises:
            ValueError: If no template exists for *service*.
        """
        template_name = _UNIT_TEMPLATE_MAP.get(service)
        if template_name is None:
            msg = f"No unit template available for service: {service}"
            raise ValueError(msg)
        return self.render(template_name, context)

    def available_templates(self) -> list[str]:
        """List available template names across all search directories."""
        return sorted(
            p.name
            for d in _SEARCH_DIRS
            if (self._templates_dir / d).is_dir()
            for p in (self._templates_dir / d).iterdir()
            if p.is_file() and p.suffix == ".j2"
        )
