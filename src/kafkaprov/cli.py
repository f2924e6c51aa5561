"""CLI for kafkaprov — Typer app over the topology, artifact and preflight core.

Defines the main Typer app, the AppContext dataclass wiring settings to
the core components, and helper utilities (json_output, error_handler).
The CLI renders and reports; it never installs packages or manages services.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer
from rich.console import Console
from rich.table import Table

from kafkaprov.artifacts import ArtifactError, ArtifactGenerator
from kafkaprov.config import KafkaprovSettings, get_settings
from kafkaprov.models import BrokerOptions, CoordinationOptions
from kafkaprov.preflight import (
    HttpxProbe,
    LocalFilesystemInfo,
    PreflightContext,
    PreflightReport,
    PreflightRunner,
    SocketPortConnector,
    UdpAddressProvider,
    default_checks,
    diagnostic_checks,
)
from kafkaprov.templates.engine import TemplateEngine
from kafkaprov.topology import TopologyError, TopologyResolver, resolve_from_settings

if TYPE_CHECKING:
    from collections.abc import Generator

    from kafkaprov.models import Topology

logger = logging.getLogger(__name__)

_console = Console()


class ArtifactChoice(StrEnum):
    BROKER = "broker"
    ZOOKEEPER = "zookeeper"
    MYID = "myid"


class UnitChoice(StrEnum):
    KAFKA = "kafka"
    ZOOKEEPER = "zookeeper"


# ---------------------------------------------------------------------------
# AppContext
# ---------------------------------------------------------------------------


@dataclass
class AppContext:
    """Container for the resolved topology and the components that use it."""

    settings: KafkaprovSettings
    topology: Topology
    resolver: TopologyResolver
    generator: ArtifactGenerator
    template_engine: TemplateEngine


def create_context(settings: KafkaprovSettings | None = None) -> AppContext:
    """Resolve the topology from settings and wire up the core components.

    Raises
    ------
    TopologyError
        If the override or the topology file is invalid.
    """
    settings = settings or get_settings()
    resolver = TopologyResolver(minimum_members=settings.minimum_members)
    topology = resolve_from_settings(
        settings.nodes, settings.topology_file, settings.minimum_members
    )
    return AppContext(
        settings=settings,
        topology=topology,
        resolver=resolver,
        generator=ArtifactGenerator(resolver),
        template_engine=TemplateEngine(),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def json_output(data: Any, *, as_json: bool) -> Any:
    """Conditionally print data as JSON or return it for Rich formatting.

    Returns None if printed as JSON, otherwise the original data.
    """
    if as_json:
        print(json.dumps(data, indent=2, default=str))
        return None
    return data


@contextmanager
def error_handler(
    console: Console | None = None,
) -> Generator[None, None, None]:
    """Print topology, artifact and validation errors and exit with code 1.

    SystemExit, KeyboardInterrupt and typer.Exit are allowed to propagate.
    """
    if console is None:
        console = Console(stderr=True)
    try:
        yield
    except (SystemExit, KeyboardInterrupt, typer.Exit):
        raise
    except (TopologyError, ArtifactError, ValueError, OSError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def write_with_backup(path: Path, content: str) -> Path | None:
    """Write *content* to *path*, copying any existing file to ``<path>.bak`` first.

    Returns the backup path, or None if there was nothing to back up.
    """
    backup: Path | None = None
    if path.exists():
        backup = path.with_name(path.name + ".bak")
        shutil.copy2(path, backup)
        logger.info("Backed up %s to %s", path, backup)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Wrote %s", path)
    return backup


def _broker_options(
    settings: KafkaprovSettings,
    advertised_host: str | None,
    extra: list[str],
) -> BrokerOptions:
    return BrokerOptions(
        data_dir=str(settings.kafka_data_dir),
        listen_port=settings.listen_port,
        coordination_port=settings.client_port,
        advertised_host=advertised_host,
        extra_properties=extra,
    )


def _coordination_options(settings: KafkaprovSettings) -> CoordinationOptions:
    return CoordinationOptions(
        data_dir=str(settings.zk_data_dir),
        client_port=settings.client_port,
        peer_port=settings.peer_port,
        election_port=settings.election_port,
    )


# ---------------------------------------------------------------------------
# Main app
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="kafkaprov",
    help="Topology resolution, config rendering and preflight checks for Kafka clusters.",
    no_args_is_help=True,
)


def run_cli() -> None:
    """Entry point for the ``kafkaprov`` console script."""
    app()


@app.callback()
def main() -> None:
    """Configure logging from settings before any command runs."""
    with error_handler():
        settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def topology(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show the resolved cluster topology."""
    with error_handler():
        ctx = create_context()

        data = {
            "source": ctx.topology.source.value,
            "nodes": [{"id": i, "host": h} for i, h in ctx.topology.describe()],
        }
        if json_output(data, as_json=as_json) is None:
            return

        table = Table(title=f"Cluster topology ({ctx.topology.source.value})")
        table.add_column("Node", justify="right", style="bold")
        table.add_column("Host", style="cyan")
        for node_id, host in ctx.topology.describe():
            table.add_row(str(node_id), host)
        _console.print(table)

        missing = ctx.topology.missing_ids()
        if missing:
            _console.print(
                f"[bold yellow]Warning:[/bold yellow] missing node ids: "
                f"{', '.join(str(i) for i in missing)}"
            )


@app.command()
def render(
    kind: ArtifactChoice = typer.Argument(help="Artifact to render: broker, zookeeper or myid."),
    node_id: int = typer.Option(..., "--node-id", "-n", min=1, help="Local node id."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to this file."),
    advertised_host: str | None = typer.Option(
        None, "--advertised-host", help="Override the advertised listener host."
    ),
    extra: list[str] | None = typer.Option(  # noqa: B008
        None, "--extra", help="Raw property line appended to the broker config."
    ),
) -> None:
    """Render a configuration artifact for one node."""
    with error_handler():
        ctx = create_context()

        if kind is ArtifactChoice.BROKER:
            artifact = ctx.generator.render_broker_config(
                ctx.topology,
                node_id,
                _broker_options(ctx.settings, advertised_host, extra or []),
            )
            text = ctx.template_engine.render_properties(artifact)
        elif kind is ArtifactChoice.ZOOKEEPER:
            artifact = ctx.generator.render_coordination_config(
                ctx.topology, node_id, _coordination_options(ctx.settings)
            )
            text = ctx.template_engine.render_properties(artifact)
        else:
            text = ctx.generator.render_myid(ctx.topology, node_id)

        if output is None:
            typer.echo(text, nl=False)
            return

        backup = write_with_backup(output, text)
        _console.print(f"[green]Wrote[/green] {output}")
        if backup is not None:
            _console.print(f"[dim]Previous version saved to {backup}[/dim]")


@app.command()
def unit(
    service: UnitChoice = typer.Argument(help="Unit to render: kafka or zookeeper."),
    node_id: int = typer.Option(..., "--node-id", "-n", min=1, help="Local node id."),
    user: str = typer.Option("kafka", "--user", help="Service account."),
    group: str = typer.Option("kafka", "--group", help="Service group."),
    heap_size: str = typer.Option("4g", "--heap-size", help="JVM heap size."),
    java_home: str | None = typer.Option(None, "--java-home", help="JAVA_HOME for the unit."),
) -> None:
    """Render the systemd unit file for kafka or zookeeper."""
    with error_handler():
        ctx = create_context()
        if ctx.resolver.lookup(ctx.topology, node_id) is None:
            msg = f"Node id {node_id} is not in the topology"
            raise ValueError(msg)

        settings = ctx.settings
        if service is UnitChoice.KAFKA:
            data_dir, logs_dir = settings.kafka_data_dir, settings.kafka_logs_dir
        else:
            data_dir, logs_dir = settings.zk_data_dir, settings.zk_logs_dir

        rendered = ctx.template_engine.render_service_unit(
            service.value,
            {
                "node_id": node_id,
                "user": user,
                "group": group,
                "heap_size": heap_size,
                "java_home": java_home,
                "kafka_home": str(settings.kafka_home),
                "data_dir": str(data_dir),
                "logs_dir": str(logs_dir),
            },
        )
        typer.echo(rendered, nl=False)


_STATUS_COLORS: dict[str, str] = {
    "pass": "green",
    "warn": "yellow",
    "fail": "red",
}


def _host_context(ctx: AppContext, local_id: int, is_privileged: bool) -> PreflightContext:
    return PreflightContext(
        topology=ctx.topology,
        local_id=local_id,
        is_privileged=is_privileged,
        filesystem=LocalFilesystemInfo(),
        http=HttpxProbe(),
        address=UdpAddressProvider(),
        ports=SocketPortConnector(),
    )


def _print_report(report: PreflightReport, title: str) -> None:
    table = Table(title=title)
    table.add_column("Check", style="bold")
    table.add_column("Status")
    table.add_column("Detail")
    for result in report.results:
        color = _STATUS_COLORS[result.status.value]
        table.add_row(
            result.name,
            f"[{color}]{result.status.value.upper()}[/{color}]",
            result.detail,
        )
    _console.print(table)
    verdict = "[green]GO[/green]" if report.overall_go else "[red]NO-GO[/red]"
    _console.print(f"[bold]Result:[/bold] {verdict}")


@app.command()
def preflight(
    node_id: int = typer.Option(..., "--node-id", "-n", min=1, help="Local node id."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
    root: bool | None = typer.Option(
        None, "--root/--no-root", help="Override privilege detection."
    ),
) -> None:
    """Run the preflight checks for this host and exit 1 on any failure."""
    with error_handler():
        ctx = create_context()
        is_privileged = root if root is not None else os.geteuid() == 0

        context = _host_context(ctx, node_id, is_privileged)
        report = PreflightRunner(default_checks(ctx.settings)).run(context)

        if json_output(report.to_dict(), as_json=as_json) is not None:
            _print_report(report, f"Preflight checks for node {node_id}")

        if not report.overall_go:
            raise typer.Exit(code=1)


@app.command()
def diagnose(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Check that ZooKeeper and Kafka listen on every cluster member; exit 1 on any failure."""
    with error_handler():
        ctx = create_context()

        # The port battery never reads the local id or privilege level.
        context = _host_context(ctx, ctx.topology.ordered()[0].id, is_privileged=False)
        report = PreflightRunner(diagnostic_checks(ctx.topology, ctx.settings)).run(context)

        if json_output(report.to_dict(), as_json=as_json) is not None:
            _print_report(report, f"Cluster diagnostics ({len(ctx.topology)} nodes)")

        if not report.overall_go:
            raise typer.Exit(code=1)
