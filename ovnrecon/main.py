"""OVN Recon CLI — ``ovnrecon serve | collect | show``.

Usage::

    python -m ovnrecon.main serve
    python -m ovnrecon.main collect worker-0 --kubeconfig ~/.kube/config --output snap.json
    python -m ovnrecon.main show worker-0 --snapshot-dir fixtures/snapshots
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ovnrecon import config
from ovnrecon.models import Snapshot, SourceHealth

# Status lines and summaries go to stderr.
console = Console(stderr=True)


def rprint(msg: str, *, style: str = "") -> None:
    console.print(msg, style=style)


# ---------------------------------------------------------------------------
# Typer application
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="ovnrecon",
    help="OVN Recon — logical topology snapshots from live OVN clusters",
    add_completion=False,
)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _setup_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _build_collector(
    kubeconfig: Optional[str],
    namespaces: list[str],
    include_probe_output: bool,
):
    """Wire the Kubernetes exec runner factory into a snapshot collector.

    This is the only place process-wide collection defaults are decided;
    everything below receives them explicitly.
    """
    from ovnrecon.probe.collector import SnapshotCollector
    from ovnrecon.probe.kube_runner import KubeExecRunnerFactory, load_core_v1
    from ovnrecon.probe.errors import ConfigurationError

    if not namespaces:
        raise ConfigurationError("at least one target namespace is required")

    core_v1 = load_core_v1(kubeconfig)
    factory = KubeExecRunnerFactory(
        core_v1,
        namespaces,
        logger=logging.getLogger("ovnrecon.runner"),
    )
    return SnapshotCollector(
        factory,
        logger=logging.getLogger("ovnrecon.collector"),
        include_probe_output=include_probe_output,
    )


# ---------------------------------------------------------------------------
# serve - HTTP snapshot server
# ---------------------------------------------------------------------------

@app.command()
def serve(
    port: int = typer.Option(config.PORT, "--port", "-p", help="Listen port."),
    snapshot_dir: str = typer.Option(
        config.SNAPSHOT_DIR, "--snapshot-dir", help="Directory of <node>.json snapshot files.",
    ),
    namespace: Optional[list[str]] = typer.Option(
        None, "--namespace", "-n",
        help="Target namespace(s) for OVN pods.  Repeat for multiple.",
    ),
    kubeconfig: Optional[str] = typer.Option(
        None, "--kubeconfig", "-k", help="Kubeconfig path (default: in-cluster / ~/.kube/config).",
    ),
) -> None:
    """Serve node snapshots over HTTP, probing OVN live when possible."""
    _setup_logging(config.LOG_LEVEL)
    logger = logging.getLogger("ovnrecon")

    import uvicorn

    from ovnrecon.probe.errors import ProbeError
    from ovnrecon.server import create_app
    from ovnrecon.snapshot.store import FileStore

    namespaces = namespace or config.TARGET_NAMESPACES
    store = FileStore(snapshot_dir, config.SNAPSHOT_FALLBACK_FILE)

    try:
        collector = _build_collector(kubeconfig, namespaces, config.INCLUDE_PROBE_OUTPUT)
        logger.info("live OVN probing enabled target_namespaces=%s", namespaces)
    except ProbeError as exc:
        logger.warning("live OVN probing disabled; serving file snapshots only error=%s", exc)
        collector = None

    logger.info(
        "starting ovn-recon collector port=%d snapshot_dir=%s target_namespaces=%s "
        "log_level=%s include_probe_output=%s",
        port, snapshot_dir, namespaces, logging.getLevelName(config.LOG_LEVEL),
        config.INCLUDE_PROBE_OUTPUT,
    )
    uvicorn.run(
        create_app(store, collector, config.PROBE_TIMEOUT_SECONDS),
        host="0.0.0.0",
        port=port,
        log_level=logging.getLevelName(config.LOG_LEVEL).lower(),
    )


# ---------------------------------------------------------------------------
# collect - one live collection
# ---------------------------------------------------------------------------

@app.command()
def collect(
    node: str = typer.Argument(..., help="Node whose OVN view to collect."),
    kubeconfig: Optional[str] = typer.Option(
        None, "--kubeconfig", "-k", help="Kubeconfig path (default: ~/.kube/config, then in-cluster).",
    ),
    namespace: Optional[list[str]] = typer.Option(
        None, "--namespace", "-n",
        help="Target namespace(s) for OVN pods.  Repeat for multiple.",
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the snapshot JSON to this path.",
    ),
    save: bool = typer.Option(
        False, "--save", help="Also write <snapshot-dir>/<node>.json.",
    ),
    snapshot_dir: str = typer.Option(config.SNAPSHOT_DIR, "--snapshot-dir"),
    timeout: float = typer.Option(
        config.PROBE_TIMEOUT_SECONDS, "--timeout", help="Overall probe deadline in seconds.",
    ),
    include_probe_output: bool = typer.Option(
        config.INCLUDE_PROBE_OUTPUT, "--include-probe-output",
        help="Log raw ovn-nbctl output (DEBUG) instead of byte counts.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable DEBUG logging."),
) -> None:
    """Collect a live logical topology snapshot for NODE."""
    _setup_logging(logging.DEBUG if debug else config.LOG_LEVEL)

    from ovnrecon.probe.deadline import Deadline
    from ovnrecon.probe.errors import ProbeError
    from ovnrecon.snapshot.store import FileStore, write_snapshot

    rprint(f"[bold cyan]▶ Collecting logical topology for {node}…[/bold cyan]")
    try:
        collector = _build_collector(kubeconfig, namespace or config.TARGET_NAMESPACES, include_probe_output)
        snapshot = collector.collect(node, Deadline(timeout))
    except ProbeError as exc:
        rprint(f"[bold red]✘ Collection failed:[/bold red] {exc}")
        sys.exit(1)

    _display_summary(snapshot)

    if output:
        path = write_snapshot(snapshot, output)
        rprint(f"[bold green]✔ Snapshot written to {path}[/bold green]")
    if save:
        path = FileStore(snapshot_dir, None).save(snapshot, node)
        rprint(f"[bold green]✔ Snapshot saved to {path}[/bold green]")


# ---------------------------------------------------------------------------
# show - inspect a stored snapshot
# ---------------------------------------------------------------------------

@app.command()
def show(
    node: str = typer.Argument(..., help="Node whose stored snapshot to show."),
    snapshot_dir: str = typer.Option(config.SNAPSHOT_DIR, "--snapshot-dir"),
    fallback: Optional[str] = typer.Option(
        config.SNAPSHOT_FALLBACK_FILE, "--fallback", help="Fallback file for unknown nodes.",
    ),
) -> None:
    """Summarise the stored snapshot for NODE."""
    _setup_logging(config.LOG_LEVEL)
    from ovnrecon.snapshot.store import FileStore, SnapshotStoreError

    try:
        snapshot = FileStore(snapshot_dir, fallback or None).get_by_node(node)
    except SnapshotStoreError as exc:
        rprint(f"[bold red]✘ {exc}[/bold red]")
        sys.exit(1)
    _display_summary(snapshot)


def _display_summary(snapshot: Snapshot) -> None:
    """Display a Rich summary of a snapshot."""
    from ovnrecon.probe.graph_builder import graph_summary

    summary = graph_summary(snapshot)
    meta = snapshot.metadata
    health_color = "green" if meta.source_health == SourceHealth.healthy else "yellow"
    rprint(
        f"  Node: [bold]{meta.node_name}[/bold]  "
        f"Health: [{health_color}]{meta.source_health.value}[/{health_color}]  "
        f"Nodes: {summary['node_count']}  Edges: {summary['edge_count']}"
    )

    table = Table(title="Logical topology", show_header=True, header_style="bold magenta")
    table.add_column("Kind", style="cyan")
    table.add_column("Count", justify="right", style="yellow")
    for kind, count in sorted(summary["kind_counts"].items()):
        table.add_row(kind, str(count))
    console.print(table)

    if summary["unattached_switch_ports"]:
        rprint(f"  {len(summary['unattached_switch_ports'])} switch port(s) without a switch", style="dim")
    for warning in snapshot.warnings:
        rprint(f"  [yellow]{warning.code.value}[/yellow] {warning.message}")


@app.command()
def version() -> None:
    """Show version information."""
    from ovnrecon import __version__
    console.print(f"ovnrecon version [cyan]{__version__}[/cyan]")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
