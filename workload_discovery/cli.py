"""CLI entry-point for workload-discovery."""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from workload_discovery import __version__
from workload_discovery.classifier import Classifier
from workload_discovery.cluster import ClusterClient
from workload_discovery.config import ConfigError, Settings
from workload_discovery.models import AggregateSnapshot
from workload_discovery.poller import Poller, run_cycle
from workload_discovery.publisher import MetricsSink

console = Console()

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def _cluster_options(fn: Any) -> Any:
    """Options shared by every command that talks to the cluster."""
    fn = click.option("--verbose", "-v", is_flag=True, help="Log every kubectl call.")(fn)
    fn = click.option(
        "--rules", "rules_file", default="", help="YAML file overriding classification rules."
    )(fn)
    fn = click.option(
        "--field-selector", default="", help="Pod field selector, e.g. status.phase=Running."
    )(fn)
    fn = click.option(
        "--exec-timeout", default=10.0, type=float, help="Seconds allowed per container exec."
    )(fn)
    fn = click.option(
        "--max-workers", default=8, type=int, help="Containers inspected concurrently."
    )(fn)
    fn = click.option("--context", "kube_context", default="", help="Kubernetes context to use.")(fn)
    fn = click.option(
        "--kubeconfig", default="", help="Path to kubeconfig file (default: in-cluster / ~/.kube/config)."
    )(fn)
    return fn


def _build_settings(rules_file: str, **overrides: Any) -> Settings:
    # Empty CLI values fall through to Settings defaults (and their env vars).
    settings = Settings(**{k: v for k, v in overrides.items() if v not in ("", None)})
    if rules_file:
        settings = settings.with_rules_file(rules_file)
    return settings


def _connect(settings: Settings) -> ClusterClient:
    client = ClusterClient(kubeconfig=settings.kubeconfig, context=settings.kube_context)
    result = client.check_connectivity()
    if not result.ok:
        console.print(f"[red bold]Error:[/red bold] cannot reach the cluster: {result.stderr.strip()}")
        sys.exit(1)
    return client


def _snapshot_tables(snapshot: AggregateSnapshot) -> list[Table]:
    tables = []
    for title, header, counts in (
        ("Pods per namespace", "Namespace", snapshot.namespaces),
        ("Containers per base image type", "Base type", snapshot.base_types),
        ("Containers per image", "Image", snapshot.images),
    ):
        table = Table(title=title)
        table.add_column(header, style="bold")
        table.add_column("Count", justify="right")
        for key, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
            table.add_row(key, str(count))
        tables.append(table)
    return tables


@click.group()
@click.version_option(version=__version__, prog_name="workload-discovery")
def main() -> None:
    """Discover cluster workloads and export base-image / FIPS metrics."""


@main.command()
@_cluster_options
@click.option("--interval", default=None, type=float, help="Seconds between discovery cycles.")
@click.option("--port", default=None, type=int, help="Port for the /metrics endpoint.")
@click.option("--addr", default="0.0.0.0", help="Address for the /metrics endpoint.")
def run(
    kubeconfig: str,
    kube_context: str,
    max_workers: int,
    exec_timeout: float,
    field_selector: str,
    rules_file: str,
    verbose: bool,
    interval: float | None,
    port: int | None,
    addr: str,
) -> None:
    """Serve metrics and rediscover workloads on a fixed interval."""
    _configure_logging(verbose)

    try:
        settings = _build_settings(
            rules_file,
            kubeconfig=kubeconfig,
            kube_context=kube_context,
            max_workers=max_workers,
            exec_timeout=exec_timeout,
            field_selector=field_selector,
            poll_interval=interval,
            metrics_port=port,
            metrics_addr=addr,
            verbose=verbose,
        )
    except (ConfigError, ValueError) as exc:
        console.print(f"[red bold]Error:[/red bold] {exc}")
        sys.exit(1)

    client = _connect(settings)

    sink = MetricsSink()
    sink.serve(settings.metrics_port, settings.metrics_addr)

    poller = Poller(client, sink, settings)

    def _handle_signal(signum: int, _frame: Any) -> None:
        logger.info("Received signal %d, stopping", signum)
        poller.stop()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)

    poller.run_forever()


@main.command()
@_cluster_options
def scan(
    kubeconfig: str,
    kube_context: str,
    max_workers: int,
    exec_timeout: float,
    field_selector: str,
    rules_file: str,
    verbose: bool,
) -> None:
    """Run a single discovery cycle and print the results (no metrics server)."""
    _configure_logging(verbose)

    try:
        settings = _build_settings(
            rules_file,
            kubeconfig=kubeconfig,
            kube_context=kube_context,
            max_workers=max_workers,
            exec_timeout=exec_timeout,
            field_selector=field_selector,
            verbose=verbose,
        )
    except (ConfigError, ValueError) as exc:
        console.print(f"[red bold]Error:[/red bold] {exc}")
        sys.exit(1)

    client = _connect(settings)

    console.print(Panel("Discovering workloads", style="bold cyan"))
    snapshot = run_cycle(client, MetricsSink(), Classifier.from_settings(settings), settings)
    if snapshot is None:
        console.print("[red bold]Error:[/red bold] discovery cycle did not complete (see log).")
        sys.exit(1)

    for table in _snapshot_tables(snapshot):
        console.print(table)

    console.print(
        f"\n  Pods: [green]{snapshot.workloads}[/green]  "
        f"Containers: [green]{snapshot.containers}[/green]  "
        f"FIPS-compliant: [cyan]{snapshot.compliant}[/cyan]"
    )


if __name__ == "__main__":
    main()
