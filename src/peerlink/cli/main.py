"""Main CLI entry point for peerlink."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
from rich.console import Console

from peerlink import __version__

console = Console()

DEFAULT_TOPOLOGY = "config.yaml"


class Context:
    """CLI context object passed to commands."""

    def __init__(self) -> None:
        self.topology_path: Path | None = None
        self.verbose: bool = False
        self._topology: Any = None

    @property
    def topology(self) -> Any:
        """Lazy-load topology."""
        if self._topology is None:
            from peerlink.core.topology import Topology
            from peerlink.errors import TopologyError

            if self.topology_path and self.topology_path.exists():
                try:
                    self._topology = Topology.load(self.topology_path)
                except TopologyError as e:
                    raise click.ClickException(str(e)) from e
            else:
                raise click.ClickException(f"Topology not found: {self.topology_path}")
        return self._topology


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.version_option(version=__version__, prog_name="peerlink")
@click.option(
    "-t",
    "--topology",
    type=click.Path(exists=False, path_type=Path),
    envvar="PEERLINK_TOPOLOGY_PATH",
    default=DEFAULT_TOPOLOGY,
    help="Path to mutual-peers topology YAML file",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@pass_context
def cli(ctx: Context, topology: Path, verbose: bool) -> None:
    """
    Peerlink - mutual-peer connectivity for blockchain nodes.

    Validate topologies, inspect bootstrap commands and run the
    control API.
    """
    ctx.topology_path = topology
    ctx.verbose = verbose


# Import and register subcommands
from peerlink.cli.commands import commands
from peerlink.cli.serve import serve
from peerlink.cli.validate import validate

cli.add_command(commands)
cli.add_command(serve)
cli.add_command(validate)


@cli.command()
@pass_context
def nodes(ctx: Context) -> None:
    """List all peers declared in the topology."""
    from rich.table import Table

    try:
        topology = ctx.topology
    except click.ClickException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    table = Table(title="Mutual Peers")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Namespace")
    table.add_column("Wiring")
    table.add_column("Mutual peers", justify="right")

    for peer in topology:
        wiring = "env var" if peer.connects_as_env_var else "commands"
        table.add_row(
            peer.node_name,
            peer.node_type.value,
            peer.namespace,
            wiring,
            str(len(topology.mutual_peers_of(peer.node_name))),
        )

    console.print(table)


if __name__ == "__main__":
    cli()
