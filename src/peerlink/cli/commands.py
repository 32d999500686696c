"""Bootstrap command inspection CLI command."""

from __future__ import annotations

import click
from rich.console import Console
from rich.syntax import Syntax

from peerlink.cli.main import Context, pass_context

console = Console()


@click.command()
@click.argument("node_name")
@click.option(
    "--kind",
    "-k",
    type=click.Choice(["fetch", "create", "bulk"]),
    default="create",
    help="Which bootstrap command to render",
)
@click.option(
    "--address",
    "-a",
    help="Address to append (bulk only)",
)
@click.option(
    "--argv",
    "as_argv",
    is_flag=True,
    help="Print the full kubectl argv instead of the script",
)
@pass_context
def commands(ctx: Context, node_name: str, kind: str, address: str | None, as_argv: bool) -> None:
    """
    Show the bootstrap command that would run on a node.

    Nothing is executed.

    Examples:

        peerlink commands da-bridge-0

        peerlink commands da-bridge-0 --kind bulk -a /dns/x/tcp/2121/p2p/12D3Koo
    """
    import json

    from peerlink.bootstrap.commands import TrustedPeerCommandBuilder
    from peerlink.bootstrap.executor import KubectlExecutor, NodeTarget
    from peerlink.core.defaults import apply_defaults

    try:
        topology = ctx.topology
    except click.ClickException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    found, peer = topology.validate_node(node_name)
    if not found or peer is None:
        console.print(f"[red]Error:[/red] Node not in topology: {node_name}")
        raise SystemExit(1)
    peer = apply_defaults(peer)

    builder = TrustedPeerCommandBuilder()
    if kind == "fetch":
        command = builder.fetch()
    elif kind == "create":
        command = builder.create()
    else:
        if not address:
            console.print("[red]Error:[/red] --address is required for bulk")
            raise SystemExit(1)
        command = builder.bulk_append(address)

    if as_argv:
        target = NodeTarget(peer.node_name, peer.namespace, peer.container_name or peer.node_type.value)
        console.print(json.dumps(KubectlExecutor().build_argv(target, command), indent=2))
        return

    console.print(f"[bold]{type(command).__name__}[/bold] on [cyan]{peer.node_name}[/cyan]")
    console.print(Syntax(command.script(), "bash"))
