"""Topology validation CLI command."""

from __future__ import annotations

import click
from rich.console import Console

from peerlink.cli.main import Context, pass_context

console = Console()


@click.command()
@click.option(
    "--strict",
    is_flag=True,
    help="Fail on warnings",
)
@pass_context
def validate(ctx: Context, strict: bool) -> None:
    """
    Validate the mutual-peers topology.

    Checks schema compliance, dangling references and nodes that no
    wiring path can configure.

    Examples:

        peerlink validate

        peerlink -t deploy/topology.yaml validate --strict
    """
    from peerlink.core.defaults import apply_defaults
    from peerlink.orchestrator import COMMAND_PATHS

    errors: list[str] = []
    warnings: list[str] = []

    console.print("[bold]Validating topology...[/bold]")
    try:
        topology = ctx.topology
    except click.ClickException as e:
        console.print(f"  [red]✗[/red] Topology validation failed: {e}")
        raise SystemExit(1)
    console.print(f"  [green]✓[/green] Topology loaded: {len(topology.groups)} groups, {len(topology)} peers")

    console.print("[bold]Checking references...[/bold]")
    for group in topology.groups:
        if group.consensus_node and group.consensus_node not in topology:
            warnings.append(f"Consensus node not declared as a peer: {group.consensus_node}")
        if len(group.peers) < 2:
            warnings.append(f"Group with fewer than two peers: {[p.node_name for p in group.peers]}")

    for peer in topology:
        for name in peer.connects_to:
            if name not in topology:
                errors.append(f"Peer '{peer.node_name}': connectsTo unknown node: {name}")
        configured = apply_defaults(peer)
        if not configured.connects_as_env_var and COMMAND_PATHS[configured.node_type] is None:
            errors.append(
                f"Peer '{peer.node_name}': {configured.node_type.value} nodes "
                "must set connectsAsEnvVar"
            )

    if not errors:
        console.print("  [green]✓[/green] All references valid")

    console.print("\n[bold]Validation Summary[/bold]")
    console.print(f"  Errors: {len(errors)}")
    console.print(f"  Warnings: {len(warnings)}")

    if errors:
        console.print("\n[red bold]Validation failed[/red bold]")
        for err in errors:
            console.print(f"  [red]•[/red] {err}")
        raise SystemExit(1)

    if warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warn in warnings:
            console.print(f"  [yellow]•[/yellow] {warn}")
        if strict:
            console.print("\n[yellow bold]Validation failed (strict mode)[/yellow bold]")
            raise SystemExit(1)

    console.print("\n[green bold]Validation passed[/green bold]")
