"""Control API server CLI command."""

from __future__ import annotations

import click

from peerlink.cli.main import Context, pass_context


@click.command()
@click.option("--host", help="Bind address (default: PEERLINK_HOST)")
@click.option("--port", type=int, help="Bind port (default: PEERLINK_PORT)")
@click.option("--no-metrics", is_flag=True, help="Do not run the observability publisher")
@pass_context
def serve(ctx: Context, host: str | None, port: int | None, no_metrics: bool) -> None:
    """Run the control API."""
    import uvicorn

    from peerlink.api.app import create_app
    from peerlink.config import get_settings
    from peerlink.logging import setup_logging

    settings = get_settings()
    overrides: dict[str, object] = {"topology_path": ctx.topology_path}
    if no_metrics:
        overrides["metrics_enabled"] = False
    if ctx.verbose:
        overrides["log_level"] = "DEBUG"
    settings = settings.model_copy(update=overrides)

    setup_logging(settings.log_level, settings.log_format)
    app = create_app(settings, topology=ctx.topology)
    uvicorn.run(app, host=host or settings.host, port=port or settings.port, log_config=None)
