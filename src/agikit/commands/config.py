"""Show the effective configuration."""

import typer

from agikit.app_context import use_context


def config(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    app = use_context(ctx)
    app.out.print_config(app.cfg)
