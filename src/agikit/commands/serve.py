"""Run a FastAGI server dispatching every call to a handler."""

from typing import Annotated

import typer
from pydantic import ValidationError

from agikit.app_context import use_context
from agikit.config import Config
from agikit.errors import ServerError
from agikit.handlers import HandlerError, load_handler
from agikit.server import run_server


def serve(
    ctx: typer.Context,
    handler: Annotated[str, typer.Argument(help="Async handler as 'module:function'.")],
    *,
    host: Annotated[str | None, typer.Option("--host", help="Listen host (overrides config).")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Listen port (overrides config).")] = None,
) -> None:
    """Run a FastAGI server; each call runs HANDLER with its own session."""
    app = use_context(ctx)
    overrides = {key: value for key, value in {"host": host, "port": port}.items() if value is not None}
    try:
        cfg = Config.model_validate({**app.cfg.model_dump(exclude={"address"}), **overrides})
    except ValidationError as e:
        app.out.print_error_and_exit("invalid_config", str(e))
    try:
        func = load_handler(handler)
    except HandlerError as e:
        app.out.print_error_and_exit(e.code, str(e))
    app.out.print_serving(cfg.address, handler)
    try:
        run_server(cfg, func)
    except ServerError as e:
        app.out.print_error_and_exit("server_error", str(e))
    app.out.print_stopped()
