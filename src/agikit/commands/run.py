"""Run a handler as a classic AGI script on stdin/stdout."""

import asyncio
import logging
from typing import Annotated

import typer

from agikit.app_context import use_context
from agikit.handlers import HandlerError, load_handler
from agikit.server import Handler
from agikit.session import Session


async def _run_stdio(handler: Handler, *, eagi: bool, debug_protocol: bool) -> None:
    logger = logging.getLogger("agikit.protocol") if debug_protocol else None
    if eagi:
        session = await Session.from_eagi(logger=logger)
    else:
        session = await Session.from_stdio(logger=logger)
    await handler(session)


def run(
    ctx: typer.Context,
    handler: Annotated[str, typer.Argument(help="Async handler as 'module:function'.")],
    *,
    eagi: Annotated[bool, typer.Option("--eagi", help="Expose the EAGI audio stream (fd 3).")] = False,
) -> None:
    """Run HANDLER once as an AGI script (Asterisk AGI() / EAGI() application)."""
    app = use_context(ctx)
    try:
        func = load_handler(handler)
    except HandlerError as e:
        app.out.print_error_and_exit(e.code, str(e))
    # Nothing may be printed on success: stdout belongs to the AGI protocol
    asyncio.run(_run_stdio(func, eagi=eagi, debug_protocol=app.cfg.debug_protocol))
