"""CLI entry point for agikit."""

from pathlib import Path
from typing import Annotated

import typer
from mm_clikit import TyperPlus

from agikit.app_context import AppContext
from agikit.commands.config import config
from agikit.commands.run import run
from agikit.commands.serve import serve
from agikit.config import Config
from agikit.log import setup_logging
from agikit.output import Output

app = TyperPlus(package_name="agikit")


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
    config_path: Annotated[Path | None, typer.Option("--config", help="Config file path.")] = None,
    debug_protocol: Annotated[
        bool | None, typer.Option("--debug-protocol/--no-debug-protocol", help="Log every AGI round-trip.")
    ] = None,
) -> None:
    """Asterisk AGI and FastAGI sessions for Python handlers."""
    cfg = Config.build(config_path, debug_protocol=debug_protocol)
    setup_logging(cfg.log_path, "DEBUG" if cfg.debug_protocol else cfg.log_level)
    ctx.obj = AppContext(out=Output(json_mode=json_output), cfg=cfg)


# FastAGI
app.command()(serve)

# AGI script
app.command()(run)

# Settings
app.command()(config)
