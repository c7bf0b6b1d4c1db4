"""Structured output for CLI and JSON modes."""

# ruff: noqa: T201 — this module is the output layer; print() is its sole mechanism for producing CLI output.

import json
import sys
from typing import NoReturn

import typer

from agikit.config import Config


class Output:
    """Handles all CLI output in JSON or human-readable format."""

    def __init__(self, *, json_mode: bool) -> None:
        """Initialize output handler.

        Args:
            json_mode: If True, output JSON envelopes; otherwise human-readable text.

        """
        self._json_mode = json_mode

    def _success(self, data: dict[str, object], message: str) -> None:
        """Print a success result in JSON or human-readable format."""
        if self._json_mode:
            print(json.dumps({"ok": True, "data": data}))
        else:
            print(message)

    def print_error_and_exit(self, code: str, message: str) -> NoReturn:
        """Print an error in JSON or human-readable format and exit with code 1.

        Raises:
            typer.Exit: Always, with code 1.

        """
        if self._json_mode:
            print(json.dumps({"ok": False, "error": code, "message": message}))
        else:
            print(f"Error: {message}", file=sys.stderr)
        raise typer.Exit(code=1)

    # --- Server ---

    def print_serving(self, address: str, handler: str) -> None:
        """Print FastAGI server startup confirmation."""
        self._success({"address": address, "handler": handler}, f"FastAGI server on {address}, handler {handler}.")

    def print_stopped(self) -> None:
        """Print server stopped confirmation."""
        self._success({}, "FastAGI server stopped.")

    # --- Config ---

    def print_config(self, cfg: Config) -> None:
        """Print the effective configuration."""
        data = cfg.model_dump(mode="json")
        if self._json_mode:
            print(json.dumps({"ok": True, "data": data}))
        else:
            for key, value in data.items():
                print(f"{key}: {value}")
