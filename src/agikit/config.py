"""Centralized application configuration."""

import tomllib
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "agikit" / "config.toml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config(BaseModel):
    """Application-wide configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="localhost", min_length=1, description="FastAGI listen host")
    port: int = Field(default=4573, ge=0, le=65535, description="FastAGI listen port (0 = any free port)")
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$", description="Package log level")
    log_path: Path | None = Field(default=None, description="Rotating log file; stderr when unset")
    pid_path: Path | None = Field(default=None, description="PID file written by the FastAGI server")
    debug_protocol: bool = Field(default=False, description="Log every command round-trip at DEBUG")

    @computed_field(description="FastAGI listen address")
    @property
    def address(self) -> str:
        """FastAGI listen address as ``host:port``."""
        return f"{self.host}:{self.port}"

    @classmethod
    def build(cls, config_path: Path | None = None, **overrides: Any) -> Self:
        """Build a Config from defaults, an optional config.toml and explicit overrides.

        Only keys with the expected TOML type are taken from the file; ``None``
        overrides are ignored.
        """
        resolved_path = config_path if config_path is not None else DEFAULT_CONFIG_PATH

        kwargs: dict[str, Any] = {}
        if resolved_path.is_file():
            with resolved_path.open("rb") as f:
                toml_data = tomllib.load(f)
            if isinstance(toml_data.get("host"), str):
                kwargs["host"] = toml_data["host"]
            if isinstance(toml_data.get("port"), int):
                kwargs["port"] = toml_data["port"]
            if isinstance(toml_data.get("log_level"), str) and toml_data["log_level"].upper() in _LOG_LEVELS:
                kwargs["log_level"] = toml_data["log_level"].upper()
            if isinstance(toml_data.get("log_path"), str):
                kwargs["log_path"] = Path(toml_data["log_path"]).expanduser()
            if isinstance(toml_data.get("pid_path"), str):
                kwargs["pid_path"] = Path(toml_data["pid_path"]).expanduser()
            if isinstance(toml_data.get("debug_protocol"), bool):
                kwargs["debug_protocol"] = toml_data["debug_protocol"]

        kwargs.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**kwargs)
