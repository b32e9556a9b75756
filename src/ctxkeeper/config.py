"""Configuration loading from environment variables and ctxkeeper.toml."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_ROOT_DIR = Path.home() / ".shared-project-context"
_BUILTIN_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
_CONFIG_FILENAME = "ctxkeeper.toml"


@dataclass
class KeeperConfig:
    """Top-level ctxkeeper configuration."""

    root_dir: Path = _DEFAULT_ROOT_DIR
    templates_dir: Path = _BUILTIN_TEMPLATES_DIR
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> KeeperConfig:
    """Load configuration from environment variables and optional ctxkeeper.toml.

    Priority: environment variables > ctxkeeper.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.ctxkeeper/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".ctxkeeper" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    storage_data = file_data.get("storage", {})

    return KeeperConfig(
        root_dir=Path(
            os.getenv("CTXKEEPER_ROOT", storage_data.get("root_dir", str(_DEFAULT_ROOT_DIR)))
        ).expanduser(),
        templates_dir=Path(
            os.getenv(
                "CTXKEEPER_TEMPLATES_DIR",
                storage_data.get("templates_dir", str(_BUILTIN_TEMPLATES_DIR)),
            )
        ).expanduser(),
        log_level=os.getenv("CTXKEEPER_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
