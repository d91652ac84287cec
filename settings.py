"""Locate, load and create the EthCrawler configuration file.

Two formats are accepted, both plain ``KEY=value`` lines:

* ``.env`` - loaded into the process environment, so variables that are
  already exported take precedence;
* ``ethcrawler.conf`` (or any other name) - read as-is, ``#`` comments allowed.
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from dotenv import dotenv_values, load_dotenv

from transfers import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_USDT_CONTRACT = "0xdac17f958d2ee523a2206206994597c13d831ec7"
ENV_FILE_NAME = ".env"
CONF_FILE_NAME = "ethcrawler.conf"

API_KEY_VAR = "ETHERSCAN_API_KEY"
CONTRACT_VAR = "USDT_CONTRACT"


@dataclass
class Settings:
    api_key: str = ""
    contract: str = ""


def app_dir() -> Path:
    """Directory of the running program (falls back to the working directory)."""
    if sys.argv and sys.argv[0]:
        return Path(sys.argv[0]).resolve().parent
    return Path.cwd()


def search_paths(base_dir: Path | None = None) -> List[Path]:
    """Config candidates in priority order: next to the program, then the cwd."""
    base_dir = base_dir or app_dir()
    return [
        base_dir / CONF_FILE_NAME,
        base_dir / ENV_FILE_NAME,
        Path(CONF_FILE_NAME),
        Path(ENV_FILE_NAME),
    ]


def find_config_file(base_dir: Path | None = None) -> Optional[Path]:
    for path in search_paths(base_dir):
        if path.is_file():
            logger.info("Found configuration file: %s", path)
            return path
    return None


def _is_env_file(path: Path) -> bool:
    return path.name == ENV_FILE_NAME or path.suffix.lower() == ".env"


def load_config_file(path: str | Path) -> Settings:
    """Read the API key and contract from *path*; missing values come back empty."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")

    if _is_env_file(path):
        load_dotenv(path)
        return Settings(
            api_key=(os.getenv(API_KEY_VAR) or "").strip(),
            contract=(os.getenv(CONTRACT_VAR) or "").strip(),
        )

    try:
        values = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"error reading conf file {path}: {exc}") from exc
    return Settings(
        api_key=(values.get(API_KEY_VAR) or "").strip(),
        contract=(values.get(CONTRACT_VAR) or "").strip(),
    )


def render_config(path: Path, settings: Settings) -> str:
    if _is_env_file(path):
        return f"{API_KEY_VAR}={settings.api_key}\n{CONTRACT_VAR}={settings.contract}\n"
    return (
        "# EthCrawler configuration file\n\n"
        "# Etherscan API key\n"
        f"{API_KEY_VAR}={settings.api_key}\n\n"
        "# USDT contract address\n"
        f"{CONTRACT_VAR}={settings.contract}\n"
    )


def save_config_file(path: str | Path, settings: Settings) -> Path:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_config(path, settings), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"error saving configuration to {path}: {exc}") from exc
    logger.info("Configuration saved to %s", path)
    return path


def setup_configuration(
    custom_path: str | None,
    prompt_api_key: Callable[[], str],
    base_dir: Path | None = None,
) -> Settings:
    """Load the configuration, creating or completing it interactively.

    An explicit *custom_path* must exist. Otherwise the standard locations are
    searched, and when nothing is found a new ``ethcrawler.conf`` is written
    next to the program. A missing API key is asked for with *prompt_api_key*;
    a missing contract falls back to USDT. Either fix is saved back.
    """
    if custom_path:
        path: Optional[Path] = Path(custom_path)
        if not path.is_file():
            raise ConfigError(f"specified config file not found: {custom_path}")
    else:
        path = find_config_file(base_dir)

    if path is None:
        logger.warning("Configuration file not found. Setting up for first use.")
        settings = Settings(api_key=prompt_api_key(), contract=DEFAULT_USDT_CONTRACT)
        save_config_file((base_dir or app_dir()) / CONF_FILE_NAME, settings)
        return settings

    settings = load_config_file(path)
    changed = False
    if not settings.api_key:
        logger.warning("API key not found in %s", path)
        settings.api_key = prompt_api_key()
        changed = True
    if not settings.contract:
        settings.contract = DEFAULT_USDT_CONTRACT
        changed = True
    if changed:
        save_config_file(path, settings)
    return settings
