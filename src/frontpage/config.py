"""Unified configuration loaded from .frontpage.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".frontpage.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "frontpage" / "config.toml"

SNAPSHOT_FILENAME = "hackernews.json"
APP_ID = "hackernews"


class OutputConfig(BaseModel):
    """[output] section."""

    directory: str = "./frontpage-data"

    @property
    def snapshot_path(self) -> Path:
        return Path(self.directory) / "state" / SNAPSHOT_FILENAME

    @property
    def app_data_path(self) -> Path:
        return Path(self.directory) / "app_data" / f"{APP_ID}.json"


class SourcesConfig(BaseModel):
    """[sources] section."""

    front_page: bool = True
    best_stories: bool = False
    rss: bool = False
    num_stories: int = 20


class FetchConfig(BaseModel):
    """[fetch] section."""

    retry_limit: int = 2
    retry_base_seconds: float = 1.0
    timeout_seconds: float = 30.0
    max_concurrent_items: int = 1
    user_agent: str = "frontpage/0.1 (+https://news.ycombinator.com; story cache)"


class SummarizeConfig(BaseModel):
    """[summarize] section."""

    model: str | None = None
    timeout_seconds: int = 120
    exact_compare_limit: int = 200_000


class SuppressionConfig(BaseModel):
    """[suppression] section."""

    retention_days: int = 7

    @property
    def retention(self) -> timedelta:
        return timedelta(days=self.retention_days)


class FrontpageConfig(BaseModel):
    """Top-level configuration model."""

    output: OutputConfig = Field(default_factory=OutputConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    summarize: SummarizeConfig = Field(default_factory=SummarizeConfig)
    suppression: SuppressionConfig = Field(default_factory=SuppressionConfig)


def load_config(path: str | Path | None = None) -> FrontpageConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .frontpage.toml in CWD
    3. ~/.config/frontpage/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged FrontpageConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = FrontpageConfig.model_validate(data) if data else FrontpageConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: FrontpageConfig, **cli_kwargs: object) -> FrontpageConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "output_directory": ("output", "directory"),
        "num_stories": ("sources", "num_stories"),
        "model": ("summarize", "model"),
        "retention_days": ("suppression", "retention_days"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value
        elif key == "sources":
            # An explicit --source list replaces the configured set
            names = set(value)  # type: ignore[call-overload]
            data["sources"]["front_page"] = "front" in names
            data["sources"]["best_stories"] = "best" in names
            data["sources"]["rss"] = "rss" in names

    return FrontpageConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: FrontpageConfig) -> FrontpageConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "FRONTPAGE_OUTPUT_DIR": ("output", "directory"),
        "FRONTPAGE_MODEL": ("summarize", "model"),
        "FRONTPAGE_RETENTION_DAYS": ("suppression", "retention_days"),
        "FRONTPAGE_NUM_STORIES": ("sources", "num_stories"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    return FrontpageConfig.model_validate(data)
