"""Configuration loading for BazaarTrack.

Settings live in ``~/.config/bazaartrack/config.toml``. Every value has a
default, so a missing file is fine. A few environment variables override
the file:

- ``HYPIXEL_API_KEY``: feed API key
- ``BAZAARTRACK_DB_PATH``: database location
- ``BAZAARTRACK_ENV``: ``development`` turns on dev mode
"""

import os
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator

from bazaartrack.feeds.hypixel import DEFAULT_BASE_URL


CONFIG_DIR = Path.home() / ".config" / "bazaartrack"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = CONFIG_DIR / "bazaar.db"


class FeedSettings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    timeout: float = Field(default=30, gt=0)


class CollectorSettings(BaseModel):
    interval_seconds: float = Field(default=300, gt=0)
    # Multiple of the interval after which an unfinished run stops blocking
    stale_after_intervals: float = Field(default=3, gt=0)


class StorageSettings(BaseModel):
    db_path: Path = DEFAULT_DB_PATH

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand(cls, value):
        return Path(value).expanduser()


class AppSettings(BaseModel):
    dev_mode: bool = False
    log_level: str = "INFO"


class Settings(BaseModel):
    """Full application configuration."""

    feed: FeedSettings = Field(default_factory=FeedSettings)
    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    app: AppSettings = Field(default_factory=AppSettings)


def load_config(path: Optional[Path] = None, environ: Optional[dict] = None) -> Settings:
    """Load settings from a TOML file and the environment.

    Args:
        path: Config file location. Defaults to ``~/.config/bazaartrack/config.toml``.
        environ: Environment mapping, defaults to ``os.environ``.

    Returns:
        Settings with defaults filled in.

    Raises:
        ValueError: If the file exists but is not valid TOML or has bad values.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    data: dict = {}
    if config_path.exists():
        try:
            data = toml.load(config_path)
        except toml.TomlDecodeError as e:
            raise ValueError(f"Invalid config file {config_path}: {e}") from e

    if env.get("HYPIXEL_API_KEY"):
        data.setdefault("feed", {})["api_key"] = env["HYPIXEL_API_KEY"]
    if env.get("BAZAARTRACK_DB_PATH"):
        data.setdefault("storage", {})["db_path"] = env["BAZAARTRACK_DB_PATH"]
    if env.get("BAZAARTRACK_ENV", "").lower() == "development":
        data.setdefault("app", {})["dev_mode"] = True

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid config file {config_path}: {e}") from e


def save_config(settings: Settings, path: Optional[Path] = None) -> Path:
    """Write settings as TOML, creating the config directory if needed."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(mode="json")
    with open(config_path, "w") as f:
        toml.dump(data, f)
    return config_path
