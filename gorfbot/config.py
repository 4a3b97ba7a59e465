"""
Configuration for Gorfbot.

Settings come from a JSON config file. Secrets (Slack tokens, Google API
credentials) come from the environment, loaded from a .env file when one is
present, and fill in anything the file leaves empty.
"""

import os
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_STATE_MAX_AGE = 3600.0
DEFAULT_SLACK_TIMEOUT = 30.0
DEFAULT_STORAGE_TIMEOUT = 60.0
DEFAULT_GIS_TIMEOUT = 30.0


class ConfigError(Exception):
    """Configuration is missing or invalid."""
    pass


@dataclass
class StorageConfig:
    path: str = "data/gorfbot.db"
    timeout: float = DEFAULT_STORAGE_TIMEOUT

    def check(self) -> list[str]:
        return [] if self.path else ["storage.path"]


@dataclass
class SlackConfig:
    bot_token: str = ""
    app_token: str = ""
    # Log Slack client debug output
    debug: bool = False
    # Seconds between refreshes of the cached channel and user lists
    state_max_age: float = DEFAULT_STATE_MAX_AGE
    # Seconds allowed for each Web API call
    timeout: float = DEFAULT_SLACK_TIMEOUT

    def check(self) -> list[str]:
        missing = []
        if not self.bot_token:
            missing.append("SLACK_BOT_TOKEN")
        if not self.app_token:
            missing.append("SLACK_APP_TOKEN")
        return missing


@dataclass
class ReactjiKeysConfig:
    """Keyword to reaction list mapping."""
    keywords: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class FrogtipConfig:
    user_agent: str = ""


@dataclass
class GISConfig:
    timeout: float = DEFAULT_GIS_TIMEOUT
    cse_id: str = ""
    api_key: str = ""
    random_seed: int = 0


@dataclass
class URLConfig:
    """
    A host (and optional path) pattern for URLs to track.

    Occurrences are counted in collection. first_msg is posted the first
    time a matching URL is seen and reactji are added every time.
    """
    host_pattern: str = ""
    path_pattern: str = ""
    collection: str = ""
    first_msg: str = ""
    reactji: list[str] = field(default_factory=list)


@dataclass
class MkthemeConfig:
    random_seed: int = 0


@dataclass
class Config:
    storage: StorageConfig = field(default_factory=StorageConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    reactji_keys: ReactjiKeysConfig = field(default_factory=ReactjiKeysConfig)
    frogtip: FrogtipConfig = field(default_factory=FrogtipConfig)
    gis: GISConfig = field(default_factory=GISConfig)
    urls: list[URLConfig] = field(default_factory=list)
    mktheme: MkthemeConfig = field(default_factory=MkthemeConfig)
    # Command modules to load, None for all of them
    commands: Optional[list[str]] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from parsed JSON. Unknown keys in a section are rejected."""
        if not isinstance(data, dict):
            raise ConfigError("config must be a JSON object")

        try:
            return cls(
                storage=StorageConfig(**data.get("storage", {})),
                slack=SlackConfig(**data.get("slack", {})),
                reactji_keys=ReactjiKeysConfig(**data.get("reactji_keys", {})),
                frogtip=FrogtipConfig(**data.get("frogtip", {})),
                gis=GISConfig(**data.get("gis", {})),
                urls=[URLConfig(**u) for u in data.get("urls", [])],
                mktheme=MkthemeConfig(**data.get("mktheme", {})),
                commands=data.get("commands"),
            )
        except TypeError as e:
            raise ConfigError(f"invalid config: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> "Config":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"JSON config parsing err: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_json_file(cls, path: Path) -> "Config":
        """Load a config file, then fill secrets from the environment."""
        path = Path(path)
        try:
            text = path.read_text()
        except OSError as e:
            raise ConfigError(f"JSON config file processing err: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"JSON config parsing err: {e}") from e
        config = cls.from_dict(data)

        # Relative database paths are relative to the config file
        if config.storage.path:
            config.storage.path = str(path.parent / config.storage.path)

        env_file = data.get("env_file")
        env_path = path.parent / env_file if env_file else path.parent / ".env"
        load_dotenv(env_path)
        config.apply_environment()

        logger.info(f"Loaded config from {path}")
        return config

    def apply_environment(self) -> None:
        """Fill empty secrets from environment variables."""
        self.slack.bot_token = self.slack.bot_token or os.getenv("SLACK_BOT_TOKEN", "")
        self.slack.app_token = self.slack.app_token or os.getenv("SLACK_APP_TOKEN", "")
        self.gis.api_key = self.gis.api_key or os.getenv("GIS_API_KEY", "")
        self.gis.cse_id = self.gis.cse_id or os.getenv("GIS_CSE_ID", "")

    def check(self) -> None:
        """Raise ConfigError listing every missing required setting."""
        missing = self.storage.check() + self.slack.check()
        if missing:
            raise ConfigError(f"Missing required config: {', '.join(missing)}")

        if not self.gis.api_key or not self.gis.cse_id:
            logger.warning("GIS_API_KEY or GIS_CSE_ID not set - image searches will fail")
