"""
Gorfbot - Main Entry Point

Loads the config, connects to Slack and storage, registers every command
module and runs the dispatcher until interrupted.
"""

import sys
import argparse
import logging
from pathlib import Path

from slack_bolt.error import BoltError

from .config import Config, ConfigError
from .dispatcher import Dispatcher, ListenerError
from .plugin_loader import PluginLoader
from .registry import DEFAULT_REGISTRY, RegistrationError
from .slack_client import SlackClient, SlackClientError
from .storage import SQLiteStorage, StorageError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}
DEFAULT_LOG_LEVEL = "warn"


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Gorfbot Slack bot")
    parser.add_argument(
        "--config",
        type=str,
        default="config.json",
        help="Path to bot config JSON file"
    )
    parser.add_argument(
        "--loglevel",
        type=str,
        default=DEFAULT_LOG_LEVEL,
        help="Log level [error, warn, info, debug, trace]"
    )
    return parser.parse_args(argv)


def configure_logging(level_name: str) -> None:
    """Configure the root logger. Unknown levels fall back to warn."""
    level = LOG_LEVELS.get(level_name.lower())
    logging.basicConfig(
        level=level if level is not None else LOG_LEVELS[DEFAULT_LOG_LEVEL],
        format=LOG_FORMAT
    )
    if level is None:
        logger.warning(f"Unknown log level {level_name!r}, using {DEFAULT_LOG_LEVEL!r}")


def build_dispatcher(config: Config) -> Dispatcher:
    """
    Connect storage and Slack, register commands and configure them.

    Raises:
        StorageError, SlackClientError, BoltError, RegistrationError,
        ConfigError: If any part of startup fails
    """
    storage = SQLiteStorage(Path(config.storage.path), timeout=config.storage.timeout)

    slack = SlackClient(config.slack)
    slack.connect()

    loader = PluginLoader(allowed_commands=config.commands)
    loaded = loader.load_all(DEFAULT_REGISTRY)
    logger.info(f"Loaded {len(loaded)} command modules")

    dispatcher = Dispatcher(DEFAULT_REGISTRY, slack, storage)
    dispatcher.configure(config)
    return dispatcher


def main(argv=None):
    """Start the bot."""
    args = parse_args(argv)
    configure_logging(args.loglevel)

    logger.info("Starting Gorfbot...")

    try:
        config = Config.from_json_file(Path(args.config))
        config.check()
        dispatcher = build_dispatcher(config)
    except (ConfigError, StorageError, SlackClientError, BoltError, RegistrationError) as e:
        logger.error(f"Startup failed: {e}")
        sys.exit(1)

    logger.info("Bot is running! Press Ctrl+C to stop.")
    try:
        dispatcher.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        dispatcher.stop()
    except ListenerError as e:
        logger.error(f"Shutting down: {e}")
        sys.exit(1)
    finally:
        dispatcher.slack.close()


if __name__ == "__main__":
    main()
