"""
Tests for the command line entry point.
"""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from gorfbot import main as gorfbot_main
from gorfbot.dispatcher import ListenerError


class TestParseArgs:

    def test_defaults(self):
        args = gorfbot_main.parse_args([])
        assert args.config == "config.json"
        assert args.loglevel == "warn"

    def test_values(self):
        args = gorfbot_main.parse_args(["--config", "bot.json", "--loglevel", "trace"])
        assert args.config == "bot.json"
        assert args.loglevel == "trace"


@pytest.mark.parametrize("name, level", [
    ("error", logging.ERROR),
    ("warn", logging.WARNING),
    ("info", logging.INFO),
    ("debug", logging.DEBUG),
    ("trace", logging.DEBUG),
    ("TRACE", logging.DEBUG),
    ("chatty", logging.WARNING),
])
def test_log_levels(name, level):
    with patch.object(gorfbot_main.logging, "basicConfig") as basic_config:
        gorfbot_main.configure_logging(name)

    assert basic_config.call_args.kwargs["level"] == level
    assert basic_config.call_args.kwargs["format"] == gorfbot_main.LOG_FORMAT


def test_missing_config_exits(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        gorfbot_main.main(["--config", str(tmp_path / "nope.json")])
    assert exc_info.value.code == 1


def test_missing_tokens_exit(tmp_path, monkeypatch):
    for name in ("SLACK_BOT_TOKEN", "SLACK_APP_TOKEN"):
        monkeypatch.setenv(name, "")
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"storage": {"path": "bot.db"}}))

    with patch.object(gorfbot_main, "build_dispatcher") as build:
        with pytest.raises(SystemExit) as exc_info:
            gorfbot_main.main(["--config", str(path)])

    assert exc_info.value.code == 1
    build.assert_not_called()


def test_listener_failure_exits():
    dispatcher = MagicMock()
    dispatcher.run.side_effect = ListenerError("Slack listener stopped: invalid_auth")

    with patch.object(gorfbot_main.Config, "from_json_file"), \
            patch.object(gorfbot_main, "build_dispatcher", return_value=dispatcher):
        with pytest.raises(SystemExit) as exc_info:
            gorfbot_main.main([])

    assert exc_info.value.code == 1
    dispatcher.slack.close.assert_called_once_with()
