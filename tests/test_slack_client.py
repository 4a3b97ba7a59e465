"""
Tests for the Slack client, its state cache and timestamp parsing.
"""

import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from slack_sdk.errors import SlackApiError

from gorfbot.config import SlackConfig
from gorfbot.inbox import Inbox
from gorfbot.models import Message, Reaction
from gorfbot.slack_client import (
    ZERO_TIME,
    ReactionError,
    ReadWriteLock,
    SlackClient,
    SlackClientError,
    SlackState,
    TimestampError,
    parse_slack_timestamp,
)
from gorfbot.utils import format_time


def _api_error(msg="boom"):
    return SlackApiError(msg, {"ok": False, "error": msg})


class TestTimestamps:

    def test_parse(self):
        parsed = parse_slack_timestamp("1487690385.010607")
        assert parsed == datetime(2017, 2, 21, 15, 19, 45, tzinfo=timezone.utc)

    def test_format(self):
        parsed = parse_slack_timestamp("1487690385.010607")
        assert format_time(parsed) == "Tue Feb 21 2017 15:19:45 UTC"

    def test_no_fraction_still_parses(self):
        assert parse_slack_timestamp("1487690385").year == 2017

    @pytest.mark.parametrize("ts", ["", "abc.def", "nope"])
    def test_malformed(self, ts):
        with pytest.raises(TimestampError) as exc_info:
            parse_slack_timestamp(ts)
        assert exc_info.value.value == ZERO_TIME


def _api(channels_pages, users):
    api = MagicMock()
    api.conversations_list.side_effect = [
        {
            "channels": page,
            "response_metadata": {"next_cursor": "more" if i < len(channels_pages) - 1 else ""},
        }
        for i, page in enumerate(channels_pages)
    ]
    api.users_list.return_value = {"members": users, "response_metadata": {"next_cursor": ""}}
    return api


class TestSlackState:

    def test_refresh_pages_and_indexes(self):
        api = _api(
            [[{"id": "C1", "name": "general"}], [{"id": "C2", "name": "random"}]],
            [{"id": "U1", "name": "daniel"}],
        )
        state = SlackState()

        assert state.refresh(api) is True

        assert state.conversation("C2").name == "random"
        assert state.conversation_by_name("general").id == "C1"
        assert state.user("U1").name == "daniel"
        assert state.user_by_name("daniel").id == "U1"
        assert api.conversations_list.call_count == 2
        api.conversations_list.assert_any_call(cursor="more", exclude_archived=True)

    def test_fresh_state_skips_refresh(self):
        api = _api([[{"id": "C1", "name": "general"}]], [])
        state = SlackState(max_age=3600)
        state.refresh(api)

        assert state.stale() is False
        assert state.refresh(api) is False
        assert api.conversations_list.call_count == 1

    def test_force_refresh_replaces_everything(self):
        state = SlackState()
        state.refresh(_api([[{"id": "C1", "name": "general"}]], [{"id": "U1", "name": "old"}]))

        state.refresh(_api([[{"id": "C9", "name": "new"}]], [{"id": "U2", "name": "new"}]), force=True)

        assert state.conversation("C1") is None
        assert state.user("U1") is None
        assert state.conversation("C9").name == "new"

    def test_failed_refresh_keeps_cache(self):
        state = SlackState()
        state.refresh(_api([[{"id": "C1", "name": "general"}]], []))
        api = MagicMock()
        api.conversations_list.side_effect = _api_error()

        with pytest.raises(SlackClientError):
            state.refresh(api, force=True)

        assert state.conversation("C1").name == "general"

    def test_network_error_is_client_error(self):
        api = MagicMock()
        api.conversations_list.side_effect = TimeoutError("timed out")

        with pytest.raises(SlackClientError, match="timed out"):
            SlackState().refresh(api)

    def test_new_state_is_stale(self):
        assert SlackState().stale() is True


def test_rw_lock_writer_excludes_readers():
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader():
        with lock.read_locked():
            entered.set()

    with lock.write_locked():
        thread = threading.Thread(target=reader)
        thread.start()
        assert not entered.wait(0.1)

    thread.join(timeout=1)
    assert entered.is_set()


@pytest.fixture
def app():
    app = MagicMock()
    app.handlers = {}

    def event(name):
        def register(func):
            app.handlers[name] = func
            return func
        return register

    app.event.side_effect = event
    return app


@pytest.fixture
def socket_handler(monkeypatch):
    handler_class = MagicMock()
    monkeypatch.setattr("gorfbot.slack_client.SocketModeHandler", handler_class)
    return handler_class


@pytest.fixture
def client(app, socket_handler):
    return SlackClient(SlackConfig(bot_token="xoxb-test", app_token="xapp-test"), app=app)


class TestSlackClient:

    def test_connect(self, client, app, socket_handler):
        app.client.auth_test.return_value = {
            "user_id": "U000", "user": "gorfbot", "team_id": "T1", "team": "gorfteam"
        }

        client.connect()

        assert client.bot_id() == "U000"
        assert client.bot_name() == "gorfbot"
        assert client.team_id() == "T1"
        assert client.team_name() == "gorfteam"
        socket_handler.assert_called_once_with(app, "xapp-test")
        socket_handler.return_value.connect.assert_called_once_with()

    def test_connect_failure(self, client, app):
        app.client.auth_test.side_effect = _api_error("invalid_auth")

        with pytest.raises(SlackClientError):
            client.connect()

    @pytest.mark.parametrize("error", [_api_error("invalid_auth"), TimeoutError("timed out")])
    def test_socket_mode_failure(self, client, app, socket_handler, error):
        app.client.auth_test.return_value = {"user_id": "U000"}
        socket_handler.return_value.connect.side_effect = error

        with pytest.raises(SlackClientError, match="Socket Mode"):
            client.connect()

    def test_listen_before_connect(self, client):
        with pytest.raises(SlackClientError):
            client.listen(Inbox())

    def test_listen_blocks_until_close(self, client, app, socket_handler):
        app.client.auth_test.return_value = {"user_id": "U000"}
        app.client.conversations_list.return_value = {"channels": []}
        app.client.users_list.return_value = {"members": []}
        client.connect()

        listener = threading.Thread(target=client.listen, args=(Inbox(),), daemon=True)
        listener.start()
        listener.join(timeout=0.1)
        assert listener.is_alive()

        client.close()
        listener.join(timeout=1)

        assert not listener.is_alive()
        socket_handler.return_value.close.assert_called_once_with()
        assert "message" in app.handlers

    def test_state_refresh_survives_errors(self, client, monkeypatch):
        refresh = MagicMock(side_effect=[KeyError("channels"), True])
        monkeypatch.setattr(client.state, "refresh", refresh)
        waits = []

        def wait(interval):
            waits.append(interval)
            if len(waits) == 2:
                client._stop.set()
            return client._stop.is_set()

        monkeypatch.setattr(client._stop, "wait", wait)

        client._refresh_state_forever()

        assert refresh.call_count == 2

    def test_add_reaction(self, client, app):
        message = Message(channel_id="C1", user_id="U1", text="hi", timestamp="1.2")

        client.add_reaction("frog", message)

        app.client.reactions_add.assert_called_once_with(channel="C1", timestamp="1.2", name="frog")

    def test_add_reaction_errors(self, client, app):
        with pytest.raises(ReactionError):
            client.add_reaction("frog", None)

        app.client.reactions_add.side_effect = _api_error()
        with pytest.raises(ReactionError):
            client.add_reaction("frog", Message("C1", "U1", "hi", "1.2"))

    def test_send_message_error_is_logged(self, client, app):
        app.client.chat_postMessage.side_effect = _api_error()
        client.send_message("hello", "C1")
        app.client.chat_postMessage.assert_called_once_with(channel="C1", text="hello")

    def test_lookup_misses_are_empty(self, client):
        assert client.user_name("U404") == ""
        assert client.user_id("nobody") == ""
        assert client.conversation_name("C404") == ""
        assert client.conversation_id("nowhere") == ""
        assert client.bot_id() == ""

    def test_events_reach_inbox(self, client, app):
        inbox = Inbox()
        client._register_listeners(inbox)

        app.handlers["message"]({"channel": "C1", "user": "U1", "text": "hi", "ts": "1.2"})
        app.handlers["message"]({"channel": "C1", "bot_id": "B1", "text": "ignored", "ts": "1.3"})
        app.handlers["reaction_removed"]({"user": "U1", "reaction": "frog", "event_ts": "1.4"})

        assert inbox.get(timeout=0.1) == Message("C1", "U1", "hi", "1.2")
        assert inbox.get(timeout=0.1) == Reaction("U1", "frog", "1.4", removed=True)
        assert inbox.get(timeout=0.01) is None
