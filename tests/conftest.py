"""
Shared fixtures for Gorfbot tests.
"""

import threading
from typing import Optional

import pytest

from gorfbot.models import Message
from gorfbot.registry import CommandRegistry
from gorfbot.slack_client import ChatClient, ReactionError, parse_slack_timestamp
from gorfbot.storage import SQLiteStorage


class FakeChatClient(ChatClient):
    """ChatClient that records replies and reactions instead of calling Slack."""

    def __init__(self, bot_id="U000", users=None, conversations=None):
        self._bot_id = bot_id
        # id -> name
        self.users = users if users is not None else {}
        self.conversations = conversations if conversations is not None else {}
        self.sent: list[tuple[str, str]] = []
        self.reactions: list[tuple[str, Message]] = []
        self.fail_reactions: set[str] = set()
        self.listen_error: Optional[Exception] = None
        self.closed = threading.Event()

    def listen(self, inbox):
        if self.listen_error is not None:
            raise self.listen_error
        self.closed.wait()

    def close(self):
        self.closed.set()

    def send_message(self, text, channel_id):
        self.sent.append((text, channel_id))

    def add_reaction(self, reaction, message):
        if message is None:
            raise ReactionError("add reaction failed: message is None")
        if reaction in self.fail_reactions:
            raise ReactionError(f"add reaction {reaction!r} failed")
        self.reactions.append((reaction, message))

    def parse_timestamp(self, timestamp):
        return parse_slack_timestamp(timestamp)

    def bot_name(self):
        return "gorfbot"

    def bot_id(self):
        return self._bot_id

    def team_name(self):
        return "gorfteam"

    def team_id(self):
        return "T000"

    def conversation_name(self, conversation_id):
        return self.conversations.get(conversation_id, "")

    def conversation_id(self, name):
        for cid, cname in self.conversations.items():
            if cname == name:
                return cid
        return ""

    def user_name(self, user_id):
        return self.users.get(user_id, "")

    def user_id(self, name):
        for uid, uname in self.users.items():
            if uname == name:
                return uid
        return ""

    @property
    def reaction_names(self) -> list[str]:
        return [name for name, _ in self.reactions]


@pytest.fixture
def registry():
    return CommandRegistry()


@pytest.fixture
def slack():
    client = FakeChatClient(
        users={"U123": "daniel", "U456": "gorf"},
        conversations={"C001": "general", "C002": "random"},
    )
    yield client
    client.close()


@pytest.fixture
def storage(tmp_path):
    return SQLiteStorage(tmp_path / "gorfbot.db")


@pytest.fixture
def make_message():
    def _make(text, channel_id="C001", user_id="U123", timestamp="1487690385.010607"):
        return Message(channel_id=channel_id, user_id=user_id, text=text, timestamp=timestamp)
    return _make
