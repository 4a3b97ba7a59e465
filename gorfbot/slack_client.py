"""
Slack chat client for Gorfbot.

Wraps slack_bolt (Socket Mode) for inbound events and slack_sdk's
WebClient for replies, reactions and directory lookups. Channel and user
lists are cached in a SlackState that a background thread refreshes.
"""

import time
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from .config import SlackConfig
from .inbox import Inbox
from .models import Message, Reaction

logger = logging.getLogger(__name__)

# Best effort value for timestamps that can't be parsed
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


class SlackClientError(Exception):
    """A Slack Web API call failed."""
    pass


class ReactionError(SlackClientError):
    """A reaction couldn't be added to a message."""
    pass


class TimestampError(ValueError):
    """
    A Slack timestamp couldn't be parsed.

    The value attribute holds ZERO_TIME for callers that want to carry on.
    """

    def __init__(self, timestamp: str):
        self.timestamp = timestamp
        self.value = ZERO_TIME
        super().__init__(f"unable to convert Slack timestamp {timestamp!r} to a datetime")


def parse_slack_timestamp(timestamp: str) -> datetime:
    """
    Parse a Slack "seconds.uuid" timestamp into a UTC datetime.

    Raises:
        TimestampError: If the seconds component isn't an integer
    """
    components = timestamp.split(".")
    if len(components) != 2:
        logger.warning(f"Found weird timestamp {timestamp!r}, components {components}")

    try:
        return datetime.fromtimestamp(int(components[0]), tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise TimestampError(timestamp) from e


@dataclass(frozen=True)
class Conversation:
    """A channel or DM. Channel names have no "#" prefix."""
    id: str
    name: str


@dataclass(frozen=True)
class User:
    """A Slack user. Names have no "@" prefix."""
    id: str
    name: str


@dataclass(frozen=True)
class Team:
    """The workspace the bot is connected to."""
    id: str
    name: str


class ChatClient(ABC):
    """Everything the bot needs to be able to do with Slack."""

    @abstractmethod
    def listen(self, inbox: Inbox) -> None:
        """
        Deliver messages and reactions to the inbox forever.
        Blocks; call it from a dedicated thread.
        """
        pass

    @abstractmethod
    def send_message(self, text: str, channel_id: str) -> None:
        pass

    @abstractmethod
    def add_reaction(self, reaction: str, message: Optional[Message]) -> None:
        """
        Add a reaction (no ":" delimiters) to a message.

        Raises:
            ReactionError: If message is None or the API call fails
        """
        pass

    def parse_timestamp(self, timestamp: str) -> datetime:
        return parse_slack_timestamp(timestamp)

    @abstractmethod
    def bot_name(self) -> str:
        pass

    @abstractmethod
    def bot_id(self) -> str:
        pass

    @abstractmethod
    def team_name(self) -> str:
        pass

    @abstractmethod
    def team_id(self) -> str:
        pass

    @abstractmethod
    def conversation_name(self, conversation_id: str) -> str:
        """Friendly name for a channel ID, or "" if unknown."""
        pass

    @abstractmethod
    def conversation_id(self, name: str) -> str:
        """Channel ID for a friendly name, or "" if unknown."""
        pass

    @abstractmethod
    def user_name(self, user_id: str) -> str:
        """Friendly name for a user ID, or "" if unknown."""
        pass

    @abstractmethod
    def user_id(self, name: str) -> str:
        """User ID for a friendly name, or "" if unknown."""
        pass


class ReadWriteLock:
    """Many concurrent readers or one writer. Waiting writers go first."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writers_waiting = 0
        self._writing = False

    @contextmanager
    def read_locked(self):
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self):
        with self._cond:
            self._writers_waiting += 1
            while self._writing or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class SlackState:
    """
    Cache of the team's conversations and users, by ID and by name.

    A refresh fetches the complete lists and swaps every map at once, so
    readers see either the old cache or the new one.
    """

    def __init__(self, max_age: float = 3600.0):
        self._lock = ReadWriteLock()
        self.max_age = max_age
        self.last_updated: Optional[float] = None
        self._conversations_by_id: dict[str, Conversation] = {}
        self._conversations_by_name: dict[str, Conversation] = {}
        self._users_by_id: dict[str, User] = {}
        self._users_by_name: dict[str, User] = {}

    def stale(self) -> bool:
        with self._lock.read_locked():
            last_updated = self.last_updated
        stale = last_updated is None or last_updated + self.max_age < time.time()
        logger.debug(f"Slack state stale? {stale} Last updated {last_updated}")
        return stale

    def conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock.read_locked():
            return self._conversations_by_id.get(conversation_id)

    def conversation_by_name(self, name: str) -> Optional[Conversation]:
        with self._lock.read_locked():
            return self._conversations_by_name.get(name)

    def user(self, user_id: str) -> Optional[User]:
        with self._lock.read_locked():
            return self._users_by_id.get(user_id)

    def user_by_name(self, name: str) -> Optional[User]:
        with self._lock.read_locked():
            return self._users_by_name.get(name)

    def refresh(self, api: WebClient, force: bool = False) -> bool:
        """
        Fetch all conversations and users if the cache is stale (or forced).

        Returns:
            True if the cache was replaced

        Raises:
            SlackClientError: If any API call fails. The cache is unchanged.
        """
        if not force and not self.stale():
            return False

        conversations = self._fetch_conversations(api)
        users = self._fetch_users(api)

        conversations_by_id = {c.id: c for c in conversations}
        conversations_by_name = {c.name: c for c in conversations}
        users_by_id = {u.id: u for u in users}
        users_by_name = {u.name: u for u in users}

        with self._lock.write_locked():
            self._conversations_by_id = conversations_by_id
            self._conversations_by_name = conversations_by_name
            self._users_by_id = users_by_id
            self._users_by_name = users_by_name
            self.last_updated = time.time()

        return True

    @staticmethod
    def _paginate(call: Callable, key: str, what: str, **kwargs) -> list[dict]:
        """Collect key from every page of a cursor paginated API method."""
        results = []
        cursor = ""
        batch = 1

        while True:
            logger.info(f"Fetching {what} batch {batch}")
            try:
                resp = call(cursor=cursor, **kwargs) if cursor else call(**kwargs)
            except (SlackApiError, OSError) as e:
                raise SlackClientError(
                    f"slack client failed to get {what} batch {batch}: {e}"
                ) from e

            results.extend(resp.get(key) or [])
            cursor = (resp.get("response_metadata") or {}).get("next_cursor", "")
            logger.info(f"Found {len(results)} {what} so far. Next cursor: {cursor!r}")

            if not cursor:
                return results
            batch += 1

    def _fetch_conversations(self, api: WebClient) -> list[Conversation]:
        channels = self._paginate(
            api.conversations_list, "channels", "conversations",
            exclude_archived=True
        )
        return [Conversation(id=c["id"], name=c.get("name", "")) for c in channels]

    def _fetch_users(self, api: WebClient) -> list[User]:
        members = self._paginate(api.users_list, "members", "users")
        return [User(id=u["id"], name=u.get("name", "")) for u in members]


class SlackClient(ChatClient):
    """
    ChatClient backed by a slack_bolt App in Socket Mode.

    Call connect() before use to resolve the bot's identity.
    """

    def __init__(self, config: SlackConfig, app: Optional[App] = None):
        self.config = config

        if config.debug:
            logging.getLogger("slack_sdk").setLevel(logging.DEBUG)
            logging.getLogger("slack_bolt").setLevel(logging.DEBUG)

        if app is None:
            app = App(client=WebClient(token=config.bot_token, timeout=int(config.timeout)))
        self.app = app
        self.web: WebClient = app.client

        self.state = SlackState(max_age=config.state_max_age)
        self._stop = threading.Event()
        self._bot: Optional[User] = None
        self._team: Optional[Team] = None
        self._socket: Optional[SocketModeHandler] = None

    def __str__(self) -> str:
        if self._bot is None or self._team is None:
            return "Client waiting for connect()"
        return (
            f"Client connected as {self.bot_name()!r} ({self.bot_id()}) "
            f"to team {self.team_name()!r} ({self.team_id()})"
        )

    def connect(self) -> None:
        """
        Resolve the bot and team identity with auth.test, then open the
        Socket Mode connection.

        Raises:
            SlackClientError: If authentication or the connection fails
        """
        try:
            resp = self.web.auth_test()
        except (SlackApiError, OSError) as e:
            raise SlackClientError(f"Slack authentication failed: {e}") from e

        self._bot = User(id=resp.get("user_id", ""), name=resp.get("user", ""))
        self._team = Team(id=resp.get("team_id", ""), name=resp.get("team", ""))
        logger.info(str(self))

        socket = SocketModeHandler(self.app, self.config.app_token)
        try:
            socket.connect()
        except (SlackApiError, OSError) as e:
            raise SlackClientError(f"Slack Socket Mode connection failed: {e}") from e
        self._socket = socket

    def listen(self, inbox: Inbox) -> None:
        """
        Register event listeners, start state refreshes and block until close().

        Raises:
            SlackClientError: If connect() hasn't succeeded
        """
        if self._socket is None:
            raise SlackClientError("listen called before connect")

        self._register_listeners(inbox)
        self.start_state_refresh()

        logger.info("Listening for Slack events")
        self._stop.wait()

    def _register_listeners(self, inbox: Inbox) -> None:
        """Route message and reaction events onto the inbox."""

        @self.app.event("message")
        def handle_message(event):
            # Ignore bot messages (including ours)
            if event.get("bot_id"):
                return

            text = event.get("text", "")
            if not text:
                return

            inbox.put_message(Message(
                channel_id=event.get("channel", ""),
                user_id=event.get("user", ""),
                text=text,
                timestamp=event.get("ts", ""),
            ))

        def reaction_handler(removed: bool):
            def handler(event):
                inbox.put_reaction(Reaction(
                    user=event.get("user", ""),
                    reaction=event.get("reaction", ""),
                    timestamp=event.get("event_ts", ""),
                    removed=removed,
                ))
            return handler

        self.app.event("reaction_added")(reaction_handler(removed=False))
        self.app.event("reaction_removed")(reaction_handler(removed=True))

    def start_state_refresh(self) -> threading.Thread:
        """Refresh the state cache now and every max_age - 1s on a daemon thread."""
        thread = threading.Thread(
            target=self._refresh_state_forever,
            name="slack-state-refresh",
            daemon=True
        )
        thread.start()
        return thread

    def _refresh_state_forever(self) -> None:
        interval = max(self.state.max_age - 1, 1)
        while not self._stop.is_set():
            logger.info("State refresh waking up to try state refresh")
            try:
                self.state.refresh(self.web, force=True)
            except SlackClientError as e:
                logger.error(f"Error updating slack client state: {e}")
            except Exception:
                logger.exception("Unexpected error updating slack client state")

            logger.info(f"State refresh sleeping for {interval}s")
            self._stop.wait(interval)

    def close(self) -> None:
        """Stop listening, close the Socket Mode connection and stop state refreshes."""
        self._stop.set()
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def send_message(self, text: str, channel_id: str) -> None:
        try:
            self.web.chat_postMessage(channel=channel_id, text=text)
        except SlackApiError as e:
            logger.error(f"Failed to send message to {channel_id}: {e}")

    def add_reaction(self, reaction: str, message: Optional[Message]) -> None:
        if message is None:
            raise ReactionError("add reaction failed: message is None")

        try:
            self.web.reactions_add(
                channel=message.channel_id,
                timestamp=message.timestamp,
                name=reaction
            )
        except SlackApiError as e:
            raise ReactionError(f"add reaction {reaction!r} failed: {e}") from e

    def bot_name(self) -> str:
        return self._bot.name if self._bot else ""

    def bot_id(self) -> str:
        return self._bot.id if self._bot else ""

    def team_name(self) -> str:
        return self._team.name if self._team else ""

    def team_id(self) -> str:
        return self._team.id if self._team else ""

    def conversation_name(self, conversation_id: str) -> str:
        conversation = self.state.conversation(conversation_id)
        return conversation.name if conversation else ""

    def conversation_id(self, name: str) -> str:
        conversation = self.state.conversation_by_name(name)
        return conversation.id if conversation else ""

    def user_name(self, user_id: str) -> str:
        user = self.state.user(user_id)
        return user.name if user else ""

    def user_id(self, name: str) -> str:
        user = self.state.user_by_name(name)
        return user.id if user else ""
