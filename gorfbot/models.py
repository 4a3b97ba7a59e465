"""
Data models and abstract base classes for Gorfbot handlers.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


class MissingMessageError(Exception):
    """A handler that needs the triggering message was run without one."""
    pass


class SubmatchError(Exception):
    """A pattern handler got submatches of an unexpected shape."""
    pass


@dataclass(frozen=True)
class Message:
    """A message seen by the bot in a channel or conversation."""
    channel_id: str
    user_id: str
    text: str
    timestamp: str

    def __str__(self) -> str:
        return (
            f"{self.timestamp} - channel {self.channel_id} "
            f"user {self.user_id} said {self.text!r}"
        )


@dataclass(frozen=True)
class Reaction:
    """A reaction added to (or removed from) a message."""
    user: str
    reaction: str  # no ":" delimiters
    timestamp: str
    removed: bool = False


@dataclass(frozen=True)
class RunContext:
    """
    Everything a handler's run() might need for one invocation.

    The message is None for reaction handlers.
    """
    message: Optional[Message]
    storage: Any
    slack: Any

    def require_message(self, name: str) -> Message:
        """Return the bound message or raise MissingMessageError."""
        if self.message is None:
            raise MissingMessageError(f"{name}: message was None")
        return self.message


@dataclass
class RunResult:
    """Reply text (empty for no reply) and reactions to add to the message."""
    message: str = ""
    reactji: list[str] = field(default_factory=list)


class Configurable(ABC):
    """Anything that gets configured once before the first run() call."""

    def configure(self, config) -> None:
        """
        Called with the loaded Config before any run() calls are made.
        Override to read handler specific settings.
        """
        pass


class CommandHandler(Configurable):
    """Handler for a basic "!name" command."""

    @abstractmethod
    def run(self, text: str, ctx: RunContext) -> RunResult:
        """
        Run the command.

        Args:
            text: Message text after the command name
            ctx: Run context bound to the triggering message

        Returns:
            RunResult with an optional reply and reactions
        """
        pass


class PatternHandler(Configurable):
    """Handler run with every match of a regex pattern in a message."""

    @abstractmethod
    def run(self, all_submatches: list[list[str]], ctx: RunContext) -> RunResult:
        """
        Run the pattern handler.

        Args:
            all_submatches: One [full match, group 1, ...] list per occurrence
            ctx: Run context bound to the triggering message
        """
        pass


class ReactionHandler(Configurable):
    """Handler run for every reaction added or removed."""

    @abstractmethod
    def run(self, reaction: Reaction, ctx: RunContext) -> None:
        pass


@dataclass
class BasicCommand:
    """A command invoked on demand with "!<name>"."""
    name: str
    handler: Optional[CommandHandler]
    description: str = ""
    icon: str = ""  # emoji for help output


@dataclass
class PatternCommand:
    """A handler invoked for messages matching pattern. Name is shown in help."""
    name: str
    handler: Optional[PatternHandler]
    pattern: Optional[re.Pattern]


@dataclass
class ReactionCommand:
    """A named reaction handler. Name should describe its purpose."""
    name: str
    handler: Optional[ReactionHandler]
