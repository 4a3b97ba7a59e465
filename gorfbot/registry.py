"""
Command registry for basic commands, pattern commands and reaction handlers.

The registry is not thread safe. Register everything before the
dispatcher's run loop starts; after that it is only read.
"""

from typing import Optional

from .models import (
    BasicCommand,
    Configurable,
    PatternCommand,
    ReactionCommand,
)


class RegistrationError(Exception):
    """A command could not be registered (invalid entry or duplicate name)."""
    pass


class CommandRegistry:
    """Name indexed, insertion ordered store of the three handler kinds."""

    def __init__(self):
        self._commands: dict[str, BasicCommand] = {}
        self._patterns: dict[str, PatternCommand] = {}
        self._reaction_handlers: dict[str, ReactionCommand] = {}

    @staticmethod
    def _valid(entry, entries: dict) -> bool:
        if entry is None:
            return False
        if not entry.name:
            return False
        if entry.name in entries:
            return False
        return entry.handler is not None

    def add_command(self, cmd: Optional[BasicCommand]) -> bool:
        """
        Add a basic command.

        Returns:
            False if the command is invalid or the name is already registered
        """
        if not self._valid(cmd, self._commands):
            return False
        self._commands[cmd.name] = cmd
        return True

    def add_pattern(self, cmd: Optional[PatternCommand]) -> bool:
        """Add a pattern command. Returns False if invalid or a duplicate."""
        if not self._valid(cmd, self._patterns):
            return False
        if cmd.pattern is None:
            return False
        self._patterns[cmd.name] = cmd
        return True

    def add_reaction_handler(self, cmd: Optional[ReactionCommand]) -> bool:
        """Add a reaction handler. Returns False if invalid or a duplicate."""
        if not self._valid(cmd, self._reaction_handlers):
            return False
        self._reaction_handlers[cmd.name] = cmd
        return True

    def must_add_command(self, cmd: BasicCommand) -> None:
        if not self.add_command(cmd):
            raise RegistrationError(f"failed to add command: {cmd}")

    def must_add_pattern(self, cmd: PatternCommand) -> None:
        if not self.add_pattern(cmd):
            raise RegistrationError(f"failed to add pattern: {cmd}")

    def must_add_reaction_handler(self, cmd: ReactionCommand) -> None:
        if not self.add_reaction_handler(cmd):
            raise RegistrationError(f"failed to add reaction handler: {cmd}")

    def get_command(self, name: str) -> Optional[BasicCommand]:
        return self._commands.get(name)

    def get_pattern(self, name: str) -> Optional[PatternCommand]:
        return self._patterns.get(name)

    def get_reaction_handler(self, name: str) -> Optional[ReactionCommand]:
        return self._reaction_handlers.get(name)

    def get_commands(self) -> list[BasicCommand]:
        """Registered basic commands, in registration order."""
        return list(self._commands.values())

    def get_patterns(self) -> list[PatternCommand]:
        return list(self._patterns.values())

    def get_reaction_handlers(self) -> list[ReactionCommand]:
        return list(self._reaction_handlers.values())

    def get_configurables(self) -> list[Configurable]:
        """All handlers: commands, then patterns, then reaction handlers."""
        return (
            [cmd.handler for cmd in self.get_commands()] +
            [p.handler for p in self.get_patterns()] +
            [h.handler for h in self.get_reaction_handlers()]
        )

    def __len__(self) -> int:
        return (
            len(self._commands) +
            len(self._patterns) +
            len(self._reaction_handlers)
        )


# Process-wide registry used by the bot entry point.
DEFAULT_REGISTRY = CommandRegistry()
