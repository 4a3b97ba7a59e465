"""
Central message dispatcher for Gorfbot.

Handles:
- Running pattern handlers for every message that matches their regex
- Running "!cmd" and "@gorfbot cmd" commands
- Running reaction handlers for every reaction added or removed
- Turning handler results and errors into replies and reactions
"""

import logging
import threading
from typing import Optional

from .inbox import Inbox
from .models import Message, Reaction, RunContext, RunResult
from .registry import CommandRegistry

logger = logging.getLogger(__name__)

CMD_PREFIX = "!"
MENTION_PREFIX = "<@"
HELP_COMMANDS = ("help", "-h", "--help")

# Reaction for commands that aren't registered
UNKNOWN_REACTION = "interrobang"
# Reaction for commands that raised an error
ERROR_REACTION = "negative_squared_cross_mark"


class ListenerError(Exception):
    """The Slack listener stopped while the dispatcher was still running."""
    pass


def help_text(registry: CommandRegistry, user_name: str, bot_title: str = "Gorfbot") -> str:
    """Describe every registered command, pattern and reaction handler."""
    lines = [
        f":wave: Hello {user_name}",
        f":speech_balloon: I'm *{bot_title}* - Here are the commands I know:",
    ]

    for cmd in registry.get_commands():
        lines.append(
            f"\t\t :three_button_mouse: {cmd.icon} `{CMD_PREFIX}{cmd.name}` - {cmd.description}"
        )

    lines.append(":speech_balloon: I'm also keeping track of")

    for pattern in registry.get_patterns():
        lines.append(f"\t\t :eyes: _{pattern.name}_")

    for handler in registry.get_reaction_handlers():
        lines.append(f"\t\t :eyes: _{handler.name}_")

    lines.extend([
        ":speech_balloon: - To run a command say `!<command> [arguments]` "
        "in a channel/conversation that we're both in.",
        ":speech_balloon: - Most commands offer help, try `!<command> -h`, like `!emoji -h`",
        ":nose: :kissing_cat: Smell ya later!",
    ])

    return "\n".join(lines)


class Dispatcher:
    """Routes Slack messages and reactions to registered handlers."""

    def __init__(self, registry: CommandRegistry, slack, storage, bot_title: str = "Gorfbot"):
        self.registry = registry
        self.slack = slack
        self.storage = storage
        self.bot_title = bot_title
        self.inbox = Inbox()
        self._stop = threading.Event()
        self._listener_error: Optional[Exception] = None

    def run_context(self, message: Optional[Message]) -> RunContext:
        return RunContext(message=message, storage=self.storage, slack=self.slack)

    def configure(self, config) -> None:
        """
        Configure every registered handler. Call once, before run().

        Errors from a handler's configure() propagate.
        """
        for handler in self.registry.get_configurables():
            handler.configure(config)
        logger.info(f"Configured {len(self.registry)} handlers")

    # ========================================================================
    # RUN LOOP
    # ========================================================================

    def run(self, poll_interval: float = 1.0) -> None:
        """
        Start the Slack listener and process events until stop() is called.

        Events are processed one at a time, each to completion, in the
        order they are taken from the inbox.

        Raises:
            ListenerError: If the Slack listener stops before stop() is called
        """
        self._listener_error = None
        listener = threading.Thread(
            target=self._listen,
            name="slack-listener",
            daemon=True
        )
        listener.start()

        logger.info("Dispatcher running")
        while not self._stop.is_set():
            if not listener.is_alive():
                error = self._listener_error
                reason = f": {error}" if error else ""
                raise ListenerError(f"Slack listener stopped{reason}") from error
            self.process_next(timeout=poll_interval)
        logger.info("Dispatcher stopped")

    def _listen(self) -> None:
        try:
            self.slack.listen(self.inbox)
        except Exception as e:
            logger.exception("Slack listener failed")
            self._listener_error = e

    def stop(self) -> None:
        """Finish the current event, then return from run()."""
        self._stop.set()

    def process_next(self, timeout: Optional[float] = None) -> bool:
        """
        Process the next inbox event, waiting up to timeout for one.

        Returns:
            True if an event was processed
        """
        event = self.inbox.get(timeout=timeout)
        if event is None:
            return False

        if isinstance(event, Reaction):
            self.handle_reaction(event)
        else:
            self.handle_message(event)
        return True

    def handle_message(self, message: Message) -> None:
        """Try a message against every pattern, then as a command."""
        logger.debug(f"msg: {message.text!r}")
        self.try_message_as_pattern(message)
        self.try_message_as_command(message)

    def handle_reaction(self, reaction: Reaction) -> None:
        """Run every reaction handler. Errors are logged, never raised."""
        for handler in self.registry.get_reaction_handlers():
            try:
                handler.handler.run(reaction, self.run_context(None))
            except Exception as e:
                logger.exception(f"Reaction handler {handler.name!r} returned an error: {e}")

    # ========================================================================
    # RESULTS
    # ========================================================================

    def handle_run_result(self, message: Message, result: RunResult) -> None:
        """Post the result's reply (if any) and add its reactions."""
        if result.message:
            logger.debug(f"Posting returned msg {result.message!r}")
            self.slack.send_message(result.message, message.channel_id)

        self.add_reactions(result.reactji, message)

    def add_reactions(self, reactions: list[str], message: Message) -> None:
        """Add each reaction to the message. Failures are logged one by one."""
        if reactions:
            logger.info(f"Adding reactions: {reactions}")

        for reaction in reactions:
            try:
                self.slack.add_reaction(reaction, message)
            except Exception as e:
                logger.error(f"Failed to add reaction {reaction!r}: {e}")

    # ========================================================================
    # PATTERNS
    # ========================================================================

    def try_message_as_pattern(self, message: Message) -> None:
        """Run every pattern handler whose regex matches the message."""
        for pattern in self.registry.get_patterns():
            matches = [
                [m.group(0), *m.groups(default="")]
                for m in pattern.pattern.finditer(message.text)
            ]
            if not matches:
                continue

            logger.info(f"pattern {pattern.name!r} matched with {pattern.pattern.pattern!r}")

            try:
                result = pattern.handler.run(matches, self.run_context(message))
            except Exception as e:
                logger.exception(f"Pattern {pattern.name!r} returned an error: {e}")
                continue

            self.handle_run_result(message, result)

    # ========================================================================
    # COMMANDS
    # ========================================================================

    def try_message_as_command(self, message: Message) -> None:
        """
        Treat a message as a command if it starts with "!" or mentions the bot.

        "!cmd rest" and "<@BOTID> [!]cmd rest" both run cmd with "rest".
        Anything else is ordinary conversation and is ignored.
        """
        words = message.text.split(" ")
        first_word = words[0]

        has_cmd_prefix = first_word.startswith(CMD_PREFIX)
        has_mention_prefix = first_word.startswith(MENTION_PREFIX)

        if not has_cmd_prefix and not has_mention_prefix:
            logger.debug("Received message didn't have cmd prefix or start with a mention")
            return

        logger.info(
            f"Processing potential command message, first word: {first_word!r} "
            f"has_cmd_prefix: {has_cmd_prefix} has_mention_prefix: {has_mention_prefix}"
        )

        if has_cmd_prefix:
            cmd_name = first_word[len(CMD_PREFIX):]
            rest = " ".join(words[1:])
            logger.info(f"Processing heard cmd: {cmd_name!r} with rest {rest!r}")
            self.handle_command_message(cmd_name, rest, message)
            return

        expected = f"{MENTION_PREFIX}{self.slack.bot_id()}>"
        if first_word != expected:
            logger.info(f"Message mention wasn't to bot: Got {first_word!r} expected {expected!r}")
            return

        # There must be a command word after the mention
        if len(words) < 2:
            logger.info("Message mention too short to be a command message")
            return

        cmd_name = words[1].removeprefix(CMD_PREFIX)
        rest = " ".join(words[2:])
        logger.info(f"Processing mentioned cmd: {cmd_name!r} with rest {rest!r}")
        self.handle_command_message(cmd_name, rest, message)

    def handle_command_message(self, cmd_name: str, rest: str, message: Message) -> None:
        """Run the named command with rest, or react if it is unknown or fails."""
        if not cmd_name:
            logger.warning("Got empty command name in handle_command_message")
            return

        if cmd_name in HELP_COMMANDS:
            self.bot_help(message)
            return

        cmd = self.registry.get_command(cmd_name)
        if cmd is None:
            logger.warning(f"Command {cmd_name!r} not registered with bot")
            self.add_reactions([UNKNOWN_REACTION], message)
            return

        try:
            result = cmd.handler.run(rest, self.run_context(message))
        except Exception as e:
            logger.exception(f"Command {cmd_name!r} returned an error: {e}")
            self.add_reactions([ERROR_REACTION], message)
            return

        self.handle_run_result(message, result)

    def bot_help(self, message: Message) -> None:
        """Reply to message with the help listing."""
        user_name = self.slack.user_name(message.user_id)
        text = help_text(self.registry, user_name, self.bot_title)
        self.handle_run_result(message, RunResult(message=text))
