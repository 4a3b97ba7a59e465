"""
!emoji - show someone's most (or least) used emoji and reactji.
"""

import logging

from ..flags import FlagSet, parse_flags
from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry
from ..storage import GetEmojiOptions, StorageError

logger = logging.getLogger(__name__)

CMD_NAME = "emoji"


def _flag_set() -> FlagSet:
    flags = FlagSet(CMD_NAME)
    flags.add_int("limit", 5, "limit for number of emoji to display")
    flags.add_bool("asc", False, "list emoji in order of ascending usage count")
    flags.add_str("emoji", "", "display count only for matching emoji")
    flags.add_str("user", "", "display emoji stats for a user other than yourself")
    flags.add_bool("reactions", False, "only include reactions stats")
    return flags


def _delimited(emoji: str) -> str:
    if not emoji.startswith(":"):
        emoji = ":" + emoji
    if not emoji.endswith(":"):
        emoji += ":"
    return emoji


class EmojiCommand(CommandHandler):

    def run(self, text: str, ctx: RunContext) -> RunResult:
        values, reply = parse_flags(text, _flag_set())
        if reply:
            return RunResult(message=reply)

        message = ctx.require_message(f"{CMD_NAME} cmd error")

        if values.user:
            username = values.user
            user_id = ctx.slack.user_id(username)
            if not user_id:
                return RunResult(message="no such user")
        else:
            user_id = message.user_id
            username = ctx.slack.user_name(user_id)

        opts = GetEmojiOptions(
            sort_field="count",
            limit=values.limit,
            asc=values.asc,
            user=user_id,
            emoji=values.emoji,
            reaction=values.reactions
        )
        logger.info(f"Getting emoji with options: {opts}")

        try:
            emoji = ctx.storage.get_emoji(opts)
        except StorageError as e:
            raise StorageError(
                f"{CMD_NAME}: failed to get emoji from storage opts: {opts} err: {e}"
            ) from e

        if values.emoji:
            if not emoji:
                return RunResult(
                    message=f'{username} has not been observed using emoji "{values.emoji}"\n'
                )
            return RunResult(
                message=f"{username} has used the {values.emoji} emoji {emoji[0].count} times\n"
            )

        header = "Rarest" if values.asc else "Top"
        objects = "reactji" if values.reactions else "emoji"
        lines = [f":upside_down_face: {header} {len(emoji)} observed {objects} for *{username}*:"]
        for e in emoji:
            lines.append(f"\t{_delimited(e.emoji)} - used _{e.count} times_.")

        return RunResult(message="\n".join(lines) + "\n")


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":upside_down_face:",
        description="Find someone's most used emoji/reactji",
        handler=EmojiCommand()
    ))
