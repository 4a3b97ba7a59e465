"""
!themes - list saved Slack themes and add new ones.
"""

import re
import logging

from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry
from ..storage import GetThemeOptions, Theme

logger = logging.getLogger(__name__)

CMD_NAME = "themes"

# A name followed by eight hex colours
ADD_THEME_PATTERN = re.compile(r"([^#]+) ((?:#[\da-fA-F]{6}[\s\,]*){8})")

USAGE = (
    f":speech_balloon: :bookmark_tabs: Usage of !*{CMD_NAME}*: `!{CMD_NAME} [list|add]`.\n"
    f"See `!{CMD_NAME} list -h` and `!{CMD_NAME} add -h` for more information."
)
ADD_USAGE = f":interrobang: Usage `!{CMD_NAME} add <themeName> <theme>`"


class ThemesCommand(CommandHandler):

    def list(self, ctx: RunContext) -> RunResult:
        themes = ctx.storage.get_themes(GetThemeOptions(sort_field="name", asc=True))

        lines = [f":art: {len(themes)} saved themes :art:"]
        for i, theme in enumerate(themes, start=1):
            creator = ctx.slack.user_name(theme.creator)
            lines.append(f"{i}. - Theme _*{theme.name}*_ by *{creator}*:\n{theme.theme}")

        return RunResult(message="\n".join(lines) + "\n")

    def add(self, text: str, ctx: RunContext) -> RunResult:
        match = ADD_THEME_PATTERN.search(text)
        if match is None:
            return RunResult(message=ADD_USAGE)

        message = ctx.require_message(f"{CMD_NAME} cmd error")
        theme = Theme(name=match.group(1), theme=match.group(2), creator=message.user_id)

        creator_name = ctx.slack.user_name(theme.creator)
        logger.info(
            f"{CMD_NAME} adding theme {theme.theme!r} with name {theme.name!r} "
            f"and creator {creator_name!r} ({theme.creator})"
        )
        ctx.storage.add_theme(theme)

        return RunResult(reactji=["art", "lower_left_paintbrush"])

    def run(self, text: str, ctx: RunContext) -> RunResult:
        words = text.split(" ")
        subcmd = words[0]
        rest = " ".join(words[1:])

        if subcmd in ("", "list"):
            return self.list(ctx)
        if subcmd == "add":
            return self.add(rest, ctx)
        if subcmd in ("-h", "--help", "help"):
            return RunResult(message=USAGE)

        return RunResult(
            message=(
                f':interrobang: "{subcmd}" isn\'t a known {CMD_NAME} subcommand? '
                f"Try `!{CMD_NAME} [add|list]`"
            )
        )


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":art:",
        description="List saved Slack themes, add new ones",
        handler=ThemesCommand()
    ))
