"""
Pattern that counts the emoji each user types in messages.
"""

import re
import logging

from ..models import (
    PatternCommand,
    PatternHandler,
    RunContext,
    RunResult,
    SubmatchError,
)
from ..registry import CommandRegistry
from ..storage import Emoji

logger = logging.getLogger(__name__)

PATTERN_NAME = "emoji usage"
# ":name:" where name is 1-100 of lowercase a-z, 0-9 and -_+'
EMOJI_PATTERN = re.compile(r"(\:[a-z0-9\-\_\+\']{1,100}\:)")


class PanoptimojiPattern(PatternHandler):

    def run(self, all_submatches: list[list[str]], ctx: RunContext) -> RunResult:
        message = ctx.require_message(f"{PATTERN_NAME} pattern error")

        if not all_submatches:
            raise SubmatchError(f"{PATTERN_NAME} pattern executed with no submatches")

        for submatch in all_submatches:
            if len(submatch) != 2:
                raise SubmatchError(
                    f"{PATTERN_NAME} expected two submatches found {submatch}"
                )

            updated = ctx.storage.upsert_emoji_count(
                Emoji(user=message.user_id, emoji=submatch[1], count=1)
            )

            user = ctx.slack.user_name(updated.user)
            logger.info(
                f"{PATTERN_NAME} update - User {user!r} ({updated.user}) has used "
                f"emoji {updated.emoji!r} (history: {updated.count or 1} times)"
            )

        return RunResult()


def register(registry: CommandRegistry) -> None:
    registry.must_add_pattern(PatternCommand(
        name=PATTERN_NAME,
        handler=PanoptimojiPattern(),
        pattern=EMOJI_PATTERN
    ))
