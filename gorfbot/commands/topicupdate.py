"""
Pattern that records channel topic changes.
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
from ..storage import Topic

logger = logging.getLogger(__name__)

PATTERN_NAME = "topic updates"
TOPIC_UPDATE_PATTERN = re.compile(r"^<@([\w]+)> set the channel topic: (.*)$")


class TopicUpdatePattern(PatternHandler):

    def run(self, all_submatches: list[list[str]], ctx: RunContext) -> RunResult:
        message = ctx.require_message(f"{PATTERN_NAME} pattern error")

        if len(all_submatches) != 1:
            raise SubmatchError(
                f"{PATTERN_NAME} pattern error: expected one submatch, got {all_submatches}"
            )

        submatches = all_submatches[0]
        if len(submatches) < 3:
            raise SubmatchError(
                f"{PATTERN_NAME} pattern error: too few submatches, got {submatches}"
            )

        topic = Topic(
            creator=submatches[1],
            channel=message.channel_id,
            topic=submatches[2],
            date=message.timestamp
        )
        ctx.storage.add_topic(topic)
        logger.info(str(topic))

        return RunResult(reactji=["mag", "newspaper"])


def register(registry: CommandRegistry) -> None:
    registry.must_add_pattern(PatternCommand(
        name=PATTERN_NAME,
        handler=TopicUpdatePattern(),
        pattern=TOPIC_UPDATE_PATTERN
    ))
