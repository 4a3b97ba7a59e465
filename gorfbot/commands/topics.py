"""
!topics - list a channel's previous topics.
"""

import logging

from ..flags import FlagSet, parse_flags
from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry
from ..slack_client import TimestampError
from ..storage import GetTopicOptions
from ..utils import format_time

logger = logging.getLogger(__name__)

CMD_NAME = "topics"


def _flag_set() -> FlagSet:
    flags = FlagSet(CMD_NAME)
    flags.add_int("limit", 5, "optional limit for number of topics to display")
    flags.add_str("channel", "", "optional channel name to display topics for")
    flags.add_bool("asc", False, "list topics in ascending age")
    return flags


class TopicsCommand(CommandHandler):

    def run(self, text: str, ctx: RunContext) -> RunResult:
        values, reply = parse_flags(text, _flag_set())
        if reply:
            return RunResult(message=reply)

        if values.channel:
            channel_name = values.channel.lstrip("#")
            channel_id = ctx.slack.conversation_id(channel_name)
            if not channel_id:
                return RunResult(message="no such channel")
        else:
            message = ctx.require_message(f"{CMD_NAME} cmd error")
            channel_id = message.channel_id
            channel_name = ctx.slack.conversation_name(channel_id)

        opts = GetTopicOptions(
            channel=channel_id,
            limit=values.limit,
            asc=values.asc,
            sort_field="date"
        )
        logger.info(f"Getting topics for opts {opts}")
        topics = ctx.storage.get_topics(opts)

        lines = [
            f":newspaper: :mega: {len(topics)} topics from channel "
            f"*#{channel_name}* :mega: :newspaper:"
        ]
        for topic in topics:
            user_name = ctx.slack.user_name(topic.creator)
            try:
                date = ctx.slack.parse_timestamp(topic.date)
            except TimestampError as e:
                date = e.value
            lines.append(
                f"\t:rolled_up_newspaper: {format_time(date)} - Topic changed by "
                f'_{user_name}_ to :scroll: *"{topic.topic}"*'
            )

        return RunResult(message="\n".join(lines) + "\n")


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":newspaper:",
        description="List previous channel topics",
        handler=TopicsCommand()
    ))
