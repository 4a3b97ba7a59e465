"""
!hello - say hello.
"""

from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry

CMD_NAME = "hello"


class HelloCommand(CommandHandler):

    def run(self, text: str, ctx: RunContext) -> RunResult:
        ctx.require_message(f"{CMD_NAME} cmd error")
        return RunResult(message="hello!", reactji=["wave"])


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":wave:",
        description="Say hello to Gorf",
        handler=HelloCommand()
    ))
