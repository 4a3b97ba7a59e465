"""
!echo - repeat a message back.
"""

from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry

CMD_NAME = "echo"


class EchoCommand(CommandHandler):

    def run(self, text: str, ctx: RunContext) -> RunResult:
        ctx.require_message(f"{CMD_NAME} cmd error")
        return RunResult(message=text)


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":repeat:",
        description="Have Gorfbot echo a message",
        handler=EchoCommand()
    ))
