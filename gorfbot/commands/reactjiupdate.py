"""
Reaction handler that counts the reactji each user adds and removes.
"""

import logging

from ..models import Reaction, ReactionCommand, ReactionHandler, RunContext
from ..registry import CommandRegistry
from ..storage import Emoji

logger = logging.getLogger(__name__)

HANDLER_NAME = "reactji usage"


class EmptyReactionError(Exception):
    """A reaction event arrived without a reaction name."""
    pass


class ReactjiUpdateHandler(ReactionHandler):

    def run(self, reaction: Reaction, ctx: RunContext) -> None:
        if not reaction.reaction:
            raise EmptyReactionError(
                f"{HANDLER_NAME} handler error: empty emoji update received"
            )

        emoji = Emoji(
            user=reaction.user,
            emoji=reaction.reaction,
            count=0 if reaction.removed else 1,
            reaction=True
        )
        updated = ctx.storage.upsert_emoji_count(emoji, decrement=reaction.removed)

        user = ctx.slack.user_name(updated.user)
        if reaction.removed:
            logger.info(
                f"{HANDLER_NAME} update - User {user!r} ({updated.user}) removed reactji "
                f"{updated.emoji!r} (new history: {updated.count} times)"
            )
        else:
            logger.info(
                f"{HANDLER_NAME} update - User {user!r} ({updated.user}) reacted with "
                f"reactji {updated.emoji!r} (history: {updated.count or 1} times)"
            )


def register(registry: CommandRegistry) -> None:
    registry.must_add_reaction_handler(ReactionCommand(
        name=HANDLER_NAME,
        handler=ReactjiUpdateHandler()
    ))
