"""
Gorfbot, a Slack chat bot.

Contains the command registry, the dispatcher that routes Slack messages
and reactions to handlers, and the Slack and storage layers they use.
"""

from .models import (
    BasicCommand,
    CommandHandler,
    Message,
    PatternCommand,
    PatternHandler,
    Reaction,
    ReactionCommand,
    ReactionHandler,
    RunContext,
    RunResult,
)
from .registry import CommandRegistry, RegistrationError, DEFAULT_REGISTRY
from .dispatcher import Dispatcher, ListenerError
from .plugin_loader import PluginLoader

__all__ = [
    'BasicCommand',
    'CommandHandler',
    'Message',
    'PatternCommand',
    'PatternHandler',
    'Reaction',
    'ReactionCommand',
    'ReactionHandler',
    'RunContext',
    'RunResult',
    'CommandRegistry',
    'RegistrationError',
    'DEFAULT_REGISTRY',
    'Dispatcher',
    'ListenerError',
    'PluginLoader',
]
