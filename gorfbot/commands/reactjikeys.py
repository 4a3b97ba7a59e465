"""
Pattern that reacts to configured keywords.
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
from ..utils import dedupe_sorted

logger = logging.getLogger(__name__)

PATTERN_NAME = "reactji keywords"
WORD_PATTERN = re.compile(r"(\w+)")


class ReactjiKeysPattern(PatternHandler):

    def __init__(self):
        self.keywords: dict[str, list[str]] = {}

    def configure(self, config) -> None:
        if config is not None:
            self.keywords = config.reactji_keys.keywords
            logger.debug(f"Loaded reactji config: {self.keywords}")

    def run(self, all_submatches: list[list[str]], ctx: RunContext) -> RunResult:
        if not all_submatches:
            raise SubmatchError(f"{PATTERN_NAME} pattern executed with no submatches")

        reactions = []
        for submatches in all_submatches:
            if len(submatches) != 2:
                raise SubmatchError(
                    f"{PATTERN_NAME} pattern found submatch with unexpected len: {submatches}"
                )

            word = submatches[1].lower()
            if word in self.keywords:
                logger.info(f"word: {word!r} triggers {self.keywords[word]}")
                reactions.extend(self.keywords[word])

        return RunResult(reactji=dedupe_sorted(reactions))


def register(registry: CommandRegistry) -> None:
    registry.must_add_pattern(PatternCommand(
        name=PATTERN_NAME,
        handler=ReactjiKeysPattern(),
        pattern=WORD_PATTERN
    ))
