"""
Pattern that counts links to configured sites.

Each configured URL pattern names a collection. Every link whose host (and
path, when a path pattern is set) matches is counted in that collection.
The first time a URL is seen the pattern's first_msg is posted.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from ..config import ConfigError, URLConfig
from ..models import (
    PatternCommand,
    PatternHandler,
    RunContext,
    RunResult,
    SubmatchError,
)
from ..registry import CommandRegistry
from ..storage import URLCount
from ..utils import dedupe_sorted

logger = logging.getLogger(__name__)

PATTERN_NAME = "URLs"
# Slack formats links as <url> or <url|label>
SLACK_URL_PATTERN = re.compile(r"<([^|]+)(?:\|[^>]+)?>")


@dataclass
class URLPattern:
    host_regex: re.Pattern
    path_regex: Optional[re.Pattern]
    collection: str
    first_msg: str = ""
    reactji: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, conf: URLConfig) -> "URLPattern":
        """
        Compile a configured URL pattern.

        Raises:
            ConfigError: If the host pattern or collection is empty, or a
                pattern doesn't compile
        """
        if not conf.host_pattern:
            raise ConfigError("URL in urls config with empty host_pattern")
        if not conf.collection:
            raise ConfigError("URL in urls config with empty collection")

        try:
            host_regex = re.compile(conf.host_pattern)
        except re.error as e:
            raise ConfigError(f"failed to compile host_pattern {conf.host_pattern!r}: {e}") from e

        path_regex = None
        if conf.path_pattern:
            try:
                path_regex = re.compile(conf.path_pattern)
            except re.error as e:
                raise ConfigError(
                    f"failed to compile path_pattern {conf.path_pattern!r}: {e}"
                ) from e

        return cls(
            host_regex=host_regex,
            path_regex=path_regex,
            collection=conf.collection,
            first_msg=conf.first_msg,
            reactji=list(conf.reactji)
        )

    def matches(self, host: str, path: str) -> bool:
        if not self.host_regex.search(host):
            logger.debug(f"URL Host {host!r} doesn't match {self.host_regex.pattern!r}")
            return False

        if self.path_regex is not None and not self.path_regex.search(path):
            logger.debug(f"URL Path {path!r} doesn't match {self.path_regex.pattern!r}")
            return False

        return True


class URLsPattern(PatternHandler):

    def __init__(self):
        self.url_patterns: list[URLPattern] = []

    def configure(self, config) -> None:
        if config is not None:
            self.url_patterns = [URLPattern.from_config(u) for u in config.urls]

    def run(self, all_submatches: list[list[str]], ctx: RunContext) -> RunResult:
        if not all_submatches:
            raise SubmatchError(f"{PATTERN_NAME} pattern error: expected at least one submatch")

        messages = []
        reactions = []

        for submatches in all_submatches:
            if len(submatches) != 2:
                raise SubmatchError(
                    f"{PATTERN_NAME} pattern error: unexpected submatch length: "
                    f"{len(submatches)}, got {submatches}"
                )

            try:
                parts = urlsplit(submatches[1])
            except ValueError as e:
                logger.warning(
                    f"{PATTERN_NAME} pattern submatch part {submatches[1]!r} "
                    f"didn't parse as URL: {e}"
                )
                return RunResult()

            logger.info(f"{PATTERN_NAME} pattern saw URL for Host {parts.netloc!r} Path {parts.path!r}")

            for pattern in self.url_patterns:
                if not pattern.matches(parts.netloc, parts.path):
                    continue

                # Query and fragment aren't part of the counted URL
                url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
                updated = ctx.storage.upsert_url_count(
                    pattern.collection, URLCount(url=url, occurrences=1)
                )
                logger.info(
                    f"{PATTERN_NAME} update - collection {pattern.collection!r} matched "
                    f"URL {updated.url!r} (history: {updated.occurrences or 1} times)"
                )

                reactions.extend(pattern.reactji)
                if updated.occurrences == 0 and pattern.first_msg:
                    messages.append(pattern.first_msg)

        return RunResult(message="\n".join(messages), reactji=dedupe_sorted(reactions))


def register(registry: CommandRegistry) -> None:
    registry.must_add_pattern(PatternCommand(
        name=PATTERN_NAME,
        handler=URLsPattern(),
        pattern=SLACK_URL_PATTERN
    ))
