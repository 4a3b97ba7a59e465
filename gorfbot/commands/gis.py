"""
!gis - Google image search.

Uses the Custom Search JSON API:
https://developers.google.com/custom-search/v1/reference/rest/v1/cse/list
"""

import random
import re
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from ..config import GISConfig
from ..flags import FlagSet, parse_flags
from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry

logger = logging.getLogger(__name__)

CMD_NAME = "gis"
API_URL = "https://www.googleapis.com/customsearch/v1"
DEFAULT_TIMEOUT = 30.0

# The API returns at most 10 results per request
MAX_QUERY_LIMIT = 10
MAX_DISPLAY_LIMIT = 10

# Slack rewrites "example.com" to "<http://example.com|example.com>"
LINK_PATTERN = re.compile(r"<([^|]+)\|[^>]+>")

VALID_COLOR_TYPES = {"", "color", "gray", "mono", "trans"}
VALID_TYPES = {"", "clipart", "face", "lineart", "stock", "photo", "animated"}
VALID_SIZES = {"", "huge", "icon", "large", "medium", "small", "xlarge", "xxlarge"}


class ImageSearchError(Exception):
    """Invalid search options or a failed search request."""
    pass


@dataclass
class ImageResult:
    title: str
    url: str


@dataclass
class ImageSearchOptions:
    query: str
    limit: int = 1
    color_type: str = ""
    color: str = ""
    size: str = ""
    type: str = ""
    site: str = ""

    def validate(self) -> None:
        """Raise ImageSearchError describing the first invalid option."""
        if not self.query:
            raise ImageSearchError("provided Query is empty")
        if self.limit < 1:
            raise ImageSearchError(f"Limit {self.limit} is less than min, 1")
        if self.limit > MAX_QUERY_LIMIT:
            raise ImageSearchError(
                f"Limit {self.limit} is greater than max, {MAX_QUERY_LIMIT}"
            )
        if self.color_type not in VALID_COLOR_TYPES:
            raise ImageSearchError(f'Color Type "{self.color_type}" is invalid')
        if self.type not in VALID_TYPES:
            raise ImageSearchError(f'Type "{self.type}" is invalid')
        if self.size not in VALID_SIZES:
            raise ImageSearchError(f'Size "{self.size}" is invalid')

    def params(self) -> dict:
        """Request parameters for the options that are set."""
        params = {
            "q": self.query,
            "searchType": "image",
            "num": self.limit,
        }
        optional = {
            "imgColorType": self.color_type,
            "imgDominantColor": self.color,
            "imgSize": self.size,
            "imgType": self.type,
            "linkSite": self.site,
        }
        params.update({k: v for k, v in optional.items() if v})
        return params


class ImageSearchAPI:
    """Google Custom Search client restricted to image searches."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session if session is not None else requests.Session()

    def image_search(self, config: GISConfig, opts: ImageSearchOptions) -> list[ImageResult]:
        """
        Run an image search.

        Args:
            config: GISConfig with the API key, CSE ID and timeout
            opts: Search options

        Returns:
            Results in the order the API returned them
        """
        try:
            opts.validate()
        except ImageSearchError as e:
            raise ImageSearchError(f"invalid search options: {e}") from e

        params = opts.params()
        params["key"] = config.api_key
        params["cx"] = config.cse_id

        try:
            resp = self.session.get(API_URL, params=params, timeout=config.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.RequestException as e:
            raise ImageSearchError(f"failed to do search: {e}") from e
        except ValueError as e:
            raise ImageSearchError(f"failed to decode search response: {e}") from e

        return [
            ImageResult(title=item.get("title", ""), url=item.get("link", ""))
            for item in data.get("items", [])
        ]


def _flag_set() -> FlagSet:
    flags = FlagSet(CMD_NAME)
    flags.add_int(
        "limit", 1,
        f"upper limit for number of images to return, max {MAX_DISPLAY_LIMIT}"
    )
    flags.add_bool("random", True, "choose images randomly, or in order")
    flags.add_str("colorType", "", "[color|gray|mono|trans]")
    flags.add_str("color", "", "[black|blue|etc]")
    flags.add_str("size", "", "[huge|icon|large|medium|small|xlarge|xxlarge]")
    flags.add_str("type", "", "[clipart|face|lineart|stock|photo|animated]")
    flags.add_str("site", "", "URL that must be linked to by all result sites")
    return flags


class GISCommand(CommandHandler):

    def __init__(self, api: Optional[ImageSearchAPI] = None):
        self.api = api if api is not None else ImageSearchAPI()
        self.config = GISConfig()
        self.random = random.Random()

    def configure(self, config) -> None:
        if config is None:
            return
        self.config = config.gis
        if self.config.random_seed > 0:
            self.random.seed(self.config.random_seed)

    def run(self, text: str, ctx: RunContext) -> RunResult:
        values, reply = parse_flags(text, _flag_set())
        if reply:
            return RunResult(message=reply)

        if values.limit > MAX_DISPLAY_LIMIT:
            return RunResult(
                message=f"-limit {values.limit} is greater than max, {MAX_DISPLAY_LIMIT}"
            )

        site = values.site
        if site:
            match = LINK_PATTERN.search(site)
            if match:
                site = match.group(1)

        # Search for a full page of results when picking at random
        query_limit = MAX_QUERY_LIMIT if values.random else values.limit

        opts = ImageSearchOptions(
            query=" ".join(values.args),
            limit=query_limit,
            color_type=values.colorType,
            color=values.color,
            size=values.size,
            type=values.type,
            site=site
        )
        logger.info(f"{CMD_NAME} searching with options {opts}")

        try:
            results = self.api.image_search(self.config, opts)
        except ImageSearchError as e:
            raise ImageSearchError(f"{CMD_NAME} error {e}") from e

        logger.info(f"{CMD_NAME} got {len(results)} search results")

        if not results:
            return RunResult(reactji=["zero"])

        limit = len(results)
        if 0 < values.limit < limit:
            limit = values.limit

        if values.random:
            self.random.shuffle(results)

        message = "".join(
            f':frame_with_picture: :mag: - _"{res.title}"_\n{res.url}\n\n'
            for res in results[:limit]
        )
        return RunResult(message=message)


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":frame_with_picture:",
        description="Make a Google Image Search",
        handler=GISCommand()
    ))
