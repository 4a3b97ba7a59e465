"""
!frogtip - frog care and feeding advice from the frog.tips API.
"""

import time
import logging
from typing import Optional

import requests

from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry

logger = logging.getLogger(__name__)

CMD_NAME = "frogtip"
API_URL = "https://frog.tips/api/1/tips/"
DEFAULT_USER_AGENT = f"{CMD_NAME}/0.0.1"
DEFAULT_TIMEOUT = 30.0


class FrogtipError(Exception):
    """The tips API request failed or returned nothing usable."""
    pass


class FrogAPI:
    """Minimal client for the frog.tips tips endpoint."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.user_agent = ""

    def get_tips(self) -> list[dict]:
        """
        Fetch a batch of tips.

        Returns:
            List of {"tip": str, "number": int} dicts

        Raises:
            FrogtipError: On request failure, non-200 response or bad JSON
        """
        headers = {"User-Agent": self.user_agent or DEFAULT_USER_AGENT}

        try:
            resp = self.session.get(API_URL, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FrogtipError(f"{CMD_NAME} cmd error making get tips request: {e}") from e

        if resp.status_code != 200:
            raise FrogtipError(
                f"{CMD_NAME} cmd got non-200 response from tips API: {resp.status_code}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise FrogtipError(f"{CMD_NAME} cmd hit err unmarshaling tips response: {e}") from e

        return data.get("tips") or []


class FrogtipCommand(CommandHandler):

    def __init__(self, api: Optional[FrogAPI] = None):
        self.api = api if api is not None else FrogAPI()

    def configure(self, config) -> None:
        if config is not None:
            self.api.user_agent = config.frogtip.user_agent

    def run(self, text: str, ctx: RunContext) -> RunResult:
        start = time.monotonic()
        tips = self.api.get_tips()
        elapsed = time.monotonic() - start
        logger.info(f"{CMD_NAME} fetched {len(tips)} tips in {elapsed:.2f}s")

        if not tips:
            raise FrogtipError(f"{CMD_NAME} cmd tip API had no tips :-(")

        tip = tips[0].get("tip", "").replace('\\"', '"')
        return RunResult(
            message=f':frog: :speech_balloon: "{tip}"',
            reactji=["yin_yang", "pray"]
        )


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":frog:",
        description="Frog care and feeding",
        handler=FrogtipCommand()
    ))
