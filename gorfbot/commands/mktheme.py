"""
!mktheme - generate a random Slack sidebar theme.
"""

import colorsys
import random
import logging
from typing import Callable

from ..flags import FlagSet, parse_flags
from ..models import BasicCommand, CommandHandler, RunContext, RunResult
from ..registry import CommandRegistry

logger = logging.getLogger(__name__)

CMD_NAME = "mktheme"
THEME_COLOURS = 8

ADJECTIVES = [
    "amused", "brave", "calm", "clever", "cosmic", "dapper", "eager", "fancy",
    "fluffy", "gentle", "grumpy", "happy", "humble", "jolly", "lucky", "mellow",
    "nimble", "proud", "quiet", "rapid", "shiny", "sleepy", "smooth", "sunny",
    "tidy", "vivid", "wild", "witty", "zesty", "zippy",
]

NOUNS = [
    "badger", "beetle", "bison", "camel", "cat", "cobra", "crane", "dingo",
    "falcon", "ferret", "frog", "gecko", "heron", "ibis", "koala", "lemur",
    "lynx", "marmot", "moose", "newt", "otter", "panda", "quail", "raven",
    "salmon", "tapir", "toad", "walrus", "weasel", "yak",
]


class UnknownPaletteError(Exception):
    """The requested palette type doesn't exist."""
    pass


def _hex(h: float, s: float, v: float) -> str:
    r, g, b = colorsys.hsv_to_rgb(h, s, v)
    return "#{:02x}{:02x}{:02x}".format(round(r * 255), round(g * 255), round(b * 255))


# Each palette maps a random source to one (hue, saturation, value) triple
PALETTES: dict[str, Callable[[random.Random], tuple[float, float, float]]] = {
    "none": lambda rng: (rng.random(), rng.random(), rng.random() * 0.4),
    "warm": lambda rng: (rng.random(), 0.3 + rng.random() * 0.3, 0.3 + rng.random() * 0.3),
    "happy": lambda rng: (rng.random(), 0.6 + rng.random() * 0.3, 0.7 + rng.random() * 0.25),
    "soft": lambda rng: (rng.random(), 0.2 + rng.random() * 0.2, 0.8 + rng.random() * 0.15),
}


def generate_theme(palette: str, rng: random.Random) -> tuple[str, list[str]]:
    """
    Generate a theme name and its colours.

    Returns:
        (two word name, list of THEME_COLOURS "#rrggbb" colours)

    Raises:
        UnknownPaletteError: If palette isn't one of PALETTES
    """
    if palette not in PALETTES:
        raise UnknownPaletteError(f'unknown palette type "{palette}"')

    name = f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)}"
    colours = [_hex(*PALETTES[palette](rng)) for _ in range(THEME_COLOURS)]
    return name, colours


def format_theme(palette: str, name: str, colours: list[str]) -> str:
    prefix = f"{palette} " if palette else ""
    return f":lower_left_paintbrush: *{prefix}{name}*:\n{','.join(colours)}"


class MkthemeCommand(CommandHandler):

    def __init__(self):
        self.random = random.Random()

    def configure(self, config) -> None:
        if config is not None and config.mktheme.random_seed > 0:
            self.random.seed(config.mktheme.random_seed)

    def run(self, text: str, ctx: RunContext) -> RunResult:
        flags = FlagSet(CMD_NAME)
        flags.add_str("palette", "warm", "Palette type: [none, warm, happy, soft]")

        values, reply = parse_flags(text, flags)
        if reply:
            return RunResult(message=reply)

        palette = values.palette.lower()
        logger.info(f'{CMD_NAME} making a theme with palette type "{palette}"')

        try:
            name, colours = generate_theme(palette, self.random)
        except UnknownPaletteError as e:
            return RunResult(message=str(e))

        return RunResult(message=format_theme(palette, name, colours))


def register(registry: CommandRegistry) -> None:
    registry.must_add_command(BasicCommand(
        name=CMD_NAME,
        icon=":lower_left_paintbrush:",
        description="Generate a new Slack theme",
        handler=MkthemeCommand()
    ))
