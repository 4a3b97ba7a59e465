"""
Flag style argument parsing for command handlers.

Command handlers receive everything after the command name as one string.
FlagSet parses it into typed values. Parse failures and help requests are
returned as text so the handler can reply with it instead of failing.
"""

import argparse
from typing import Any, Optional

HELP_FLAGS = ("-h", "-help", "--help")

TRUE_VALUES = ("1", "t", "true")
FALSE_VALUES = ("0", "f", "false")


class FlagError(Exception):
    """An argument string could not be parsed."""
    pass


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing and exiting."""

    def error(self, message):
        raise FlagError(message)


class FlagSet:
    """
    A named set of options for one command.

    Options are given as "-name value", "-name=value" or "--name value".
    Boolean options are switched on by "-name" or "-name=true" and off by
    "-name=false" or "--no-name".
    Words that aren't options are collected in the parsed "args" list.
    """

    def __init__(self, name: str):
        self.name = name
        self._flags: list[tuple[str, Any, str]] = []
        self._bools: set[str] = set()
        self._parser = _Parser(prog=name, add_help=False, allow_abbrev=False)
        self._parser.add_argument("args", nargs="*")

    def _add(self, name: str, default: Any, usage: str, **kwargs) -> None:
        self._flags.append((name, default, usage))
        self._parser.add_argument(
            f"-{name}", f"--{name}",
            dest=name,
            default=default,
            help=usage,
            **kwargs
        )

    def add_int(self, name: str, default: int, usage: str) -> None:
        self._add(name, default, usage, type=int)

    def add_str(self, name: str, default: str, usage: str) -> None:
        self._add(name, default, usage, type=str)

    def add_bool(self, name: str, default: bool, usage: str) -> None:
        self._bools.add(name)
        self._add(name, default, usage, action=argparse.BooleanOptionalAction)

    def usage(self) -> str:
        """Slack formatted usage block listing every flag and its default."""
        lines = [f":speech_balloon: :bookmark_tabs: Usage of !*{self.name}*:"]
        for name, default, usage in self._flags:
            if name in self._bools:
                default = "true" if default else "false"
                lines.append(f"\t`-{name}`\t{usage} (Default: `-{name}={default}`)")
                continue
            lines.append(f"\t`-{name}`\t{usage} (Default: `-{name} {default}`)")
        return "\n".join(lines) + "\n"

    def _expand_bool(self, word: str) -> str:
        """Rewrite "-name=true" and "-name=false" for boolean flags."""
        flag, sep, value = word.partition("=")
        name = flag.lstrip("-")
        if not sep or not flag.startswith("-") or name not in self._bools:
            return word

        value = value.lower()
        if value in TRUE_VALUES:
            return f"--{name}"
        if value in FALSE_VALUES:
            return f"--no-{name}"
        raise FlagError(f"invalid boolean value {value!r} for -{name}")

    def parse(self, words: list[str]) -> argparse.Namespace:
        """Parse words, raising FlagError on unknown flags or bad values."""
        words = [self._expand_bool(word) for word in words]
        try:
            return self._parser.parse_intermixed_args(words)
        except argparse.ArgumentError as e:
            raise FlagError(str(e)) from e


def parse_flags(text: str, flag_set: FlagSet) -> tuple[Optional[argparse.Namespace], str]:
    """
    Parse a command's argument text with the given flag set.

    Args:
        text: Text that followed the command name
        flag_set: Options accepted by the command

    Returns:
        (values, reply). When reply is non-empty it is either the usage
        block (help was requested) or a one line parse error, and values
        is None. The caller should reply with it as a normal result.
    """
    words = text.split()

    if any(word in HELP_FLAGS for word in words):
        return None, flag_set.usage()

    try:
        values = flag_set.parse(words)
    except FlagError as e:
        return None, f"{flag_set.name}: failed to parse \"{text}\": {e}"

    return values, ""
