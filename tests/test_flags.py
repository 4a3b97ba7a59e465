"""
Tests for command flag parsing.
"""

import pytest

from gorfbot.flags import FlagSet, parse_flags


@pytest.fixture
def flag_set():
    flags = FlagSet("demo")
    flags.add_int("limit", 5, "how many")
    flags.add_bool("asc", False, "ascending order")
    flags.add_bool("random", True, "shuffle results")
    flags.add_str("user", "", "who to look up")
    return flags


class TestParseFlags:

    def test_defaults(self, flag_set):
        values, reply = parse_flags("", flag_set)

        assert reply == ""
        assert values.limit == 5
        assert values.asc is False
        assert values.random is True
        assert values.user == ""
        assert values.args == []

    def test_values_and_args(self, flag_set):
        values, reply = parse_flags("-limit 10 -asc cute frogs -user=gorf", flag_set)

        assert reply == ""
        assert values.limit == 10
        assert values.asc is True
        assert values.user == "gorf"
        assert values.args == ["cute", "frogs"]

    def test_double_dash_and_negation(self, flag_set):
        values, _ = parse_flags("--limit 2 --no-random", flag_set)

        assert values.limit == 2
        assert values.random is False

    @pytest.mark.parametrize("text, asc, random", [
        ("-asc=true -random=false", True, False),
        ("-asc=1 --random=F", True, False),
        ("-asc=false -random=true", False, True),
    ])
    def test_explicit_bool_values(self, flag_set, text, asc, random):
        values, reply = parse_flags(text, flag_set)

        assert reply == ""
        assert values.asc is asc
        assert values.random is random
        assert values.args == []

    def test_bad_bool_value(self, flag_set):
        values, reply = parse_flags("-random=maybe cats", flag_set)

        assert values is None
        assert reply.startswith('demo: failed to parse "-random=maybe cats": ')

    @pytest.mark.parametrize("text", ["-h", "-help", "--help", "-limit 3 -h"])
    def test_help_returns_usage(self, flag_set, text):
        values, reply = parse_flags(text, flag_set)

        assert values is None
        assert reply == flag_set.usage()

    def test_unknown_flag(self, flag_set):
        values, reply = parse_flags("-bogus", flag_set)

        assert values is None
        assert reply.startswith('demo: failed to parse "-bogus": ')

    def test_bad_int(self, flag_set):
        values, reply = parse_flags("-limit lots", flag_set)

        assert values is None
        assert reply.startswith('demo: failed to parse "-limit lots": ')


def test_usage(flag_set):
    assert flag_set.usage() == (
        ":speech_balloon: :bookmark_tabs: Usage of !*demo*:\n"
        "\t`-limit`\thow many (Default: `-limit 5`)\n"
        "\t`-asc`\tascending order (Default: `-asc=false`)\n"
        "\t`-random`\tshuffle results (Default: `-random=true`)\n"
        "\t`-user`\twho to look up (Default: `-user `)\n"
    )
