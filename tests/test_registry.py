"""
Tests for the command registry.
"""

import re

import pytest

from gorfbot.models import (
    BasicCommand,
    CommandHandler,
    PatternCommand,
    PatternHandler,
    ReactionCommand,
    ReactionHandler,
    RunResult,
)
from gorfbot.registry import CommandRegistry, RegistrationError


class StubCommand(CommandHandler):
    def run(self, text, ctx):
        return RunResult()


class StubPattern(PatternHandler):
    def run(self, all_submatches, ctx):
        return RunResult()


class StubReaction(ReactionHandler):
    def run(self, reaction, ctx):
        pass


def _snapshot(registry):
    return (
        registry.get_commands(),
        registry.get_patterns(),
        registry.get_reaction_handlers(),
    )


class TestInvalidRegistrations:
    """Invalid entries are rejected and leave the registry unchanged."""

    @pytest.mark.parametrize("cmd", [
        None,
        BasicCommand(name="", handler=StubCommand()),
        BasicCommand(name="test", handler=None),
    ])
    def test_invalid_command(self, registry, cmd):
        before = _snapshot(registry)
        assert registry.add_command(cmd) is False
        assert _snapshot(registry) == before

    def test_duplicate_command(self, registry):
        original = BasicCommand(name="test", handler=StubCommand())
        assert registry.add_command(original) is True

        assert registry.add_command(BasicCommand(name="test", handler=StubCommand())) is False
        assert registry.get_command("test") is original
        assert len(registry.get_commands()) == 1

    @pytest.mark.parametrize("cmd", [
        None,
        PatternCommand(name="", handler=StubPattern(), pattern=re.compile("x")),
        PatternCommand(name="p", handler=None, pattern=re.compile("x")),
        PatternCommand(name="p", handler=StubPattern(), pattern=None),
    ])
    def test_invalid_pattern(self, registry, cmd):
        before = _snapshot(registry)
        assert registry.add_pattern(cmd) is False
        assert _snapshot(registry) == before

    def test_duplicate_pattern(self, registry):
        registry.add_pattern(PatternCommand(name="p", handler=StubPattern(), pattern=re.compile("a")))
        dupe = PatternCommand(name="p", handler=StubPattern(), pattern=re.compile("b"))

        assert registry.add_pattern(dupe) is False
        assert registry.get_pattern("p").pattern.pattern == "a"

    @pytest.mark.parametrize("cmd", [
        None,
        ReactionCommand(name="", handler=StubReaction()),
        ReactionCommand(name="r", handler=None),
    ])
    def test_invalid_reaction_handler(self, registry, cmd):
        before = _snapshot(registry)
        assert registry.add_reaction_handler(cmd) is False
        assert _snapshot(registry) == before

    def test_duplicate_reaction_handler(self, registry):
        assert registry.add_reaction_handler(ReactionCommand(name="r", handler=StubReaction()))
        assert not registry.add_reaction_handler(ReactionCommand(name="r", handler=StubReaction()))
        assert len(registry.get_reaction_handlers()) == 1


class TestMustAdd:

    def test_must_add_command_raises(self, registry):
        registry.must_add_command(BasicCommand(name="test", handler=StubCommand()))
        with pytest.raises(RegistrationError):
            registry.must_add_command(BasicCommand(name="test", handler=StubCommand()))

    def test_must_add_pattern_raises(self, registry):
        with pytest.raises(RegistrationError):
            registry.must_add_pattern(PatternCommand(name="p", handler=StubPattern(), pattern=None))

    def test_must_add_reaction_handler_raises(self, registry):
        with pytest.raises(RegistrationError):
            registry.must_add_reaction_handler(ReactionCommand(name="", handler=StubReaction()))


class TestLookups:

    def test_get_returns_registered_entry(self, registry):
        cmd = BasicCommand(name="test", handler=StubCommand())
        pattern = PatternCommand(name="p", handler=StubPattern(), pattern=re.compile("x"))
        reaction = ReactionCommand(name="r", handler=StubReaction())

        registry.must_add_command(cmd)
        registry.must_add_pattern(pattern)
        registry.must_add_reaction_handler(reaction)

        assert registry.get_command("test") is cmd
        assert registry.get_pattern("p") is pattern
        assert registry.get_reaction_handler("r") is reaction
        assert len(registry) == 3

    def test_get_missing_returns_none(self, registry):
        assert registry.get_command("nope") is None
        assert registry.get_pattern("nope") is None
        assert registry.get_reaction_handler("nope") is None

    def test_commands_keep_registration_order(self, registry):
        names = ["zeta", "alpha", "mu", "beta", "omega"]
        for name in names:
            registry.must_add_command(BasicCommand(name=name, handler=StubCommand()))

        commands = registry.get_commands()
        assert [c.name for c in commands] == names

    def test_returned_lists_are_copies(self, registry):
        registry.must_add_command(BasicCommand(name="test", handler=StubCommand()))
        registry.get_commands().clear()
        assert len(registry.get_commands()) == 1

    def test_configurables_order(self, registry):
        cmd_handler = StubCommand()
        pattern_handler = StubPattern()
        reaction_handler = StubReaction()
        registry.must_add_reaction_handler(ReactionCommand(name="r", handler=reaction_handler))
        registry.must_add_pattern(PatternCommand(name="p", handler=pattern_handler, pattern=re.compile("x")))
        registry.must_add_command(BasicCommand(name="c", handler=cmd_handler))

        assert registry.get_configurables() == [cmd_handler, pattern_handler, reaction_handler]


def test_separate_registries_are_independent():
    first = CommandRegistry()
    second = CommandRegistry()
    first.must_add_command(BasicCommand(name="test", handler=StubCommand()))

    assert second.get_command("test") is None
    assert second.add_command(BasicCommand(name="test", handler=StubCommand())) is True
