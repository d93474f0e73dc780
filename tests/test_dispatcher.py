"""Tests for the command dispatcher: echo, not-found, errors, clear, ordering."""

import asyncio

import pytest

from qo.agent.dispatcher import Dispatcher, Invocation, OutputLine, Renderer
from qo.commands import CommandRegistry


class RecordingRenderer(Renderer):
    def __init__(self):
        self.lines = []
        self.clears = 0
        self.modals = []

    def render(self, line):
        self.lines.append(line)

    def clear(self):
        self.clears += 1

    def open_modal(self, kind):
        self.modals.append(kind)


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def dispatcher(registry, session, renderer):
    return Dispatcher(registry, session, renderer)


def run(coro):
    return asyncio.run(coro)


class TestInvocationParse:
    def test_blank_line_is_none(self):
        assert Invocation.parse("") is None
        assert Invocation.parse("   \t ") is None

    def test_splits_name_and_args(self):
        inv = Invocation.parse("  explain   squeezed light ")
        assert inv.raw == "explain   squeezed light"
        assert inv.name == "explain"
        assert inv.args == ("squeezed", "light")

    def test_no_args(self):
        inv = Invocation.parse("help")
        assert inv.name == "help"
        assert inv.args == ()


class TestDispatch:
    def test_empty_input_emits_nothing(self, dispatcher, renderer):
        assert run(dispatcher.dispatch("   ")) == []
        assert dispatcher.scrollback == []
        assert renderer.lines == []

    def test_known_command_echoes_first(self, dispatcher):
        lines = run(dispatcher.dispatch("theme amber"))
        assert lines[0] == OutputLine(text="theme amber", is_echo=True)
        assert lines[1].text == "Theme set to amber"
        assert not lines[1].is_error

    def test_echo_is_trimmed_raw_input(self, dispatcher):
        lines = run(dispatcher.dispatch("   ask  what is a photon  "))
        assert lines[0].text == "ask  what is a photon"

    def test_unknown_command_emits_exactly_two_lines(self, dispatcher):
        lines = run(dispatcher.dispatch("teleport alice bob"))
        assert len(lines) == 2
        assert lines[0].is_echo and lines[0].text == "teleport alice bob"
        assert lines[1] == OutputLine(text="Command not found: teleport", is_error=True)

    def test_lookup_is_case_sensitive(self, dispatcher):
        lines = run(dispatcher.dispatch("HELP"))
        assert lines[-1].text == "Command not found: HELP"

    def test_no_partial_matching(self, dispatcher):
        lines = run(dispatcher.dispatch("he"))
        assert lines[-1].text == "Command not found: he"

    def test_async_handler_result_rendered(self, dispatcher, fake_ai):
        lines = run(dispatcher.dispatch("ask what is a photon"))
        assert [l.text for l in lines] == ["ask what is a photon", "AI says hi"]
        assert fake_ai.calls == [("what is a photon", "Provide detailed technical answer.")]

    def test_empty_result_emits_only_echo(self, session, renderer):
        reg = CommandRegistry()

        @reg.register("noop", "Does nothing")
        def noop(args, session):
            return ""

        d = Dispatcher(reg.freeze(), session, renderer)
        lines = run(d.dispatch("noop"))
        assert len(lines) == 1 and lines[0].is_echo

    def test_handler_exception_becomes_error_line(self, session, renderer):
        reg = CommandRegistry()

        @reg.register("boom", "Always fails")
        async def boom(args, session):
            raise RuntimeError("detector saturated")

        d = Dispatcher(reg.freeze(), session, renderer)
        lines = run(d.dispatch("boom"))
        assert lines[-1] == OutputLine(text="Error: detector saturated", is_error=True)

        # Terminal stays usable afterwards
        lines = run(d.dispatch("boom"))
        assert len(lines) == 2

    def test_lines_rendered_and_recorded_in_order(self, dispatcher, renderer):
        run(dispatcher.dispatch("theme blue"))
        run(dispatcher.dispatch("nope"))
        texts = [l.text for l in dispatcher.scrollback]
        assert texts == ["theme blue", "Theme set to blue", "nope", "Command not found: nope"]
        assert renderer.lines == dispatcher.scrollback

    def test_clear_empties_scrollback(self, dispatcher, renderer):
        run(dispatcher.dispatch("theme amber"))
        lines = run(dispatcher.dispatch("clear"))
        assert len(lines) == 1 and lines[0].is_echo
        assert dispatcher.scrollback == []
        assert renderer.clears == 1

    def test_modal_request_forwarded(self, dispatcher, renderer):
        lines = run(dispatcher.dispatch("login"))
        assert lines[-1].text == "Please use the login form"
        assert renderer.modals == ["login"]

    def test_emit_appends_outside_commands(self, dispatcher):
        line = dispatcher.emit("Invalid credentials", is_error=True)
        assert dispatcher.scrollback == [line]
        assert line.is_error

    def test_concurrent_dispatches_run_one_at_a_time(self, session, renderer):
        reg = CommandRegistry()
        active = []
        peak = []

        @reg.register("slow", "Waits a bit")
        async def slow(args, session):
            active.append(args[0])
            peak.append(len(active))
            await asyncio.sleep(0.01)
            active.remove(args[0])
            return f"done {args[0]}"

        d = Dispatcher(reg.freeze(), session, renderer)

        async def main():
            await asyncio.gather(d.dispatch("slow 1"), d.dispatch("slow 2"), d.dispatch("slow 3"))

        run(main())
        assert max(peak) == 1
        assert [l.text for l in d.scrollback] == [
            "slow 1", "done 1", "slow 2", "done 2", "slow 3", "done 3",
        ]
