"""
Tests for the dispatch loop: dispatch, error containment, transitions and ordering.
"""

import asyncio
import os
import signal
import sys
from io import StringIO

import pytest

from ctxshell.core.context import Context
from ctxshell.core.exceptions import CommandUsageError
from ctxshell.core.loop import CLEAR_SCREEN, DispatchLoop
from ctxshell.core.registry import CommandScope
from ctxshell.core.transitions import Finish, Transition


class ListInput:
    """Input source that serves a fixed list of lines, then EOF."""

    def __init__(self, lines=None):
        self.lines = list(lines or [])
        self.prompts = []
        self.history_cleared = 0

    async def read_line(self, prompt):
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError()
        line = self.lines.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line

    def clear_history(self):
        self.history_cleared += 1


class RecordingContext(Context):
    """Context recording calls to its commands, hook and lifecycle."""

    def __init__(self, label="Test"):
        super().__init__()
        self.label = label
        self.calls = []
        self.dispose_count = 0
        self.scope_lookups = 0
        self.handled_errors = []
        self.handle_errors = False
        self.commands.add_command("echo", 10, "Echo args", self.cmd_echo)
        self.commands.add_alias("e", "echo")
        self.commands.add_command("fail", 20, "Raise an error", self.cmd_fail)

    def prompt(self):
        return self.label

    def scopes(self):
        self.scope_lookups += 1
        return super().scopes()

    async def cmd_echo(self, args):
        self.calls.append(args)

    async def cmd_fail(self, args):
        raise RuntimeError(f"boom {args}".strip())

    async def on_uncaught_error(self, error):
        self.handled_errors.append(error)
        return self.handle_errors

    def dispose(self):
        self.dispose_count += 1
        super().dispose()


def run_loop(context, lines=(), queued=(), **kwargs):
    output = StringIO()
    source = ListInput(lines)
    loop = DispatchLoop(context, source, output=output, **kwargs)
    loop.enqueue(*queued)
    asyncio.run(loop.run())
    return loop, source, output.getvalue()


class TestDispatch:
    """Tests for resolving and running lines."""

    def test_runs_context_command_with_raw_args(self):
        ctx = RecordingContext()
        run_loop(ctx, ['echo a "b c"  d'])
        assert ctx.calls == ['a "b c"  d']

    def test_alias_and_case(self):
        ctx = RecordingContext()
        run_loop(ctx, ["E hello", "ECHO World"])
        assert ctx.calls == ["hello", "World"]

    def test_leading_whitespace_and_tabs(self):
        ctx = RecordingContext()
        run_loop(ctx, ["   echo\t  spaced  "])
        assert ctx.calls == ["spaced"]

    def test_single_char_command_with_args(self):
        ctx = RecordingContext()
        run_loop(ctx, ["e x"])
        assert ctx.calls == ["x"]

    def test_no_args(self):
        ctx = RecordingContext()
        run_loop(ctx, ["echo"])
        assert ctx.calls == [""]

    def test_blank_lines_skipped(self):
        ctx = RecordingContext()
        _, _, out = run_loop(ctx, ["", "   ", "\t"])
        assert ctx.calls == []
        assert out == ""

    def test_prompt_shows_context_label(self):
        ctx = RecordingContext("Main Menu")
        _, source, _ = run_loop(ctx, ["echo"])
        assert source.prompts[0] == "Main Menu> "

    def test_custom_prompt_suffix(self):
        ctx = RecordingContext("Main Menu")
        _, source, _ = run_loop(ctx, [], prompt_suffix=" $ ")
        assert source.prompts == ["Main Menu $ "]

    def test_sync_action_accepted(self):
        ctx = RecordingContext()
        seen = []
        ctx.commands.add_command("sync", 1, "Sync", seen.append)
        run_loop(ctx, ["sync x"])
        assert seen == ["x"]


class TestHelp:
    """Tests for unresolved tokens and the help table."""

    def test_invalid_command_prints_help(self):
        _, _, out = run_loop(RecordingContext(), ["nope"])
        assert "Invalid command: nope" in out
        assert "Command" in out and "Description" in out
        assert "echo" in out and "quit" in out

    def test_help_marker_has_no_invalid_line(self):
        _, _, out = run_loop(RecordingContext(), ["?"])
        assert "Invalid command" not in out
        assert "Echo args" in out

    def test_custom_help_marker(self):
        _, _, out = run_loop(RecordingContext(), ["help"], help_marker="help")
        assert "Invalid command" not in out

    def test_help_sorted_by_order(self):
        _, _, out = run_loop(RecordingContext(), ["?"])
        assert out.index("echo") < out.index("fail") < out.index("clear") < out.index("quit")

    def test_help_shows_aliases(self):
        _, _, out = run_loop(RecordingContext(), ["?"])
        quit_line = next(line for line in out.splitlines() if line.strip().startswith("quit"))
        assert quit_line.split()[:2] == ["quit", "q"]


class TestErrorContainment:
    """A failing command never ends the loop."""

    def test_error_printed_and_loop_continues(self):
        ctx = RecordingContext()
        _, _, out = run_loop(ctx, ["fail now", "echo after"])
        assert "Error: boom now" in out
        assert ctx.calls == ["after"]

    def test_error_offered_to_hook(self):
        ctx = RecordingContext()
        run_loop(ctx, ["fail"])
        assert len(ctx.handled_errors) == 1
        assert isinstance(ctx.handled_errors[0], RuntimeError)

    def test_handled_error_not_printed(self):
        ctx = RecordingContext()
        ctx.handle_errors = True
        _, _, out = run_loop(ctx, ["fail", "echo after"])
        assert "Error:" not in out
        assert ctx.calls == ["after"]

    def test_failing_hook_treated_as_unhandled(self):
        ctx = RecordingContext()

        async def bad_hook(error):
            raise ValueError("hook broke")

        ctx.on_uncaught_error = bad_hook
        _, _, out = run_loop(ctx, ["fail", "echo after"])
        assert "Error: boom" in out
        assert ctx.calls == ["after"]

    def test_usage_error_prints_usage(self):
        ctx = RecordingContext()

        async def needs_args(args):
            raise CommandUsageError("x: missing name", usage="usage: x name\n")

        ctx.commands.add_command("x", 1, "X", needs_args)
        _, _, out = run_loop(ctx, ["x"])
        assert "Error: x: missing name" in out
        assert "usage: x name" in out

    def test_sync_error_hook(self):
        ctx = RecordingContext()
        ctx.on_uncaught_error = lambda error: True
        _, _, out = run_loop(ctx, ["fail", "echo after"])
        assert "Error:" not in out
        assert ctx.calls == ["after"]

    @pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signals")
    def test_ctrl_c_during_command(self):
        """SIGINT cancels the running command only; queued lines still run."""
        ctx = RecordingContext()

        async def slow(args):
            os.kill(os.getpid(), signal.SIGINT)
            await asyncio.sleep(0.5)
            ctx.calls.append("slow finished")

        ctx.commands.add_command("slow", 1, "Slow", slow)
        _, _, out = run_loop(ctx, [], queued=["slow", "echo after"])
        assert "[Interrupted]" in out
        assert ctx.calls == ["after"]

    @pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signals")
    def test_ctrl_c_during_sync_command(self):
        ctx = RecordingContext()

        def busy(args):
            os.kill(os.getpid(), signal.SIGINT)
            ctx.calls.append("busy finished")

        ctx.commands.add_command("busy", 1, "Busy", busy)
        _, _, out = run_loop(ctx, [], queued=["busy", "echo after"])
        assert "[Interrupted]" in out
        assert ctx.calls == ["after"]

    def test_sigint_handler_restored(self):
        before = signal.getsignal(signal.SIGINT)
        run_loop(RecordingContext(), ["echo x"])
        assert signal.getsignal(signal.SIGINT) is before

    def test_keyboard_interrupt_raised_by_command(self):
        ctx = RecordingContext()

        async def interrupted(args):
            raise KeyboardInterrupt()

        ctx.commands.add_command("stop", 1, "Stop", interrupted)
        _, _, out = run_loop(ctx, ["stop", "echo after"])
        assert "[Interrupted]" in out
        assert ctx.calls == ["after"]

    def test_keyboard_interrupt_at_prompt(self):
        ctx = RecordingContext()
        run_loop(ctx, [KeyboardInterrupt(), "echo after"])
        assert ctx.calls == ["after"]


class TestTermination:
    """Tests for finishing the loop."""

    def test_quit_finishes(self):
        ctx = RecordingContext()
        loop, _, out = run_loop(ctx, ["quit", "echo never"])
        assert loop.finished
        assert ctx.calls == []
        assert "Goodbye!" in out

    def test_quit_alias(self):
        ctx = RecordingContext()
        loop, _, _ = run_loop(ctx, ["q", "echo never"])
        assert loop.finished
        assert ctx.calls == []

    def test_finish_returned_by_command(self):
        ctx = RecordingContext()

        async def done(args):
            return Finish("done")

        ctx.commands.add_command("done", 1, "Done", done)
        loop, _, _ = run_loop(ctx, ["done", "echo never"])
        assert loop.finished
        assert ctx.calls == []

    def test_end_of_input_finishes(self):
        loop, _, _ = run_loop(RecordingContext(), [])
        assert loop.finished

    def test_no_context_stops_loop(self):
        ctx = RecordingContext()

        loop = DispatchLoop(ctx, ListInput(["echo x"]), output=StringIO())
        loop.context = None
        asyncio.run(loop.run())
        assert ctx.calls == []

    def test_active_context_disposed_on_exit(self):
        ctx = RecordingContext()
        run_loop(ctx, ["quit"])
        assert ctx.dispose_count == 1

    def test_injected_global_scope(self):
        scope = CommandScope(label="global")
        seen = []
        scope.add_command("ping", 5, "Ping", seen.append)
        loop, _, _ = run_loop(RecordingContext(), ["ping x", "q"], commands=scope)
        assert loop.commands is scope
        assert seen == ["x"]
        assert "quit" in scope and "clear" in scope
        assert loop.finished

    def test_clear_writes_escape(self):
        _, _, out = run_loop(RecordingContext(), ["c"])
        assert CLEAR_SCREEN in out


class TestTransitions:
    """Tests for context swaps requested by commands."""

    def test_transition_swaps_and_disposes_once(self):
        first = RecordingContext("First")
        second = RecordingContext("Second")

        async def go(args):
            return Transition(second)

        first.commands.add_command("go", 1, "Go", go)
        loop, source, _ = run_loop(first, ["go", "echo in second", "echo again"])

        assert loop.context is second
        assert first.dispose_count == 1
        assert first.calls == []
        assert second.calls == ["in second", "again"]
        assert source.prompts[1] == "Second> "

    def test_old_context_not_consulted_after_swap(self):
        first = RecordingContext("First")
        second = RecordingContext("Second")

        async def go(args):
            return Transition(second)

        first.commands.add_command("go", 1, "Go", go)
        loop = DispatchLoop(first, ListInput(["go", "echo 1", "echo 2", "nope"]), output=StringIO())
        asyncio.run(loop.run())
        assert first.scope_lookups == 1
        assert first.disposed

    def test_history_cleared_on_swap(self):
        first = RecordingContext("First")
        second = RecordingContext("Second")

        async def go(args):
            return Transition(second)

        first.commands.add_command("go", 1, "Go", go)
        _, source, _ = run_loop(first, ["go"])
        assert source.history_cleared == 1

    def test_transition_to_self_clears_without_dispose(self):
        ctx = RecordingContext()

        async def stay(args):
            return Transition(ctx)

        ctx.commands.add_command("stay", 1, "Stay", stay)
        loop = DispatchLoop(ctx, ListInput(["stay", "echo x"]), output=StringIO())
        asyncio.run(loop.run())
        assert loop.context is ctx
        assert ctx.calls == ["x"]
        # only the exit disposal
        assert ctx.dispose_count == 1
        assert ctx.next_context is None

    def test_request_transition_field(self):
        first = RecordingContext("First")
        second = RecordingContext("Second")

        async def go(args):
            first.request_transition(second)

        first.commands.add_command("go", 1, "Go", go)
        loop, _, _ = run_loop(first, ["go", "echo x"])
        assert loop.context is second
        assert second.calls == ["x"]

    def test_transition_applied_before_queued_line(self):
        first = RecordingContext("First")
        second = RecordingContext("Second")

        async def go(args):
            return Transition(second)

        first.commands.add_command("go", 1, "Go", go)
        run_loop(first, [], queued=["go", "echo queued"])
        assert second.calls == ["queued"]
        assert first.calls == []

    def test_global_commands_available_everywhere(self):
        first = RecordingContext("First")
        second = RecordingContext("Second")

        async def go(args):
            return Transition(second)

        first.commands.add_command("go", 1, "Go", go)
        loop, _, _ = run_loop(first, ["go", "quit"])
        assert loop.finished


class TestOrdering:
    """Queued lines run first and strictly one after another."""

    def test_queue_before_interactive(self):
        ctx = RecordingContext()
        run_loop(ctx, ["echo typed"], queued=["echo one", "echo two"])
        assert ctx.calls == ["one", "two", "typed"]

    def test_serial_completion(self):
        ctx = RecordingContext()
        events = []
        counter = {"value": 0}

        def make(name):
            async def action(args):
                events.append((name, "start", counter["value"]))
                await asyncio.sleep(0.01)
                counter["value"] += 1
                events.append((name, "end", counter["value"]))
            return action

        ctx.commands.add_command("cmd1", 1, "", make("cmd1"))
        ctx.commands.add_command("cmd2", 2, "", make("cmd2"))
        run_loop(ctx, [], queued=["cmd1", "cmd2"])
        assert events == [
            ("cmd1", "start", 0),
            ("cmd1", "end", 1),
            ("cmd2", "start", 1),
            ("cmd2", "end", 2),
        ]

    def test_queue_not_read_from_input(self):
        ctx = RecordingContext()
        _, source, _ = run_loop(ctx, [], queued=["echo a"])
        # one prompt: the EOF read after the queue drained
        assert len(source.prompts) == 1


@pytest.mark.parametrize("line,expected", [
    ("echo", [""]),
    ("echo  x  y ", ["x  y"]),
])
def test_remainder_is_stripped_not_tokenized(line, expected):
    ctx = RecordingContext()
    run_loop(ctx, [line])
    assert ctx.calls == expected
