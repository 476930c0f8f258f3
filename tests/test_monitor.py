"""Tests for the stdout bootstrap monitor."""

import io
import queue

import pytest

from torlaunch.errors import (
    InvalidBootstrapLine,
    InvalidLogLine,
    ProcessError,
    RouterError,
    UnexpectedEOF,
)
from torlaunch.monitor import StdoutMonitor


def stream(*lines: str) -> io.StringIO:
    return io.StringIO("".join(lines))


HAPPY = [
    "Apr 01 12:00:00.000 [notice] Opening Socks listener\n",
    "Apr 01 12:00:01.000 [notice] Bootstrapped 50%: Loading relay descriptors\n",
    "Apr 01 12:00:02.000 [notice] Bootstrapped 100%: Done\n",
    "Apr 01 12:00:03.000 [notice] after done\n",
]


class BrokenReader:
    def readline(self):
        raise OSError("pipe broke")


class TestRun:
    def test_returns_reader_after_target(self):
        reader = stream(*HAPPY)
        assert StdoutMonitor(reader, 100).run() is reader
        assert reader.readline() == HAPPY[3]

    def test_early_acceptance(self):
        reader = stream(*HAPPY)
        StdoutMonitor(reader, 50).run()
        assert reader.readline() == HAPPY[2]

    def test_target_zero_accepts_first_bootstrap_line(self):
        reader = stream(
            "Apr 01 12:00:00.000 [notice] Bootstrapped 0%: Starting\n",
            "Apr 01 12:00:00.100 [notice] next\n",
        )
        StdoutMonitor(reader, 0).run()
        assert reader.readline() == "Apr 01 12:00:00.100 [notice] next\n"

    def test_higher_percent_satisfies_target(self):
        reader = stream("Apr 01 12:00:00.000 [notice] Bootstrapped 90%: Almost\n")
        assert StdoutMonitor(reader, 80).run() is reader

    def test_warning_then_error(self):
        reader = stream(
            "Apr 01 12:00:00.000 [warn] Could not bind\n",
            "Apr 01 12:00:00.500 [err] Reading config failed\n",
        )
        with pytest.raises(RouterError) as info:
            StdoutMonitor(reader, 100).run()
        assert info.value.body == "[err] Reading config failed"
        assert info.value.warnings == ["[warn] Could not bind"]

    def test_warnings_kept_in_order(self):
        reader = stream(
            "Apr 01 12:00:00.000 [warn] first\n",
            "Apr 01 12:00:00.100 [notice] Bootstrapped 10%: Going\n",
            "Apr 01 12:00:00.200 [warn] second\n",
            "Apr 01 12:00:00.300 [err] fatal\n",
        )
        monitor = StdoutMonitor(reader, 100)
        with pytest.raises(RouterError) as info:
            monitor.run()
        assert info.value.warnings == ["[warn] first", "[warn] second"]
        assert monitor.warnings == ["[warn] first", "[warn] second"]

    def test_error_payload_is_a_snapshot(self):
        reader = stream(
            "Apr 01 12:00:00.000 [warn] only\n",
            "Apr 01 12:00:00.100 [err] fatal\n",
        )
        monitor = StdoutMonitor(reader, 100)
        with pytest.raises(RouterError) as info:
            monitor.run()
        monitor.warnings.append("later")
        assert info.value.warnings == ["[warn] only"]

    def test_malformed_bootstrap(self):
        reader = stream("Apr 01 12:00:00.000 [notice] Bootstrapped XX%: Broken\n")
        with pytest.raises(InvalidBootstrapLine) as info:
            StdoutMonitor(reader, 100).run()
        assert info.value.body == "[notice] Bootstrapped XX%: Broken"

    def test_huge_bootstrap_percent(self):
        reader = stream("Apr 01 12:00:00.000 [notice] Bootstrapped " + "9" * 5000 + "%: Huge\n")
        with pytest.raises(InvalidBootstrapLine):
            StdoutMonitor(reader, 100).run()

    def test_short_line(self):
        with pytest.raises(InvalidLogLine):
            StdoutMonitor(stream("hi\n"), 100).run()

    def test_eof_before_target(self):
        reader = stream("Apr 01 12:00:01.000 [notice] Bootstrapped 50%: Loading\n")
        with pytest.raises(UnexpectedEOF):
            StdoutMonitor(reader, 100).run()

    def test_unexpected_eof_is_a_process_error(self):
        with pytest.raises(ProcessError):
            StdoutMonitor(stream(), 100).run()

    def test_read_failure(self):
        with pytest.raises(ProcessError, match="pipe broke"):
            StdoutMonitor(BrokenReader(), 100).run()

    def test_monitor_releases_reader(self):
        monitor = StdoutMonitor(stream(*HAPPY), 100)
        monitor.run()
        with pytest.raises(ProcessError):
            monitor.run()


class TestRunInto:
    def test_success_outcome(self):
        reader = stream(*HAPPY)
        sink = queue.Queue()
        StdoutMonitor(reader, 100).run_into(sink)
        outcome = sink.get_nowait()
        assert outcome.ready
        assert outcome.reader is reader

    def test_failure_outcome(self):
        sink = queue.Queue()
        StdoutMonitor(stream("hi\n"), 100).run_into(sink)
        outcome = sink.get_nowait()
        assert not outcome.ready
        assert isinstance(outcome.error, InvalidLogLine)
        assert sink.empty()
