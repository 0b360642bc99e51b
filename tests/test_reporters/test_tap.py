"""Tests for TapReporter — TAP line emission and counters."""

from __future__ import annotations

import io
import re

import pytest

from pagetap.core.exceptions import ReporterError
from pagetap.reporters import REPORTER_REGISTRY
from pagetap.reporters.base import BaseReporter
from pagetap.reporters.tap import TapReporter


def lines(stream: io.StringIO) -> list[str]:
    return stream.getvalue().splitlines()


class TestRecord:
    def test_pass_line(self, reporter: TapReporter, stream: io.StringIO) -> None:
        n = reporter.record(True, "Homepage loaded")
        assert n == 1
        assert lines(stream) == ["ok 1 Homepage loaded"]

    def test_numbers_are_sequential(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.record(True, "first")
        reporter.record(False, "second")
        reporter.record(True, "third")
        assert lines(stream) == ["ok 1 first", "not ok 2 second", "ok 3 third"]

    def test_fail_with_got_expected(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.record(False, "mismatch", "A", "B")
        assert lines(stream) == ["not ok 1 mismatch", "# \tGot: A", "# \tExpected: B"]

    def test_fail_without_values_has_no_block(
        self, reporter: TapReporter, stream: io.StringIO
    ) -> None:
        reporter.record(False, "open timed out")
        assert lines(stream) == ["not ok 1 open timed out"]

    def test_none_counts_as_supplied(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.record(False, "empty", None, "x")
        assert lines(stream)[1:] == ["# \tGot: None", "# \tExpected: x"]

    def test_pattern_shown_as_regex(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.record(False, "title", "Home", re.compile("^Foo"))
        assert lines(stream)[-1] == "# \tExpected: /^Foo/"

    def test_counters_partition_total(self, reporter: TapReporter) -> None:
        for success in (True, False, True, False, False):
            reporter.record(success, "t")
        counters = reporter.counters
        assert counters.total == 5
        assert counters.passed == 2
        assert counters.failed == 3

    def test_counters_snapshot_is_a_copy(self, reporter: TapReporter) -> None:
        snapshot = reporter.counters
        reporter.record(True, "t")
        assert snapshot.total == 0


class TestDiag:
    def test_single_line(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.diag("Searching for phantom-testlib")
        assert lines(stream) == ["# Searching for phantom-testlib"]

    def test_multi_line(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.diag("one\r\ntwo\nthree")
        assert lines(stream) == ["# one", "# two", "# three"]

    def test_indent(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.diag("console> hi", indent=1)
        assert lines(stream) == ["# \tconsole> hi"]

    def test_diag_does_not_count(self, reporter: TapReporter) -> None:
        reporter.diag("note")
        assert reporter.counters.total == 0


class TestFinish:
    def test_no_tests(self, reporter: TapReporter, stream: io.StringIO) -> None:
        assert reporter.finish() == 0
        assert lines(stream) == ["1..0", "# No tests run!"]

    def test_all_passed(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.record(True, "a")
        reporter.record(True, "b")
        assert reporter.finish() == 0
        assert lines(stream)[-1] == "1..2"

    def test_failures(self, reporter: TapReporter, stream: io.StringIO) -> None:
        reporter.record(True, "a")
        reporter.record(False, "b")
        reporter.record(False, "c")
        assert reporter.finish() != 0
        assert lines(stream)[-2:] == ["1..3", "# Looks like you failed 2 test(s) of 3."]


class TestStream:
    def test_default_stream_is_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        TapReporter().record(True, "to stdout")
        assert capsys.readouterr().out == "ok 1 to stdout\n"

    def test_closed_stream_raises(self) -> None:
        stream = io.StringIO()
        stream.close()
        with pytest.raises(ReporterError, match="Cannot write report line"):
            TapReporter(stream).diag("x")


class TestRegistry:
    def test_tap_registered(self) -> None:
        assert REPORTER_REGISTRY["tap"] is TapReporter
        assert issubclass(TapReporter, BaseReporter)
        assert TapReporter().format_name == "tap"
