"""
Tests for harness module.

Tests suite execution and output validation including:
- Ordering and tallying of outcomes
- Failure diagnostics
- Per-test errors not aborting the suite
- Engine faults failing the remaining tests
- Checker functions and verdict formatting
"""

import pytest
from unittest.mock import Mock
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from judge.harness import (
    TestHarness,
    exact_match,
    float_isclose,
    unordered_list_equal,
    get_checker,
    convert_inputs,
    failed_verdict,
    format_verdict,
)
from judge.models import (
    Artifact,
    EngineConfig,
    ExecutionError,
    ExecutionResult,
    TestCase,
    TestOutcome,
    SuiteVerdict,
    TIMEOUT,
    RUNTIME_ERROR,
    ENGINE_FAULT,
    ENGINE_FAULT_MESSAGE,
)


ARTIFACT = Artifact(entry_name="main", payloads={"main": b""})


def ok(output):
    return ExecutionResult(output=output)


def err(kind, message):
    return ExecutionResult(error=ExecutionError(kind, message))


def cases(*expected):
    return [TestCase(f"case {i}", (i,), e) for i, e in enumerate(expected, start=1)]


class TestRunSuite:
    """Test suite execution with a stubbed sandbox."""

    def test_all_pass(self):
        runner = Mock(side_effect=[ok("1"), ok("2")])
        harness = TestHarness(runner=runner)

        verdict = harness.run_suite(ARTIFACT, "main", cases("1", "2"))

        assert verdict.passed_count == 2
        assert verdict.total_count == 2
        assert verdict.all_passed
        assert all(o.diagnostic is None for o in verdict.outcomes)

    def test_outcomes_keep_submission_order(self):
        """Outcome i belongs to test case i; only the mismatching one fails."""
        test_cases = cases("a", "b", "c")
        runner = Mock(side_effect=[ok("a"), ok("x"), ok("c")])

        verdict = TestHarness(runner=runner).run_suite(ARTIFACT, "main", test_cases)

        assert [o.test_case for o in verdict.outcomes] == test_cases
        assert [o.passed for o in verdict.outcomes] == [True, False, True]
        assert verdict.passed_count == 2

    def test_failure_diagnostic_contains_expected_and_actual(self):
        runner = Mock(return_value=ok("30"))

        verdict = TestHarness(runner=runner).run_suite(ARTIFACT, "main", cases("31"))

        outcome = verdict.outcomes[0]
        assert not outcome.passed
        assert outcome.actual_output == "30"
        assert "30" in outcome.diagnostic
        assert "31" in outcome.diagnostic

    def test_comparison_trims_whitespace(self):
        runner = Mock(return_value=ok("  hello \n"))

        verdict = TestHarness(runner=runner).run_suite(ARTIFACT, "main", cases("hello"))

        assert verdict.outcomes[0].passed

    def test_runtime_error_does_not_abort_suite(self):
        """A crashing test case fails alone; later cases still run."""
        runner = Mock(side_effect=[err(RUNTIME_ERROR, "ValueError: bad"), ok("2")])

        verdict = TestHarness(runner=runner).run_suite(ARTIFACT, "main", cases("1", "2"))

        assert runner.call_count == 2
        assert verdict.outcomes[0].diagnostic == "ValueError: bad"
        assert verdict.outcomes[1].passed

    def test_timeout_fails_single_case(self):
        runner = Mock(side_effect=[ok("1"), err(TIMEOUT, "Time limit exceeded (2s)")])

        verdict = TestHarness(runner=runner).run_suite(ARTIFACT, "main", cases("1", "2"))

        assert verdict.outcomes[0].passed
        assert not verdict.outcomes[1].passed
        assert "Time limit" in verdict.outcomes[1].diagnostic

    def test_engine_fault_fails_remaining_cases(self):
        """After an engine fault the remaining cases fail without running."""
        runner = Mock(side_effect=[ok("1"), err(ENGINE_FAULT, "Entry point 'main' not found")])

        verdict = TestHarness(runner=runner).run_suite(ARTIFACT, "main", cases("1", "2", "3", "4"))

        assert runner.call_count == 2
        assert [o.passed for o in verdict.outcomes] == [True, False, False, False]
        for outcome in verdict.outcomes[1:]:
            assert outcome.diagnostic.startswith(ENGINE_FAULT_MESSAGE)

    def test_inputs_converted_and_config_passed(self):
        config = EngineConfig(time_limit_ms=1500, memory_limit_mb=64, checker="exact_match", max_output_chars=100)
        runner = Mock(return_value=ok("x"))
        test_case = TestCase("args", (1, 2.5, "s"), "x")

        TestHarness(config, runner=runner).run_suite(ARTIFACT, "main", [test_case])

        runner.assert_called_once_with(ARTIFACT, "main", ["1", "2.5", "s"], 1.5, 64, 100)

    def test_empty_suite(self):
        verdict = TestHarness(runner=Mock()).run_suite(ARTIFACT, "main", [])

        assert verdict.total_count == 0
        assert verdict.passed_count == 0

    def test_configured_checker(self):
        config = EngineConfig.default()
        config.checker = "float_isclose"
        runner = Mock(return_value=ok("20.0"))

        verdict = TestHarness(config, runner=runner).run_suite(ARTIFACT, "main", cases("20"))

        assert verdict.outcomes[0].passed

    def test_default_comparison_does_not_normalise_numbers(self):
        runner = Mock(return_value=ok("20.0"))

        verdict = TestHarness(runner=runner).run_suite(ARTIFACT, "main", cases("20"))

        assert not verdict.outcomes[0].passed


class TestCheckers:
    """Test checker functions."""

    def test_exact_match(self):
        assert exact_match("abc\n", "abc")
        assert not exact_match("abc", "abd")

    def test_exact_match_is_case_sensitive(self):
        assert not exact_match("Hello", "hello")

    def test_float_isclose(self):
        assert float_isclose("0.30000000000000004", "0.3")
        assert not float_isclose("0.31", "0.3")

    def test_float_isclose_non_numeric_falls_back(self):
        assert float_isclose("abc", "abc")
        assert not float_isclose("abc", "1.0")

    def test_unordered_list_equal(self):
        assert unordered_list_equal("3 1 2", "1 2 3")
        assert not unordered_list_equal("1 2", "1 2 3")

    def test_unknown_checker_falls_back(self):
        assert get_checker("nope") is exact_match

    def test_convert_inputs(self):
        assert convert_inputs((1, True, "x")) == ["1", "True", "x"]
        assert convert_inputs(None) == []


class TestFormatting:
    """Test verdict formatting."""

    def _verdict(self):
        visible = TestCase("adds numbers", (1, 2), "3")
        hidden = TestCase("secret", (5, 5), "10", visible=False)
        return SuiteVerdict(outcomes=(
            TestOutcome(visible, False, "4", "Expected: 3\nActual: 4"),
            TestOutcome(hidden, False, "11", "Expected: 10\nActual: 11"),
        ))

    def test_summary_line(self):
        text = format_verdict(self._verdict())

        assert "Result: 0/2 tests passed" in text
        assert "Expected" not in text

    def test_details_for_visible_tests(self):
        text = format_verdict(self._verdict(), show_details=True)

        assert "Expected: 3" in text
        assert "Inputs: [1, 2]" in text

    def test_hidden_tests_do_not_leak(self):
        text = format_verdict(self._verdict(), show_details=True)

        assert "secret" not in text
        assert "Expected: 10" not in text
        assert "hidden test" in text

    def test_failed_verdict(self):
        verdict = failed_verdict(cases("1", "2"))

        assert verdict.passed_count == 0
        assert all(o.diagnostic == ENGINE_FAULT_MESSAGE for o in verdict.outcomes)
