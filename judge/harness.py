"""
Test harness for running test cases against a compiled submission.

Provides the TestHarness class which drives the sandbox once per test
case and applies checker functions to validate the captured output.
"""

import math
import time
import logging
from typing import Dict, List, Callable, Any, Sequence

from .models import (
    Artifact,
    EngineConfig,
    ExecutionResult,
    SuiteVerdict,
    TestCase,
    TestOutcome,
    ENGINE_FAULT,
    ENGINE_FAULT_MESSAGE,
)
from .sandbox import execute

logger = logging.getLogger(__name__)


# ===== CHECKER FUNCTIONS =====

def exact_match(actual_output: Any, expected_output: Any) -> bool:
    """
    Default checker: exact string equality after trimming whitespace.

    Args:
        actual_output: Output captured from the submission
        expected_output: Expected output from the test case

    Returns:
        True if outputs match exactly (after strip)
    """
    return str(actual_output).strip() == str(expected_output).strip()


def float_isclose(actual_output: Any, expected_output: Any) -> bool:
    """
    Checker for floating-point numbers with tolerance.

    Uses math.isclose with rel_tol=1e-6 and abs_tol=1e-8, so "20.0"
    matches "20". Falls back to exact_match for non-numeric output.
    """
    try:
        actual_float = float(str(actual_output).strip())
        expected_float = float(str(expected_output).strip())
    except (ValueError, TypeError):
        return exact_match(actual_output, expected_output)
    return math.isclose(actual_float, expected_float, rel_tol=1e-6, abs_tol=1e-8)


def unordered_list_equal(actual_output: Any, expected_output: Any) -> bool:
    """Checker for whitespace-separated values where order does not matter."""
    actual_list = sorted(str(actual_output).split())
    expected_list = sorted(str(expected_output).split())
    return actual_list == expected_list


CHECKERS: Dict[str, Callable[[Any, Any], bool]] = {
    "exact_match": exact_match,
    "float_isclose": float_isclose,
    "unordered_list_equal": unordered_list_equal,
}


def get_checker(name: str) -> Callable[[Any, Any], bool]:
    checker = CHECKERS.get(name)
    if checker is None:
        logger.warning("Unknown checker '%s', falling back to exact_match", name)
        return exact_match
    return checker


def convert_inputs(inputs: Sequence[Any]) -> List[str]:
    """Convert test inputs to the argument strings handed to the entry point."""
    return [str(value) for value in inputs or ()]


class TestHarness:
    """Runs a suite of test cases against one artifact."""
    __test__ = False

    def __init__(self, config: EngineConfig = None, runner: Callable[..., ExecutionResult] = execute):
        """
        Args:
            config: Engine configuration (deadline, limits, checker)
            runner: Function executing one test; defaults to the sandbox
        """
        self.config = config or EngineConfig.default()
        self.checker = get_checker(self.config.checker)
        self._runner = runner

    def run_suite(
        self,
        artifact: Artifact,
        entry_name: str,
        test_cases: Sequence[TestCase]
    ) -> SuiteVerdict:
        """
        Run every test case in order and return the verdict.

        A failing or crashing test case does not stop the suite. An engine
        fault fails the current and all remaining test cases without
        executing them.
        """
        outcomes: List[TestOutcome] = []
        engine_fault = None

        for i, test_case in enumerate(test_cases, start=1):
            if engine_fault is not None:
                outcomes.append(TestOutcome(test_case, False, diagnostic=engine_fault))
                continue

            start_time = time.monotonic()
            result = self._runner(
                artifact,
                entry_name,
                convert_inputs(test_case.inputs),
                self.config.timeout_sec,
                self.config.memory_limit_mb,
                self.config.max_output_chars
            )
            elapsed_ms = int((time.monotonic() - start_time) * 1000)

            if result.error is not None:
                if result.error.kind == ENGINE_FAULT:
                    engine_fault = f"{ENGINE_FAULT_MESSAGE} ({result.error.message})"
                    diagnostic = engine_fault
                else:
                    diagnostic = result.error.message
                logger.debug("Test %d: %s", i, result.error.kind)
                outcomes.append(TestOutcome(
                    test_case, False, diagnostic=diagnostic, elapsed_ms=elapsed_ms
                ))
                continue

            outcomes.append(self._compare(test_case, result.output, elapsed_ms))
            logger.debug("Test %d: %s", i, "passed" if outcomes[-1].passed else "failed")

        verdict = SuiteVerdict(outcomes=tuple(outcomes))
        logger.info("%s: %d/%d tests passed", entry_name, verdict.passed_count, verdict.total_count)
        return verdict

    def _compare(self, test_case: TestCase, actual_output: str, elapsed_ms: int) -> TestOutcome:
        expected = str(test_case.expected_output)
        if self.checker(actual_output, expected):
            return TestOutcome(test_case, True, actual_output=actual_output, elapsed_ms=elapsed_ms)
        diagnostic = f"Expected: {expected.strip()}\nActual: {actual_output.strip()}"
        return TestOutcome(
            test_case, False, actual_output=actual_output,
            diagnostic=diagnostic, elapsed_ms=elapsed_ms
        )


def failed_verdict(test_cases: Sequence[TestCase], message: str = ENGINE_FAULT_MESSAGE) -> SuiteVerdict:
    """Verdict in which every test case failed with the same message."""
    return SuiteVerdict(outcomes=tuple(
        TestOutcome(test_case, False, diagnostic=message) for test_case in test_cases
    ))


# ===== FORMATTING =====

def format_verdict(verdict: SuiteVerdict, show_details: bool = False) -> str:
    """
    Format a verdict for display to the learner.

    Args:
        verdict: Verdict returned by the engine
        show_details: If True, show diagnostics for failed tests

    Returns:
        Formatted string for terminal display
    """
    lines = [f"Running {verdict.total_count} tests..."]

    for num, outcome in enumerate(verdict.outcomes, start=1):
        test_case = outcome.test_case
        label = test_case.description if test_case.visible else "hidden test"
        if outcome.passed:
            lines.append(f"  Test {num} ({label}): PASSED ({outcome.elapsed_ms} ms)")
            continue

        lines.append(f"  Test {num} ({label}): FAILED")
        if show_details and outcome.diagnostic:
            if test_case.visible:
                if test_case.inputs:
                    lines.append(f"    Inputs: {list(test_case.inputs)}")
                for detail in outcome.diagnostic.splitlines():
                    lines.append(f"    {detail[:200]}")
            elif not outcome.diagnostic.startswith("Expected:"):
                lines.append(f"    {outcome.diagnostic.splitlines()[0][:200]}")

    lines.append("")
    lines.append(f"Result: {verdict.passed_count}/{verdict.total_count} tests passed")
    return "\n".join(lines)
