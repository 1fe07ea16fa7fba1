"""
Validation engine: the single entry point for validating a submission.

Compiles the submission, runs the test suite against the artifact and
returns either the verdict or the compile diagnostics. Nothing raised
while running a submission crosses this boundary.
"""

import logging
from typing import Callable, Optional, Sequence

from .compiler import Compiler
from .harness import TestHarness, failed_verdict
from .models import EngineConfig, SourceUnit, TestCase, ValidationResult

logger = logging.getLogger(__name__)


# Submission states
PENDING = "PENDING"
COMPILING = "COMPILING"
COMPILE_FAILED = "COMPILE_FAILED"
COMPILED = "COMPILED"
EXECUTING = "EXECUTING"
EXECUTED = "EXECUTED"


class ValidationEngine:
    """Orchestrates Compiler -> TestHarness for one submission per call."""

    def __init__(self, config: Optional[EngineConfig] = None, harness: Optional[TestHarness] = None):
        self.config = config or EngineConfig.default()
        self.compiler = Compiler()
        self.harness = harness or TestHarness(self.config)

    def validate(
        self,
        source_unit: SourceUnit,
        test_cases: Sequence[TestCase],
        on_state: Optional[Callable[[str], None]] = None
    ) -> ValidationResult:
        """
        Validate a submission against its test cases.

        Args:
            source_unit: The submitted program
            test_cases: Test cases, run in the given order
            on_state: Optional callback receiving each state transition

        Returns:
            ValidationResult holding the SuiteVerdict, or the compile
            diagnostics when compilation failed
        """
        notify = on_state or (lambda state: None)
        test_cases = tuple(test_cases)

        notify(PENDING)
        notify(COMPILING)
        compilation = self.compiler.compile_unit(source_unit)
        if not compilation.success:
            notify(COMPILE_FAILED)
            logger.info("%s: compilation failed", source_unit.entry_name)
            return ValidationResult(diagnostics=compilation.diagnostics)

        notify(COMPILED)
        notify(EXECUTING)
        try:
            verdict = self.harness.run_suite(
                compilation.artifact, source_unit.entry_name, test_cases
            )
        except Exception:
            logger.error("Engine fault while running %s", source_unit.entry_name, exc_info=True)
            verdict = failed_verdict(test_cases)
        notify(EXECUTED)

        return ValidationResult(verdict=verdict)


def validate(
    source_unit: SourceUnit,
    test_cases: Sequence[TestCase],
    config: Optional[EngineConfig] = None
) -> ValidationResult:
    """Validate a submission with a one-off engine."""
    return ValidationEngine(config).validate(source_unit, test_cases)
