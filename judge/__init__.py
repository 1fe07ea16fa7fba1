"""
Learner Code Validation Engine

This package contains the core components for checking learner code:
- models: Data structures for submissions, test cases and verdicts
- compiler: In-memory compilation to loadable artifacts
- sandbox: Isolated, deadline-bounded execution
- harness: Test case execution and output validation
- engine: The validate() facade used by UI and CLI layers
"""

from .engine import ValidationEngine, validate
from .models import (
    Diagnostic,
    EngineConfig,
    SourceUnit,
    SuiteVerdict,
    TestCase,
    TestOutcome,
    ValidationResult,
)

__version__ = "1.0.0"

__all__ = [
    "Diagnostic",
    "EngineConfig",
    "SourceUnit",
    "SuiteVerdict",
    "TestCase",
    "TestOutcome",
    "ValidationEngine",
    "ValidationResult",
    "validate",
]
