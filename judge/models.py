"""
Data models for submissions, test cases and validation results.

Provides type-safe structures for SourceUnit, Artifact, TestCase,
TestOutcome, SuiteVerdict and the engine configuration.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Mapping, Tuple


# Execution error kinds, shared by the sandbox and the harness
TIMEOUT = "timeout"
RUNTIME_ERROR = "runtime_error"
MEMORY_ERROR = "memory_error"
ENGINE_FAULT = "engine_fault"

ENGINE_FAULT_MESSAGE = "Internal error: the submission could not be executed"


@dataclass(frozen=True)
class SourceUnit:
    """One submitted program: the entry point name and its source text."""
    entry_name: str
    source_text: str


@dataclass(frozen=True)
class Diagnostic:
    """A line-tagged compiler message."""
    line: int  # 1-based
    message: str

    def __str__(self) -> str:
        return f"Line {self.line}: {self.message}"


@dataclass(frozen=True)
class Artifact:
    """Compiled, loadable form of a SourceUnit (symbol name -> payload)."""
    entry_name: str
    payloads: Mapping[str, bytes]

    def payload(self) -> bytes:
        return self.payloads[self.entry_name]


@dataclass(frozen=True)
class CompilationResult:
    """Either an artifact or a non-empty list of diagnostics."""
    artifact: Optional[Artifact] = None
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def success(self) -> bool:
        return self.artifact is not None

    def format_errors(self) -> str:
        return "\n".join(str(d) for d in self.diagnostics)


@dataclass(frozen=True)
class TestCase:
    """A single test case supplied by lesson content."""
    __test__ = False  # not a pytest class

    description: str
    inputs: Tuple[Any, ...] = ()
    expected_output: str = ""
    visible: bool = True

    @staticmethod
    def from_dict(data: dict) -> 'TestCase':
        """Create a TestCase from a dictionary."""
        return TestCase(
            description=data.get('description', ''),
            inputs=tuple(data.get('inputs') or ()),
            expected_output=str(data.get('expected_output', '')),
            visible=data.get('visible', True)
        )


@dataclass(frozen=True)
class ExecutionError:
    """Why a single execution did not produce output."""
    kind: str  # one of TIMEOUT, RUNTIME_ERROR, MEMORY_ERROR, ENGINE_FAULT
    message: str


@dataclass(frozen=True)
class ExecutionResult:
    """Result of one sandboxed execution: captured output or an error."""
    output: Optional[str] = None
    error: Optional[ExecutionError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TestOutcome:
    """Result of running one TestCase."""
    __test__ = False

    test_case: TestCase
    passed: bool
    actual_output: Optional[str] = None
    diagnostic: Optional[str] = None
    elapsed_ms: int = 0


@dataclass(frozen=True)
class SuiteVerdict:
    """Aggregated outcomes; the counts are always derived from `outcomes`."""
    outcomes: Tuple[TestOutcome, ...] = ()

    @property
    def passed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.passed)

    @property
    def total_count(self) -> int:
        return len(self.outcomes)

    @property
    def all_passed(self) -> bool:
        return self.passed_count == self.total_count


@dataclass(frozen=True)
class ValidationResult:
    """Either a SuiteVerdict (compiled) or compile diagnostics."""
    verdict: Optional[SuiteVerdict] = None
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def success(self) -> bool:
        return self.verdict is not None


@dataclass
class EngineConfig:
    """
    Configuration for the validation engine.

    Attributes:
        time_limit_ms: Wall-clock deadline for a single execution
        memory_limit_mb: Address space limit for the child process (Unix only)
        checker: Name of the output checker used to compare results
        max_output_chars: Captured output beyond this length is truncated
    """
    time_limit_ms: int
    memory_limit_mb: int
    checker: str
    max_output_chars: int

    @staticmethod
    def from_dict(data: dict) -> 'EngineConfig':
        """Create EngineConfig from dictionary."""
        return EngineConfig(
            time_limit_ms=int(data.get('time_limit_ms', 2000)),
            memory_limit_mb=int(data.get('memory_limit_mb', 256)),
            checker=data.get('checker') or 'exact_match',
            max_output_chars=int(data.get('max_output_chars', 65536))
        )

    def validate(self) -> tuple[bool, str]:
        """
        Validate configuration consistency.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if self.time_limit_ms < 1 or self.time_limit_ms > 60000:
            return False, f"time_limit_ms must be between 1 and 60000, got {self.time_limit_ms}"

        if self.memory_limit_mb < 16:
            return False, f"memory_limit_mb must be at least 16, got {self.memory_limit_mb}"

        if self.max_output_chars < 1:
            return False, "max_output_chars must be positive"

        return True, ""

    @property
    def timeout_sec(self) -> float:
        return self.time_limit_ms / 1000.0

    @staticmethod
    def default() -> 'EngineConfig':
        """Return default configuration."""
        return EngineConfig(
            time_limit_ms=2000,
            memory_limit_mb=256,
            checker='exact_match',
            max_output_chars=65536
        )


@dataclass
class Challenge:
    """A coding challenge: starter code plus the test cases that validate it."""
    id: str
    title: str
    entry_name: str
    tests: List[TestCase]
    description: str = ""
    starter_code: str = ""
    time_limit_ms: Optional[int] = None
    checker: Optional[str] = None
    hints: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: dict) -> 'Challenge':
        """Create a Challenge object from a dictionary."""
        return Challenge(
            id=data['id'],
            title=data['title'],
            entry_name=data['entry_name'],
            tests=[TestCase.from_dict(t) for t in data['tests']],
            description=data.get('description', ''),
            starter_code=data.get('starter_code', ''),
            time_limit_ms=data.get('time_limit_ms'),
            checker=data.get('checker'),
            hints=list(data.get('hints') or [])
        )

    def visible_tests(self) -> List[TestCase]:
        """Return the test cases shown to the learner before running."""
        return [t for t in self.tests if t.visible]

    def apply_overrides(self, config: EngineConfig) -> EngineConfig:
        """
        Return a copy of `config` with this challenge's limits applied.

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        data: Dict[str, Any] = {
            'time_limit_ms': config.time_limit_ms if self.time_limit_ms is None else self.time_limit_ms,
            'memory_limit_mb': config.memory_limit_mb,
            'checker': self.checker or config.checker,
            'max_output_chars': config.max_output_chars,
        }
        try:
            overridden = EngineConfig.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid challenge limits: {e}")

        is_valid, error_message = overridden.validate()
        if not is_valid:
            raise ValueError(f"Invalid challenge limits: {error_message}")
        return overridden
