"""
In-memory compiler for learner submissions.

Turns a SourceUnit into an Artifact holding the marshalled module code
object, or into a list of line-tagged diagnostics. Nothing is written to
disk and no state is kept between calls.
"""

import ast
import logging
import marshal
from types import MappingProxyType

from .models import Artifact, CompilationResult, Diagnostic, SourceUnit

logger = logging.getLogger(__name__)


def source_filename(entry_name: str) -> str:
    """Pseudo filename used for code objects compiled from a submission."""
    return f"<{entry_name}>"


class Compiler:
    """Compiles submissions to loadable artifacts."""

    def compile(self, entry_name: str, source_text: str) -> CompilationResult:
        """
        Compile source text in memory.

        Args:
            entry_name: Name of the top-level symbol the program exposes
            source_text: The learner's source code

        Returns:
            CompilationResult with an artifact on success, or diagnostics
        """
        filename = source_filename(entry_name)

        try:
            tree = ast.parse(source_text, filename=filename, mode="exec")
            code = compile(tree, filename, "exec", dont_inherit=True)
            payload = marshal.dumps(code)
        except SyntaxError as e:
            # IndentationError and TabError are SyntaxError subclasses
            diagnostic = Diagnostic(
                line=self._clamp_line(e.lineno, source_text),
                message=e.msg or "invalid syntax"
            )
            logger.debug("Compilation of %s failed: %s", entry_name, diagnostic)
            return CompilationResult(diagnostics=(diagnostic,))
        except ValueError as e:
            # e.g. source containing null bytes
            diagnostic = Diagnostic(line=1, message=str(e))
            logger.debug("Compilation of %s failed: %s", entry_name, diagnostic)
            return CompilationResult(diagnostics=(diagnostic,))
        except (RecursionError, MemoryError):
            diagnostic = Diagnostic(line=1, message="Source too deeply nested or too large to compile")
            logger.debug("Compilation of %s failed: %s", entry_name, diagnostic)
            return CompilationResult(diagnostics=(diagnostic,))

        payloads = {entry_name: payload}
        logger.debug("Compiled %s (%d bytes)", entry_name, len(payloads[entry_name]))
        return CompilationResult(
            artifact=Artifact(entry_name=entry_name, payloads=MappingProxyType(payloads))
        )

    def compile_unit(self, unit: SourceUnit) -> CompilationResult:
        return self.compile(unit.entry_name, unit.source_text)

    @staticmethod
    def _clamp_line(lineno, source_text: str) -> int:
        if not lineno or lineno < 1:
            return 1
        line_count = max(1, len(source_text.splitlines()))
        return min(lineno, line_count)


def compile_source(entry_name: str, source_text: str) -> CompilationResult:
    """Compile with a throwaway Compiler instance."""
    return Compiler().compile(entry_name, source_text)
