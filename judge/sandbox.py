"""
Isolated sandbox for executing compiled submissions with resource limits.

Every execution runs in a fresh child interpreter (isolated mode, no
bytecode written, unbuffered UTF-8 stdio). The compiled artifact is
streamed over the child's stdin, so nothing touches the disk. The child's
standard output pipe is the capture: every byte written to file
descriptor 1, by print(), os.write() or a subprocess, reaches the host
untouched, and the host's own stdout is never redirected. The child
reports errors as a JSON line on stderr; that report can only turn a
run into a failure, never change the captured output.
Unix: the child applies CPU time and address space limits to itself and
runs in its own session, so a timeout kills its whole process group.
All platforms: a wall-clock deadline, after which the child and its
descendants are killed.
"""

import os
import sys
import json
import base64
import signal
import logging
import shutil
import subprocess
import textwrap
from typing import List, Optional, Sequence

import psutil

from .compiler import source_filename
from .models import (
    Artifact,
    ExecutionError,
    ExecutionResult,
    TIMEOUT,
    RUNTIME_ERROR,
    MEMORY_ERROR,
    ENGINE_FAULT,
    ENGINE_FAULT_MESSAGE,
)

logger = logging.getLogger(__name__)

# Time allowed for reaping the child once it has been killed
REAP_TIMEOUT_SEC = 1.0

POSIX = os.name == 'posix'


# Runs inside the child. Reads one JSON request from stdin; on failure
# writes one JSON report as the last line of stderr.
BOOTSTRAP = textwrap.dedent(
    """
    import base64, io, json, marshal, sys, traceback

    request = json.loads(sys.stdin.read())
    entry_name = request["entry_name"]
    filename = request["filename"]
    _report = sys.stderr

    def _reply(**report):
        try:
            _report.write("\\n" + json.dumps(report) + "\\n")
            _report.flush()
        except (OSError, ValueError):
            pass

    try:
        import resource
        cpu = request["cpu_seconds"]
        resource.setrlimit(resource.RLIMIT_CPU, (cpu, cpu))
        memory = request["memory_bytes"]
        resource.setrlimit(resource.RLIMIT_AS, (memory, memory))
    except (ImportError, ValueError, OSError):
        pass

    try:
        code = marshal.loads(base64.b64decode(request["payload"]))
    except Exception:
        _reply(status="engine_fault", message="Artifact could not be loaded")
        sys.exit(0)

    def _describe(exc):
        message = type(exc).__name__
        if str(exc):
            message += ": " + str(exc)
        line = None
        for frame in traceback.extract_tb(exc.__traceback__):
            if frame.filename == filename:
                line = frame.lineno
        if line:
            message += " (line %d)" % line
        return message

    args = [str(a) for a in request["args"]]
    namespace = {"__name__": "__submission__", "__builtins__": __builtins__}
    sys.argv = [entry_name] + args
    sys.stdin = io.StringIO("")
    status, message = "success", ""

    try:
        exec(code, namespace)
        entry = namespace.get(entry_name)
        if isinstance(entry, type):
            entry = getattr(entry, "main", None)
            call_args = [args]
        else:
            call_args = args
        if not callable(entry):
            status = "engine_fault"
            message = "Entry point '%s' not found" % entry_name
        else:
            entry(*call_args)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            status, message = "runtime_error", "SystemExit: %s" % exc.code
    except MemoryError:
        status, message = "memory_error", "Memory limit exceeded"
    except BaseException as exc:
        status, message = "runtime_error", _describe(exc)

    try:
        sys.stdout.flush()
    except Exception:
        pass
    _reply(status=status, message=message)
    """
)


def _interpreter_command() -> Optional[List[str]]:
    """Command line for a child interpreter running the bootstrap."""
    python = sys.executable
    if getattr(sys, 'frozen', False):
        # Inside a bundled executable sys.executable is the bundle itself
        python = shutil.which('python3') or shutil.which('python')
    if not python:
        return None
    return [python, '-I', '-B', '-u', '-X', 'utf8', '-c', BOOTSTRAP]


def _build_request(
    artifact: Artifact,
    entry_name: str,
    args: Sequence[str],
    timeout_sec: float,
    memory_limit_mb: int
) -> bytes:
    request = {
        "entry_name": entry_name,
        "filename": source_filename(artifact.entry_name),
        "payload": base64.b64encode(artifact.payload()).decode('ascii'),
        "args": list(args),
        "cpu_seconds": int(timeout_sec) + 1,
        "memory_bytes": memory_limit_mb * 1024 * 1024,
    }
    return json.dumps(request).encode('utf-8')


def _kill_process_tree(proc: subprocess.Popen) -> None:
    """
    Kill the child and everything it spawned, then reap it.

    Descendants that stay in the child's session die with its process
    group; ones that escaped it are found through psutil. Reaping is
    bounded, so a survivor holding the pipes open cannot block the host.
    """
    try:
        children = psutil.Process(proc.pid).children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    if POSIX:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass

    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
    psutil.wait_procs(children, timeout=REAP_TIMEOUT_SEC)

    proc.kill()
    try:
        proc.communicate(timeout=REAP_TIMEOUT_SEC)
    except subprocess.TimeoutExpired:
        logger.warning("Sandbox pipes still held open after kill; closing them")
        for stream in (proc.stdin, proc.stdout, proc.stderr):
            if stream is not None:
                stream.close()
        proc.wait(timeout=REAP_TIMEOUT_SEC)


def _parse_envelope(text: str) -> Optional[dict]:
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return None
    try:
        envelope = json.loads(lines[-1])
    except json.JSONDecodeError:
        return None
    if not isinstance(envelope, dict) or "status" not in envelope:
        return None
    return envelope


def _strip_trailing_newline(output: str) -> str:
    return output[:-1] if output.endswith("\n") else output


def _result_from_process(
    returncode: int,
    stdout: str,
    stderr: str,
    max_output_chars: int = 65536
) -> ExecutionResult:
    envelope = _parse_envelope(stderr)
    status = envelope["status"] if envelope else None

    if status == "success" or (envelope is None and returncode == 0):
        if returncode != 0:
            return ExecutionResult(error=ExecutionError(
                RUNTIME_ERROR, f"Program exited with status {returncode}"
            ))
        return ExecutionResult(output=_strip_trailing_newline(stdout[:max_output_chars]))

    if envelope is None:
        if hasattr(signal, 'SIGXCPU') and returncode == -signal.SIGXCPU:
            return ExecutionResult(error=ExecutionError(TIMEOUT, "Time limit exceeded"))
        if 'MemoryError' in stderr:
            return ExecutionResult(error=ExecutionError(MEMORY_ERROR, "Memory limit exceeded"))
        logger.debug("Child exited with %s and no report; stderr: %s", returncode, stderr[-500:])
        return ExecutionResult(error=ExecutionError(
            RUNTIME_ERROR, "Program terminated unexpectedly"
        ))

    if status == MEMORY_ERROR:
        return ExecutionResult(error=ExecutionError(MEMORY_ERROR, envelope.get("message", "")))
    if status == ENGINE_FAULT:
        logger.warning("Engine fault in child: %s", envelope.get("message"))
        return ExecutionResult(error=ExecutionError(ENGINE_FAULT, envelope.get("message") or ENGINE_FAULT_MESSAGE))
    return ExecutionResult(error=ExecutionError(RUNTIME_ERROR, envelope.get("message") or "Runtime error"))


def execute(
    artifact: Artifact,
    entry_name: str,
    args: Sequence[str],
    timeout_sec: float,
    memory_limit_mb: int = 256,
    max_output_chars: int = 65536
) -> ExecutionResult:
    """
    Run the artifact's entry point once in a fresh child interpreter.

    Args:
        artifact: Compiled submission
        entry_name: Top-level function or class to invoke
        args: Arguments passed to the entry point (strings)
        timeout_sec: Wall-clock deadline in seconds
        memory_limit_mb: Memory limit in MB (Unix only)
        max_output_chars: Captured output is truncated to this length

    Returns:
        ExecutionResult with the captured output (one trailing newline
        removed), or an ExecutionError of kind "timeout",
        "runtime_error", "memory_error" or "engine_fault"
    """
    command = _interpreter_command()
    if command is None:
        logger.error("Python executable not found for the sandbox")
        return ExecutionResult(error=ExecutionError(ENGINE_FAULT, ENGINE_FAULT_MESSAGE))

    request = _build_request(artifact, entry_name, args, timeout_sec, memory_limit_mb)

    try:
        proc = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=POSIX
        )
    except OSError as e:
        logger.error("Could not start sandbox interpreter: %s", e)
        return ExecutionResult(error=ExecutionError(ENGINE_FAULT, ENGINE_FAULT_MESSAGE))

    try:
        stdout, stderr = proc.communicate(input=request, timeout=timeout_sec)
    except subprocess.TimeoutExpired:
        _kill_process_tree(proc)
        logger.debug("Execution of %s exceeded %.2fs and was killed", entry_name, timeout_sec)
        return ExecutionResult(error=ExecutionError(
            TIMEOUT, f"Time limit exceeded ({timeout_sec:g}s)"
        ))
    except BaseException:
        _kill_process_tree(proc)
        raise

    return _result_from_process(
        proc.returncode,
        stdout.decode('utf-8', errors='replace'),
        stderr.decode('utf-8', errors='replace'),
        max_output_chars
    )
