# executor.py

import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    exit_ok: bool
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None
    timed_out: bool = False


def execute_script(script_path: str, timeout: Optional[float] = None, cwd: Optional[str] = None) -> ExecutionResult:
    """
    Runs a deploy script through the shell and captures stdout and stderr in full.

    The script runs in its own process group. With timeout=None the call blocks until
    the script exits, however long that takes; when a timeout expires the whole group
    is killed, including anything the script started in the background.
    Failures are returned as an ExecutionResult with exit_ok=False, never raised.
    """
    logger.info(f"Executing deploy script: {script_path}" + (f" in {cwd}" if cwd else ""))
    try:
        proc = subprocess.Popen(
            script_path,
            cwd=cwd,
            shell=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            start_new_session=True
        )
    except OSError as e:
        logger.error(f"Could not start deploy script {script_path}: {e}")
        return ExecutionResult(exit_ok=False, stderr=str(e))

    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.error(f"Deploy script timed out after {timeout} seconds: {script_path}")
        _kill_process_group(proc)
        stdout, stderr = proc.communicate()
        return ExecutionResult(
            exit_ok=False,
            stdout=stdout or "",
            stderr=stderr or "",
            returncode=proc.returncode,
            timed_out=True
        )

    # Captured output is returned untouched; only the log lines are trimmed.
    out_log = stdout.strip()
    err_log = stderr.strip()

    if proc.returncode != 0:
        logger.error(f"Deploy script failed (exit {proc.returncode}): {script_path}\nstdout: {out_log}\nstderr: {err_log}")
        return ExecutionResult(exit_ok=False, stdout=stdout, stderr=stderr, returncode=proc.returncode)

    if out_log:
        logger.info(f"Deploy script output:\n{out_log}")
    else:
        logger.info(f"Deploy script '{script_path}' returned no output.")
    if err_log:
        logger.warning(f"Deploy script error output:\n{err_log}")
    return ExecutionResult(exit_ok=True, stdout=stdout, stderr=stderr, returncode=proc.returncode)


def _kill_process_group(proc: subprocess.Popen):
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug(f"Process group {proc.pid} already exited.")
