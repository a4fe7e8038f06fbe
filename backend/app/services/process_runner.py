"""
Process Runner

Runs a command line through the host shell with a deadline and turns every
outcome into text:

    success, some output   -> stdout + stderr
    success, no output     -> "No output"
    non-zero exit          -> "Command failed: <cmd>\\n<stderr>"
    spawn error / timeout  -> description of the failure

Nothing is raised to the caller. At most MAX_CONCURRENT_PROCESSES commands run
at once; further calls wait for a slot. A started run cannot be cancelled by
the caller, only by its own timeout.
"""

import asyncio
import os
import signal
import time
from typing import Optional, Set

from app.core.config import settings
from app.core.exceptions import ProcessExecutionError, ProcessTimeoutError
from app.core.logging_config import logger


NO_OUTPUT = "No output"

_POSIX = os.name == "posix"


class RunHandle:
    """
    A command started in the background.

    The handle can be polled or awaited but exposes no way to abort the run.
    """

    def __init__(self, command: str, task: "asyncio.Task[str]"):
        self.command = command
        self._task = task

    def done(self) -> bool:
        return self._task.done()

    async def result(self) -> str:
        # Shielded so a cancelled waiter does not kill the process
        return await asyncio.shield(self._task)


class ProcessRunner:
    """Shell command execution with timeout and a concurrency cap."""

    def __init__(self, max_concurrency: Optional[int] = None, cwd: Optional[str] = None):
        self.max_concurrency = max_concurrency or settings.MAX_CONCURRENT_PROCESSES
        self.cwd = cwd
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self._active: Set["asyncio.Task[str]"] = set()

    @property
    def active_count(self) -> int:
        return len(self._active)

    def start(self, command: str, timeout_ms: int) -> RunHandle:
        """Start `command` in the background and return its handle."""
        task = asyncio.create_task(self.run(command, timeout_ms))
        self._active.add(task)
        task.add_done_callback(self._active.discard)
        return RunHandle(command, task)

    async def run(self, command: str, timeout_ms: int) -> str:
        """Run `command` and return its output or a failure description."""
        async with self._semaphore:
            start_time = time.perf_counter()
            outcome = "ok"
            try:
                output = await self._execute(command, timeout_ms)
            except ProcessTimeoutError as e:
                outcome = "timeout"
                output = e.message
            except ProcessExecutionError as e:
                outcome = "failed"
                output = e.message

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.log_command(command, duration_ms, outcome)
            return output

    async def _execute(self, command: str, timeout_ms: int) -> str:
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                # Own process group so a timeout takes the whole pipeline down
                start_new_session=_POSIX,
            )
        except OSError as e:
            raise ProcessExecutionError(f"Failed to start command: {e}", command)

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            raise ProcessTimeoutError(command, timeout_ms)
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        out = stdout.decode("utf-8", errors="replace") if stdout else ""
        err = stderr.decode("utf-8", errors="replace") if stderr else ""

        if process.returncode != 0:
            detail = err or out
            raise ProcessExecutionError(
                f"Command failed: {command}" + (f"\n{detail}" if detail else ""),
                command
            )

        combined = out + err
        return combined if combined else NO_OUTPUT

    async def _kill(self, process: asyncio.subprocess.Process):
        try:
            if _POSIX:
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            logger.warning(f"[ProcessRunner] Process {process.pid} did not exit after kill")
