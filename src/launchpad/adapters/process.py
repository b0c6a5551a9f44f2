"""Process runner for external tools.

Two execution modes:
- run(): buffered, for short idempotent queries (status, version)
- run_streaming(): line-by-line with a live status line and a hard timeout,
  for long provisioning actions (installs, service start, schema push)

Child processes are never run in parallel; the runner is used from the
single pipeline thread. Neither mode raises for tool failures: everything is
reported through ProcessResult.
"""

import logging
import os
import shutil
import subprocess
import threading
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import IO, TextIO

from launchpad.adapters.base import (
    Command,
    ProcessResult,
    format_command,
    normalize_command,
)
from launchpad.adapters.status import StatusLine

logger = logging.getLogger(__name__)

LineHandler = Callable[[str], None]


def _to_text(data: str | bytes | None) -> str:
    """Decode output captured by TimeoutExpired, which may be bytes."""
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class ProcessRunner:
    """Launches, monitors and times out external tools.

    Usage:
        runner = ProcessRunner(cwd=project_root)
        version = runner.run(["node", "--version"])
        started = runner.run_streaming(["supabase", "start"], timeout=900)
        if started.timed_out:
            ...  # outcome unknown, may still be running
    """

    def __init__(
        self,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        status_stream: TextIO | None = None,
        status_interval: float = 2.0,
        grace_period: float = 2.0,
        live_status: bool | None = None,
    ) -> None:
        """Initialize process runner.

        Args:
            cwd: Default working directory for commands
            env: Extra environment variables layered over os.environ
            status_stream: Where status lines are drawn (default: stderr)
            status_interval: Seconds between status line refreshes
            grace_period: Seconds to wait for exit after terminate()
            live_status: Force in-place status rendering on or off
        """
        self.cwd = cwd
        self.env = dict(env or {})
        self.status_stream = status_stream
        self.status_interval = status_interval
        self.grace_period = grace_period
        self.live_status = live_status

    def which(self, name: str) -> str | None:
        """Resolve an executable on PATH (PATHEXT-aware on Windows)."""
        return shutil.which(name)

    def _prepare(
        self,
        command: Command,
        cwd: Path | None,
        env: Mapping[str, str] | None,
    ) -> tuple[list[str], Path | None, dict[str, str] | None]:
        argv = normalize_command(command)
        # Resolving argv[0] picks up npm.cmd and friends on Windows
        if argv:
            resolved = shutil.which(argv[0])
            if resolved:
                argv[0] = resolved

        merged_env: dict[str, str] | None = None
        if self.env or env:
            merged_env = {**os.environ, **self.env, **(env or {})}

        return argv, cwd or self.cwd, merged_env

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        timeout: float = 30,
        env: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        """Run a command to completion and capture its output.

        Args:
            command: Command string or argv sequence
            cwd: Working directory (defaults to the runner's)
            timeout: Seconds before the command is abandoned
            env: Extra environment variables

        Returns:
            ProcessResult (never raises for tool failures)
        """
        argv, workdir, merged_env = self._prepare(command, cwd, env)
        rendered = format_command(command)
        logger.debug("Running: %s", rendered)

        started = time.monotonic()
        try:
            completed = subprocess.run(
                argv,
                cwd=workdir,
                env=merged_env,
                capture_output=True,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            logger.debug("Timed out after %ss: %s", timeout, rendered)
            return ProcessResult(
                success=False,
                exit_code=None,
                stdout=_to_text(e.stdout),
                stderr=_to_text(e.stderr),
                timed_out=True,
                duration=time.monotonic() - started,
                command=rendered,
            )
        except (OSError, ValueError) as e:
            logger.debug("Could not start %s: %s", rendered, e)
            return ProcessResult(
                success=False,
                exit_code=None,
                stderr=str(e),
                duration=time.monotonic() - started,
                command=rendered,
            )

        return ProcessResult(
            success=completed.returncode == 0,
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration=time.monotonic() - started,
            command=rendered,
        )

    def run_streaming(
        self,
        command: Command,
        *,
        timeout: float,
        label: str | None = None,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        on_line: LineHandler | None = None,
    ) -> ProcessResult:
        """Run a long command while rendering a live status line.

        Output lines from both pipes feed the stage classifier; the status
        line is redrawn every status_interval seconds even when the tool is
        silent. When the timeout fires the child gets a terminate signal and
        the call returns with timed_out=True after at most grace_period more
        seconds. An interrupt (Ctrl-C) terminates the child the same way and
        is re-raised. It does not retry and does not force-kill: a half-applied
        provisioning action is left for the operator to inspect.

        Args:
            command: Command string or argv sequence
            timeout: Hard limit in seconds
            label: Text shown on the status line (defaults to the command)
            cwd: Working directory (defaults to the runner's)
            env: Extra environment variables
            on_line: Called with every output line, from a reader thread

        Returns:
            ProcessResult (never raises for tool failures)
        """
        argv, workdir, merged_env = self._prepare(command, cwd, env)
        rendered = format_command(command)
        logger.debug("Streaming: %s (timeout %ss)", rendered, timeout)

        started = time.monotonic()
        try:
            proc = subprocess.Popen(
                argv,
                cwd=workdir,
                env=merged_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except (OSError, ValueError) as e:
            logger.debug("Could not start %s: %s", rendered, e)
            return ProcessResult(
                success=False,
                exit_code=None,
                stderr=str(e),
                duration=time.monotonic() - started,
                command=rendered,
            )

        status = StatusLine(
            label or rendered,
            stream=self.status_stream,
            interval=self.status_interval,
            live=self.live_status,
        )
        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        readers = [
            threading.Thread(
                target=self._pump,
                args=(proc.stdout, stdout_lines, status, on_line),
                daemon=True,
            ),
            threading.Thread(
                target=self._pump,
                args=(proc.stderr, stderr_lines, status, on_line),
                daemon=True,
            ),
        ]

        status.start()
        for reader in readers:
            reader.start()

        exit_code: int | None = None
        timed_out = False
        interrupted = False
        try:
            exit_code = proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            self._terminate(proc, rendered, "Timeout reached")
        except BaseException:
            interrupted = True
            self._terminate(proc, rendered, "Interrupted")
            raise
        finally:
            for reader in readers:
                reader.join(timeout=self.grace_period)
            duration = time.monotonic() - started
            if timed_out:
                final = f"⏱  {status.label}: timed out after {duration:.0f}s"
            elif interrupted:
                final = f"⏹  {status.label}: interrupted after {duration:.0f}s"
            elif exit_code == 0:
                final = f"✅ {status.label} ({duration:.0f}s)"
            else:
                final = f"❌ {status.label} failed (exit code {exit_code})"
            status.stop(final)

        return ProcessResult(
            success=exit_code == 0 and not timed_out,
            exit_code=exit_code,
            stdout="".join(list(stdout_lines)),
            stderr="".join(list(stderr_lines)),
            timed_out=timed_out,
            duration=duration,
            command=rendered,
        )

    @staticmethod
    def _pump(
        pipe: IO[str] | None,
        sink: list[str],
        status: StatusLine,
        on_line: LineHandler | None,
    ) -> None:
        """Copy lines from a pipe into sink, feeding the status line."""
        if pipe is None:
            return
        try:
            for line in iter(pipe.readline, ""):
                sink.append(line)
                status.feed(line.rstrip("\n"))
                if on_line is not None:
                    on_line(line.rstrip("\n"))
        except (OSError, ValueError):
            # Pipe closed underneath us after terminate()
            pass
        finally:
            try:
                pipe.close()
            except OSError:
                pass

    def _terminate(self, proc: subprocess.Popen[str], rendered: str, reason: str) -> None:
        """Send terminate and wait briefly; never block past the grace period."""
        logger.warning("%s, terminating: %s", reason, rendered)
        try:
            proc.terminate()
        except OSError as e:
            logger.debug("terminate() failed for %s: %s", rendered, e)
            return
        try:
            proc.wait(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Process did not exit after terminate and may still be running: %s",
                rendered,
            )
