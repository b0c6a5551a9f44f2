"""Shared types for external tool execution.

Every helper program the wizard drives (runtime, package installer, service
CLI, container engine, version manager) is launched through ProcessRunner and
reported back as a ProcessResult. Callers that prefer exceptions can call
ProcessResult.raise_for_status().
"""

import shlex
from collections.abc import Sequence
from dataclasses import dataclass

Command = str | Sequence[str]


def normalize_command(command: Command) -> list[str]:
    """Turn a command string or argument sequence into an argv list.

    Strings are split with POSIX shell rules; no shell is involved, so
    callers needing one pass ["bash", "-c", script] explicitly.
    """
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


def format_command(command: Command) -> str:
    """Render a command for log and error messages."""
    if isinstance(command, str):
        return command
    return shlex.join(str(part) for part in command)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a single external tool invocation.

    Attributes:
        success: Whether the process exited with code 0 before the timeout
        exit_code: Exit code, or None if the process never started or timed out
        stdout: Captured standard output
        stderr: Captured standard error
        timed_out: True when the timeout fired; the outcome is unknown and
            the work may still be running in the background
        duration: Wall-clock seconds spent waiting
        command: Rendered command line
    """

    success: bool
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    duration: float = 0.0
    command: str = ""

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for pattern matching."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr

    @property
    def not_found(self) -> bool:
        """True when the executable could not be launched at all."""
        return self.exit_code is None and not self.timed_out

    def raise_for_status(self) -> "ProcessResult":
        """Raise ToolExecutionError unless the invocation succeeded."""
        if not self.success:
            tool_name = self.command.split(" ", 1)[0] or "process"
            if self.timed_out:
                message = f"timed out after {self.duration:.0f}s"
            elif self.not_found:
                raise ToolNotAvailableError(tool_name, self.stderr or None)
            else:
                message = "command failed"
            raise ToolExecutionError(
                tool_name,
                message,
                exit_code=self.exit_code,
                stderr=self.stderr,
            )
        return self


class ToolNotAvailableError(Exception):
    """Raised when a required tool is not installed or accessible."""

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        self.tool_name = tool_name
        self.message = message or f"Tool not available: {tool_name}"
        super().__init__(self.message)


class ToolExecutionError(Exception):
    """Raised when a tool execution fails."""

    def __init__(
        self,
        tool_name: str,
        message: str,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        self.tool_name = tool_name
        self.exit_code = exit_code
        self.stderr = stderr
        full_message = f"Tool execution failed: {tool_name} - {message}"
        if exit_code is not None:
            full_message += f" (exit code: {exit_code})"
        super().__init__(full_message)
