"""Heuristics over free-text tool output, and the live status line.

Two independent pieces live here:
- classify_stage() maps a single output line to a coarse Stage
- diagnose_failure() maps a failed ProcessResult to a FailureDiagnosis
  with remediation text

StatusLine renders "label: stage (Ns)" through a rich Console. It is updated
from the process reader threads and re-rendered on a fixed interval, so the
stage and last line are only touched under the instance lock.
"""

import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.live import Live
from rich.text import Text

from launchpad.adapters.base import ProcessResult


class Stage(Enum):
    """Coarse progress stage of a long-running tool."""

    STARTING = "starting"
    PULLING = "pulling images"
    WAITING = "waiting for services"
    HEALTHY = "healthy"
    ERROR = "reporting errors"


# Ordered: the first matching pattern wins, so errors beat everything
STAGE_PATTERNS: list[tuple[re.Pattern[str], Stage]] = [
    (re.compile(r"\b(error|failed|failure|fatal)\b", re.IGNORECASE), Stage.ERROR),
    (
        re.compile(r"\b(pulling|downloading|pull complete|extracting)\b", re.IGNORECASE),
        Stage.PULLING,
    ),
    (re.compile(r"\bwaiting for\b", re.IGNORECASE), Stage.WAITING),
    (
        re.compile(r"\b(healthy|started|is running|ready)\b", re.IGNORECASE),
        Stage.HEALTHY,
    ),
    (
        re.compile(
            r"\b(starting|creating|initiali[sz]ing|applying|seeding|installing)\b",
            re.IGNORECASE,
        ),
        Stage.STARTING,
    ),
]


def classify_stage(line: str) -> Stage | None:
    """Map one line of tool output to a Stage.

    Args:
        line: A single output line

    Returns:
        The matching Stage, or None when the line says nothing recognizable
    """
    for pattern, stage in STAGE_PATTERNS:
        if pattern.search(line):
            return stage
    return None


# =============================================================================
# Failure diagnosis
# =============================================================================


class FailureKind(Enum):
    """Known causes of external tool failures."""

    PORT_CONFLICT = "port_conflict"
    PERMISSION = "permission"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    GENERIC = "generic"


@dataclass(frozen=True)
class FailureDiagnosis:
    """Classified failure with remediation text.

    Attributes:
        kind: Classified cause
        summary: One-line description for the operator
        hint: What the operator can do about it
    """

    kind: FailureKind
    summary: str
    hint: str


FAILURE_PATTERNS: list[tuple[re.Pattern[str], FailureKind, str, str]] = [
    (
        re.compile(
            r"address already in use|port is already allocated|"
            r"ports are not available|EADDRINUSE|bind: address",
            re.IGNORECASE,
        ),
        FailureKind.PORT_CONFLICT,
        "A required network port is already in use.",
        "Stop the process holding the port (or a previous service instance "
        "with `supabase stop`) and retry.",
    ),
    (
        re.compile(r"permission denied|EACCES|operation not permitted", re.IGNORECASE),
        FailureKind.PERMISSION,
        "The command was denied permission.",
        "Check that your user can run the tool (for the container engine, "
        "membership of the docker group) and that the project directory is writable.",
    ),
    (
        re.compile(
            r"cannot connect to the docker daemon|docker daemon is not running|"
            r"is the docker daemon running|error during connect",
            re.IGNORECASE,
        ),
        FailureKind.ENGINE_UNAVAILABLE,
        "The container engine is not reachable.",
        "Start Docker Desktop (or the docker service) and retry.",
    ),
]


def diagnose_failure(result: ProcessResult) -> FailureDiagnosis:
    """Classify a failed invocation into a known cause.

    Args:
        result: The failed process result

    Returns:
        FailureDiagnosis with tailored guidance, or a generic one
    """
    if result.timed_out:
        return FailureDiagnosis(
            kind=FailureKind.TIMEOUT,
            summary=f"`{result.command}` did not finish within {result.duration:.0f}s.",
            hint="It may still be running in the background. Check its status "
            "before retrying; re-running a half-finished step is not always safe.",
        )

    if result.not_found:
        return FailureDiagnosis(
            kind=FailureKind.NOT_FOUND,
            summary=f"`{result.command}` could not be started.",
            hint="Make sure the tool is installed and on your PATH.",
        )

    text = result.output
    for pattern, kind, summary, hint in FAILURE_PATTERNS:
        if pattern.search(text):
            return FailureDiagnosis(kind=kind, summary=summary, hint=hint)

    return FailureDiagnosis(
        kind=FailureKind.GENERIC,
        summary=f"`{result.command}` exited with code {result.exit_code}.",
        hint="See the details above, or re-run the command yourself for full output.",
    )


def last_lines(text: str, count: int = 5) -> str:
    """Return the last non-empty lines of tool output for error reports."""
    lines = [line for line in text.splitlines() if line.strip()]
    return "\n".join(lines[-count:])


# =============================================================================
# Status line
# =============================================================================


class StatusLine:
    """Single-line progress display for a streamed process.

    The current stage and last output line are fields of the instance and
    are only read or written while holding self._lock. On a terminal the
    line is a transient rich Live display refreshed every interval; on any
    other stream a ticker thread prints one line per interval, so silent
    periods still show elapsed time.

    Usage:
        with StatusLine("Starting service") as status:
            status.feed("Pulling image ...")
    """

    def __init__(
        self,
        label: str,
        stream: TextIO | None = None,
        interval: float = 2.0,
        live: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.label = label
        self.console = Console(
            file=stream,
            stderr=stream is None,
            force_terminal=live,
            highlight=False,
        )
        self._interval = interval
        self._clock = clock
        self._live = self.console.is_terminal if live is None else live

        self._lock = threading.Lock()
        self._stage = Stage.STARTING
        self._last_line = ""
        self._started_at = clock()
        self._renders = 0
        self._stop = threading.Event()
        self._ticker: threading.Thread | None = None
        self._display: Live | None = None

    @property
    def stage(self) -> Stage:
        with self._lock:
            return self._stage

    @property
    def last_line(self) -> str:
        """Most recent non-empty line of tool output."""
        with self._lock:
            return self._last_line

    @property
    def renders(self) -> int:
        """Number of times the line has been drawn."""
        with self._lock:
            return self._renders

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started_at

    def _text(self) -> str:
        # Caller holds self._lock
        return f"{self.label}: {self._stage.value} ({self.elapsed:.0f}s)"

    def __rich__(self) -> Text:
        with self._lock:
            self._renders += 1
            return Text(self._text())

    def start(self) -> "StatusLine":
        """Reset the clock and start refreshing every interval."""
        self._started_at = self._clock()
        self._stop.clear()
        if self._live:
            self._display = Live(
                self,
                console=self.console,
                refresh_per_second=1 / self._interval,
                transient=True,
                redirect_stdout=False,
                redirect_stderr=False,
            )
            self._display.start(refresh=True)
            return self

        self.render()
        self._ticker = threading.Thread(
            target=self._tick,
            name=f"status-{self.label}",
            daemon=True,
        )
        self._ticker.start()
        return self

    def feed(self, line: str) -> Stage | None:
        """Record one line of tool output; redraw if the stage changed."""
        stage = classify_stage(line)
        with self._lock:
            if line.strip():
                self._last_line = line.strip()
            changed = stage is not None and stage != self._stage
            if stage is not None:
                self._stage = stage
        if changed:
            self.render()
        return stage

    def render(self) -> str:
        """Draw the status line and return the text drawn."""
        display = self._display
        if display is not None:
            display.refresh()
            with self._lock:
                return self._text()

        with self._lock:
            text = self._text()
            self.console.print(Text(text), soft_wrap=True)
            self._renders += 1
            return text

    def _tick(self) -> None:
        while not self._stop.wait(self._interval):
            self.render()

    def stop(self, final_message: str | None = None) -> None:
        """Stop refreshing and print the final state."""
        self._stop.set()
        if self._ticker is not None and self._ticker is not threading.current_thread():
            self._ticker.join(timeout=self._interval + 1)
        if self._display is not None:
            self._display.stop()
            self._display = None
        if final_message:
            self.console.print(Text(final_message), soft_wrap=True)

    def __enter__(self) -> "StatusLine":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
