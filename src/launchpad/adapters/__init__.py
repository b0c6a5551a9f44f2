"""External tool adapter.

Everything the wizard runs in a subprocess goes through ProcessRunner:
- base: ProcessResult and the adapter error types
- status: output stage classifier, failure diagnosis, live status line
- process: buffered and streamed execution with timeouts
"""

from launchpad.adapters.base import (
    ProcessResult,
    ToolExecutionError,
    ToolNotAvailableError,
)
from launchpad.adapters.process import ProcessRunner
from launchpad.adapters.status import (
    FailureDiagnosis,
    FailureKind,
    Stage,
    StatusLine,
    classify_stage,
    diagnose_failure,
)

__all__ = [
    "FailureDiagnosis",
    "FailureKind",
    "ProcessResult",
    "ProcessRunner",
    "Stage",
    "StatusLine",
    "ToolExecutionError",
    "ToolNotAvailableError",
    "classify_stage",
    "diagnose_failure",
]
