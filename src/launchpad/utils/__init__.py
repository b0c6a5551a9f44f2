"""Launchpad utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- preflight: Host readiness checks (tools, ports, disk, container engine)
- prompts: Operator prompts and recovery choices
- version: Runtime version negotiation
"""

from launchpad.utils.logging import get_logger, setup_logging
from launchpad.utils.preflight import PreflightChecker, ReadinessReport
from launchpad.utils.prompts import Prompter, SetupAborted
from launchpad.utils.version import NegotiationResult, VersionNegotiator

__all__ = [
    "get_logger",
    "setup_logging",
    "NegotiationResult",
    "PreflightChecker",
    "Prompter",
    "ReadinessReport",
    "SetupAborted",
    "VersionNegotiator",
]
