"""Preflight inspection of the host.

Read-only checks run before any mutating step: required and recommended
tools, ports the local service will bind, free disk space for container
images, and container engine reachability.

Only the runtime and its package installer are blocking. Everything else is
a warning: a busy port usually means the service is already running from an
earlier session, and an unknown disk size is just unknown.
"""

import shutil
import socket
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from launchpad.adapters.process import ProcessRunner
from launchpad.config import LaunchpadConfig

GIB = 1024**3


class Severity(Enum):
    """How much a missing tool matters."""

    REQUIRED = "required"
    RECOMMENDED = "recommended"


@dataclass(frozen=True)
class ToolSpec:
    """A tool to look for.

    Attributes:
        name: Executable name
        severity: Whether absence blocks the wizard
        version_args: Arguments printing the version
        purpose: What the wizard uses it for
        install_hint: Shown when the tool is missing
    """

    name: str
    severity: Severity
    version_args: tuple[str, ...] = ("--version",)
    purpose: str = ""
    install_hint: str = ""


@dataclass(frozen=True)
class ToolCheck:
    """Result of checking a single tool.

    Attributes:
        name: Tool name
        available: Whether tool is on PATH
        version: First line of the tool's version output
        severity: Required or recommended
        path: Resolved executable path
        message: Purpose when present, install hint when missing
    """

    name: str
    available: bool
    version: str | None = None
    severity: Severity = Severity.REQUIRED
    path: str | None = None
    message: str = ""

    @property
    def required(self) -> bool:
        return self.severity is Severity.REQUIRED


@dataclass(frozen=True)
class PortCheck:
    """Result of a bind-and-release check.

    Attributes:
        port: TCP port
        available: Whether the port could be bound
        purpose: What will use the port
    """

    port: int
    available: bool
    purpose: str = ""


@dataclass(frozen=True)
class DiskCheck:
    """Free space at the project root.

    Attributes:
        path: Path that was queried
        free_bytes: Free bytes, None when the query failed
        minimum_bytes: Recommended free space
    """

    path: str
    free_bytes: int | None
    minimum_bytes: int = 0

    @property
    def known(self) -> bool:
        return self.free_bytes is not None

    @property
    def sufficient(self) -> bool:
        """True when free space is unknown or above the minimum."""
        return self.free_bytes is None or self.free_bytes >= self.minimum_bytes


@dataclass(frozen=True)
class ReadinessReport:
    """Snapshot of host readiness, created once per run.

    Attributes:
        tools: Tool checks in the order run
        ports: Port checks
        disk: Disk space check
        engine_running: Container engine answered; None if its CLI is missing
    """

    tools: tuple[ToolCheck, ...] = ()
    ports: tuple[PortCheck, ...] = ()
    disk: DiskCheck | None = None
    engine_running: bool | None = None

    @property
    def blocking(self) -> list[ToolCheck]:
        """Missing required tools."""
        return [t for t in self.tools if t.required and not t.available]

    @property
    def success(self) -> bool:
        return not self.blocking

    @property
    def errors(self) -> list[str]:
        return [f"Required tool not found: {t.name}" for t in self.blocking]

    @property
    def warnings(self) -> list[str]:
        """Non-blocking findings, in display order."""
        warnings = [
            f"Recommended tool not found: {t.name}"
            for t in self.tools
            if not t.required and not t.available
        ]
        warnings.extend(
            f"Port {p.port} ({p.purpose}) is in use - a previous session may still be running"
            for p in self.ports
            if not p.available
        )
        if self.disk is not None and not self.disk.sufficient:
            free_gb = (self.disk.free_bytes or 0) / GIB
            minimum_gb = self.disk.minimum_bytes / GIB
            warnings.append(
                f"Low disk space: {free_gb:.1f} GB free, {minimum_gb:.1f} GB recommended"
            )
        if self.engine_running is False:
            warnings.append("Container engine is installed but not responding")
        return warnings

    def tool(self, name: str) -> ToolCheck | None:
        """Look up a tool check by name."""
        return next((t for t in self.tools if t.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "tools": [
                {
                    "name": t.name,
                    "available": t.available,
                    "version": t.version,
                    "severity": t.severity.value,
                    "path": t.path,
                    "message": t.message,
                }
                for t in self.tools
            ],
            "ports": [
                {"port": p.port, "available": p.available, "purpose": p.purpose}
                for p in self.ports
            ],
            "disk": (
                {
                    "path": self.disk.path,
                    "free_bytes": self.disk.free_bytes,
                    "minimum_bytes": self.disk.minimum_bytes,
                }
                if self.disk
                else None
            ),
            "engine_running": self.engine_running,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def default_tool_specs(config: LaunchpadConfig) -> list[ToolSpec]:
    """Tools checked by default, derived from configuration."""
    return [
        ToolSpec(
            name=config.runtime.command,
            severity=Severity.REQUIRED,
            purpose="JavaScript runtime",
            install_hint=f"Install from: {config.runtime.download_url}",
        ),
        ToolSpec(
            name=config.runtime.installer,
            severity=Severity.REQUIRED,
            purpose="Package installer",
            install_hint=f"Ships with {config.runtime.command}",
        ),
        ToolSpec(
            name="git",
            severity=Severity.RECOMMENDED,
            purpose="Version control",
            install_hint="Install from: https://git-scm.com",
        ),
        ToolSpec(
            name=config.service.cli,
            severity=Severity.RECOMMENDED,
            purpose="Datastore service CLI",
            install_hint=f"Install with: npm install -g {config.service.cli_package} "
            "(the wizard can do this for you)",
        ),
        ToolSpec(
            name=config.service.engine,
            severity=Severity.RECOMMENDED,
            purpose="Container engine for the local datastore",
            install_hint="Install Docker Desktop: https://docs.docker.com/get-docker/",
        ),
    ]


class PreflightChecker:
    """Inspects the host without changing anything.

    Usage:
        checker = PreflightChecker(config, root)
        report = checker.check()
        if report.blocking:
            ...
    """

    def __init__(
        self,
        config: LaunchpadConfig | None = None,
        root: Path | None = None,
        runner: ProcessRunner | None = None,
        tool_specs: list[ToolSpec] | None = None,
    ) -> None:
        """Initialize preflight checker.

        Args:
            config: Launchpad configuration (defaults if None)
            root: Project root, used for the disk space query
            runner: Process runner for version and engine queries
            tool_specs: Tools to check (defaults derived from config)
        """
        self.config = config or LaunchpadConfig()
        self.root = root or Path.cwd()
        self.runner = runner or ProcessRunner(cwd=self.root)
        self.tool_specs = tool_specs or default_tool_specs(self.config)

    def check_command_available(self, command: str) -> tuple[bool, str | None]:
        """Check if a command is available in PATH.

        Returns:
            Tuple of (available, path)
        """
        path = self.runner.which(command)
        return path is not None, path

    def get_command_version(
        self,
        command: str,
        version_args: tuple[str, ...] = ("--version",),
    ) -> str | None:
        """Get the first line of a command's version output."""
        result = self.runner.run(
            [command, *version_args],
            timeout=self.config.timeouts.query,
        )
        if not result.success:
            return None
        output = result.stdout.strip() or result.stderr.strip()
        return output.splitlines()[0].strip() if output else None

    def check_tool(self, spec: ToolSpec) -> ToolCheck:
        """Check one tool."""
        available, path = self.check_command_available(spec.name)
        if not available:
            return ToolCheck(
                name=spec.name,
                available=False,
                severity=spec.severity,
                message=spec.install_hint,
            )
        return ToolCheck(
            name=spec.name,
            available=True,
            version=self.get_command_version(spec.name, spec.version_args),
            severity=spec.severity,
            path=path,
            message=spec.purpose,
        )

    def check_port(self, port: int, purpose: str = "", host: str = "127.0.0.1") -> PortCheck:
        """Check a port by binding and releasing it.

        A failed bind, for whatever reason, reports the port unavailable.
        That includes values outside 0-65535 and non-integers.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.config.timeouts.port_check)
            sock.bind((host, port))
            available = True
        except (OSError, OverflowError, TypeError):
            available = False
        finally:
            sock.close()
        return PortCheck(port=port, available=available, purpose=purpose)

    def check_disk(self) -> DiskCheck:
        """Query free disk space at the project root; unknown on failure."""
        minimum = int(self.config.service.min_free_disk_gb * GIB)
        try:
            free: int | None = shutil.disk_usage(self.root).free
        except OSError:
            free = None
        return DiskCheck(path=str(self.root), free_bytes=free, minimum_bytes=minimum)

    def check_engine(self) -> bool | None:
        """Ask the container engine whether it is running.

        Returns:
            True/False, or None when the engine CLI is not installed
        """
        available, _ = self.check_command_available(self.config.service.engine)
        if not available:
            return None
        result = self.runner.run(
            [self.config.service.engine, "info"],
            timeout=self.config.timeouts.query,
        )
        return result.success

    def check(self) -> ReadinessReport:
        """Run every check and return a fresh report."""
        tools = tuple(self.check_tool(spec) for spec in self.tool_specs)
        ports = tuple(
            self.check_port(port, purpose)
            for port, purpose in self.config.ports.targets()
        )
        return ReadinessReport(
            tools=tools,
            ports=ports,
            disk=self.check_disk(),
            engine_running=self.check_engine(),
        )
