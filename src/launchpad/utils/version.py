"""Runtime version negotiation.

Compares the installed runtime with the project's requirement and, when they
disagree, tries to fix it through a version manager (nvm or fnm).

A version manager switches versions by mutating the environment of the shell
it runs in. That shell is our child process, so nothing it does is visible
to us afterwards. Every "did it work" check therefore runs the runtime again
in a fresh subprocess that loads the manager first; exit codes of the
install and switch commands are never taken as proof.
"""

import logging
import os
import re
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import typer

from launchpad.adapters.process import ProcessRunner
from launchpad.config import LaunchpadConfig
from launchpad.utils.prompts import Choice, Prompter

logger = logging.getLogger(__name__)

_VERSION_PATTERN = re.compile(r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")

NVM_INSTALL_COMMAND = (
    "curl -o- https://raw.githubusercontent.com/nvm-sh/nvm/v0.40.0/install.sh | bash"
)


def parse_version(text: str | None) -> tuple[int, ...] | None:
    """Extract (major, minor, patch) from a version string like 'v20.11.1'.

    Missing components are returned as 0. Returns None when nothing
    version-like is found.
    """
    if not text:
        return None
    match = _VERSION_PATTERN.search(text.strip())
    if not match:
        return None
    return tuple(int(part or 0) for part in match.groups())


class VersionStatus(Enum):
    """Negotiator state. UNKNOWN until check() has run."""

    UNKNOWN = "unknown"
    COMPATIBLE = "compatible"
    NEWER_THAN_RECOMMENDED = "newer_than_recommended"
    OLDER_THAN_MINIMUM = "older_than_minimum"


class RemediationChoice(Enum):
    """Manual remediation options offered when no auto-fix is possible."""

    OPEN_DOWNLOAD_PAGE = "open"
    SHOW_COMMANDS = "commands"
    CONTINUE = "continue"
    ABORT = "abort"


@dataclass(frozen=True)
class VersionCheck:
    """Installed vs. required runtime versions.

    Attributes:
        status: Comparison outcome
        installed: Installed version string, None if the runtime is missing
        recommended: Recommended version string, None if the project has none
        minimum: Minimum major version
    """

    status: VersionStatus
    installed: str | None = None
    recommended: str | None = None
    minimum: int | None = None

    @property
    def compatible(self) -> bool:
        return self.status is VersionStatus.COMPATIBLE


@dataclass(frozen=True)
class NegotiationResult:
    """Outcome of negotiate().

    Attributes:
        check: Version comparison that started the negotiation
        auto_fixed: The manager installed and switched, and a fresh
            subprocess confirmed the required version
        manager: Name of the version manager used, if any
        choice: Manual remediation the operator settled on, if asked
        verified_version: Version reported by the verification subprocess
    """

    check: VersionCheck
    auto_fixed: bool = False
    manager: str | None = None
    choice: RemediationChoice | None = None
    verified_version: str | None = None

    @property
    def status(self) -> VersionStatus:
        return self.check.status

    @property
    def installed(self) -> str | None:
        return self.check.installed

    @property
    def required(self) -> str | None:
        return self.check.recommended

    @property
    def aborted(self) -> bool:
        return self.choice is RemediationChoice.ABORT

    @property
    def satisfied(self) -> bool:
        """Compatible from the start, or fixed and verified."""
        return self.check.compatible or self.auto_fixed


# =============================================================================
# Version managers
# =============================================================================


class VersionManager(ABC):
    """A discoverable runtime version manager."""

    name = "manager"

    @abstractmethod
    def install_command(self, version: str) -> list[str]:
        pass

    @abstractmethod
    def use_command(self, version: str) -> list[str]:
        pass

    @abstractmethod
    def verify_command(self, version: str, runtime: str) -> list[str]:
        """Fresh-process command printing the runtime version under the manager."""
        pass

    @abstractmethod
    def manual_commands(self, version: str) -> list[str]:
        """Shell lines the operator can run themselves."""
        pass


class NvmManager(VersionManager):
    """nvm is a shell function, so every command sources its script first."""

    name = "nvm"

    def __init__(self, script: Path | None = None) -> None:
        """Initialize nvm integration.

        Args:
            script: Path to nvm.sh; None means a login shell loads nvm itself
        """
        self.script = script

    def _shell(self, body: str) -> list[str]:
        if self.script is None:
            return ["bash", "-lc", body]
        nvm_dir = shlex.quote(str(self.script.parent))
        script = shlex.quote(str(self.script))
        return ["bash", "-c", f"export NVM_DIR={nvm_dir}; . {script} && {body}"]

    def install_command(self, version: str) -> list[str]:
        return self._shell(f"nvm install {shlex.quote(version)}")

    def use_command(self, version: str) -> list[str]:
        return self._shell(f"nvm alias default {shlex.quote(version)} && nvm use {shlex.quote(version)}")

    def verify_command(self, version: str, runtime: str) -> list[str]:
        return self._shell(
            f"nvm use {shlex.quote(version)} >/dev/null && {shlex.quote(runtime)} --version"
        )

    def manual_commands(self, version: str) -> list[str]:
        return [f"nvm install {version}", f"nvm use {version}"]


class FnmManager(VersionManager):
    """fnm is a plain binary with an exec subcommand."""

    name = "fnm"

    def install_command(self, version: str) -> list[str]:
        return ["fnm", "install", version]

    def use_command(self, version: str) -> list[str]:
        return ["fnm", "default", version]

    def verify_command(self, version: str, runtime: str) -> list[str]:
        return ["fnm", "exec", f"--using={version}", runtime, "--version"]

    def manual_commands(self, version: str) -> list[str]:
        return [f"fnm install {version}", f"fnm use {version}"]


def nvm_script_candidates(home: Path | None = None) -> list[Path]:
    """Well-known nvm.sh locations, most specific first."""
    home = home or Path.home()
    candidates: list[Path] = []
    nvm_dir = os.environ.get("NVM_DIR")
    if nvm_dir:
        candidates.append(Path(nvm_dir) / "nvm.sh")
    candidates.extend(
        [
            home / ".nvm" / "nvm.sh",
            Path("/usr/local/opt/nvm/nvm.sh"),
            Path("/opt/homebrew/opt/nvm/nvm.sh"),
            home / ".config" / "nvm" / "nvm.sh",
        ]
    )
    return candidates


# =============================================================================
# Negotiator
# =============================================================================


class VersionNegotiator:
    """Checks the runtime version and drives a version manager to fix it.

    Usage:
        negotiator = VersionNegotiator(config, root, runner, prompter)
        result = negotiator.negotiate()
        if result.aborted:
            ...
    """

    def __init__(
        self,
        config: LaunchpadConfig | None = None,
        root: Path | None = None,
        runner: ProcessRunner | None = None,
        prompter: Prompter | None = None,
        home: Path | None = None,
    ) -> None:
        self.config = config or LaunchpadConfig()
        self.root = root or Path.cwd()
        self.runner = runner or ProcessRunner(cwd=self.root)
        self.prompter = prompter or Prompter()
        self.home = home
        self.status = VersionStatus.UNKNOWN

    # -------------------------------------------------------------------------
    # Checking
    # -------------------------------------------------------------------------

    def required_version(self) -> str | None:
        """Recommended version from config, else from the project version file."""
        if self.config.runtime.recommended:
            return self.config.runtime.recommended.lstrip("v")
        version_file = self.root / self.config.runtime.version_file
        try:
            content = version_file.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return content.lstrip("v") or None

    def installed_version(self) -> str | None:
        """Ask the runtime itself; None when it is missing or silent."""
        result = self.runner.run(
            [self.config.runtime.command, "--version"],
            timeout=self.config.timeouts.query,
        )
        if not result.success:
            return None
        return result.stdout.strip() or None

    def compare(self, installed: str | None, recommended: str | None) -> VersionCheck:
        """Classify an installed version against the requirement."""
        recommended_parts = parse_version(recommended)
        minimum_parts = parse_version(self.config.runtime.minimum) or recommended_parts
        minimum = minimum_parts[0] if minimum_parts else None
        installed_parts = parse_version(installed)

        if installed_parts is None:
            status = VersionStatus.OLDER_THAN_MINIMUM
        elif minimum is not None and installed_parts[0] < minimum:
            status = VersionStatus.OLDER_THAN_MINIMUM
        elif recommended_parts is not None and installed_parts[0] > recommended_parts[0]:
            status = VersionStatus.NEWER_THAN_RECOMMENDED
        else:
            status = VersionStatus.COMPATIBLE

        return VersionCheck(
            status=status,
            installed=installed,
            recommended=recommended,
            minimum=minimum,
        )

    def check(self) -> VersionCheck:
        """Move from UNKNOWN to a checked state."""
        result = self.compare(self.installed_version(), self.required_version())
        self.status = result.status
        logger.debug(
            "Runtime version check: installed=%s recommended=%s status=%s",
            result.installed,
            result.recommended,
            result.status.value,
        )
        return result

    # -------------------------------------------------------------------------
    # Version manager discovery
    # -------------------------------------------------------------------------

    def _nvm_loads(self, manager: NvmManager) -> bool:
        """Shell-capability check: does sourcing the script yield nvm?"""
        result = self.runner.run(
            manager._shell("command -v nvm"),
            timeout=self.config.timeouts.query,
        )
        return result.success and "nvm" in result.stdout

    def discover_manager(self) -> VersionManager | None:
        """Find a usable version manager, or None."""
        if not self.runner.which("bash"):
            candidates: list[Path] = []
        else:
            candidates = [p for p in nvm_script_candidates(self.home) if p.is_file()]

        for script in candidates:
            manager = NvmManager(script)
            if self._nvm_loads(manager):
                logger.debug("Found nvm at %s", script)
                return manager

        if self.runner.which("bash"):
            login_manager = NvmManager(None)
            if self._nvm_loads(login_manager):
                logger.debug("Found nvm through the login shell")
                return login_manager

        if self.runner.which("fnm"):
            logger.debug("Found fnm on PATH")
            return FnmManager()

        return None

    # -------------------------------------------------------------------------
    # Remediation
    # -------------------------------------------------------------------------

    def switch(self, manager: VersionManager, version: str) -> str | None:
        """Install and switch with the manager, then verify in a fresh process.

        Returns:
            The verified runtime version string, or None if unconfirmed
        """
        install = self.runner.run_streaming(
            manager.install_command(version),
            timeout=self.config.timeouts.install,
            label=f"Installing {self.config.runtime.command} {version} with {manager.name}",
        )
        if not install.success:
            logger.warning("%s install did not succeed; checking anyway", manager.name)

        self.runner.run_streaming(
            manager.use_command(version),
            timeout=self.config.timeouts.install,
            label=f"Switching to {self.config.runtime.command} {version}",
        )

        verify = self.runner.run(
            manager.verify_command(version, self.config.runtime.command),
            timeout=self.config.timeouts.query,
        )
        reported = verify.stdout.strip().splitlines()[-1] if verify.stdout.strip() else None
        wanted = parse_version(version)
        got = parse_version(reported)
        if verify.success and wanted and got and got[0] == wanted[0]:
            return reported

        logger.warning(
            "Could not confirm %s %s through %s (got %s)",
            self.config.runtime.command,
            version,
            manager.name,
            reported or "nothing",
        )
        return None

    def manual_commands(self, version: str, manager: VersionManager | None) -> list[str]:
        """Exact shell lines that fix the version by hand."""
        if manager is not None:
            return manager.manual_commands(version)
        return [NVM_INSTALL_COMMAND, f"nvm install {version}", f"nvm use {version}"]

    def present_manual_options(
        self,
        check: VersionCheck,
        manager: VersionManager | None,
    ) -> RemediationChoice:
        """Offer manual remediation until the operator continues or aborts."""
        version = check.recommended or "the required version"
        choices = [
            Choice("Open the download page", RemediationChoice.OPEN_DOWNLOAD_PAGE),
            Choice("Show the commands to fix it", RemediationChoice.SHOW_COMMANDS),
            Choice("Continue with the current version", RemediationChoice.CONTINUE),
            Choice("Abort setup", RemediationChoice.ABORT),
        ]
        while True:
            choice = self.prompter.select(
                "runtime_remediation",
                "How do you want to fix the runtime version?",
                choices,
                default=next(
                    i for i, c in enumerate(choices) if c.value is RemediationChoice.CONTINUE
                ),
            )
            if choice is RemediationChoice.OPEN_DOWNLOAD_PAGE:
                typer.launch(self.config.runtime.download_url)
                typer.echo(
                    f"   Install {self.config.runtime.command} {version}, "
                    "then re-run setup in a new terminal."
                )
            elif choice is RemediationChoice.SHOW_COMMANDS:
                typer.echo("\n   Run these in a new terminal, then re-run setup:\n")
                for line in self.manual_commands(version, manager):
                    typer.echo(f"     {line}")
                typer.echo()
            else:
                return choice
            # Both informational options fall through to "continue or abort"
            choices = [c for c in choices if c.value is not choice]

    def negotiate(self) -> NegotiationResult:
        """Check the version and remediate if it is incompatible.

        Never raises for tool failures. The returned auto_fixed flag is True
        only when a fresh subprocess confirmed the required version.
        """
        check = self.check()
        if check.compatible:
            return NegotiationResult(check=check)

        runtime = self.config.runtime.command
        if check.installed is None:
            typer.secho(f"  ⚠️  {runtime} not found", fg="yellow")
        elif check.status is VersionStatus.OLDER_THAN_MINIMUM:
            typer.secho(
                f"  ⚠️  {runtime} {check.installed} is older than the minimum "
                f"(v{check.minimum})",
                fg="yellow",
            )
        else:
            typer.secho(
                f"  ℹ️  {runtime} {check.installed} is newer than the recommended "
                f"v{check.recommended}",
                fg="cyan",
            )

        manager = self.discover_manager() if check.recommended else None
        if manager is not None and check.recommended:
            wants_fix = self.prompter.confirm(
                "runtime_autofix",
                f"Use {manager.name} to install and switch to {runtime} {check.recommended}?",
                default=check.status is VersionStatus.OLDER_THAN_MINIMUM,
            )
            if wants_fix:
                verified = self.switch(manager, check.recommended)
                if verified:
                    typer.secho(
                        f"  ✅ {manager.name} provides {runtime} {verified}", fg="green"
                    )
                    return NegotiationResult(
                        check=check,
                        auto_fixed=True,
                        manager=manager.name,
                        verified_version=verified,
                    )
                typer.secho(
                    f"  ⚠️  Could not confirm the switch through {manager.name}",
                    fg="yellow",
                )
        elif manager is None:
            typer.echo(f"  No version manager found - cannot switch {runtime} automatically")

        if check.status is VersionStatus.NEWER_THAN_RECOMMENDED and manager is None:
            # Newer usually works; mention it and move on
            return NegotiationResult(check=check, choice=RemediationChoice.CONTINUE)

        choice = self.present_manual_options(check, manager)
        return NegotiationResult(
            check=check,
            manager=manager.name if manager else None,
            choice=choice,
        )
