"""Local containerized service provisioner.

Sequence:
1. Make sure the service CLI exists (offer to install it)
2. Check the container engine answers
3. Reuse a service that is already running
4. Initialize service configuration when absent
5. Start the service (streamed, long timeout: first start pulls images)
6. Read connection values from the service's status report

Any failure returns placeholder values with a warning. Start failures and
timeouts ask the operator to retry, continue or abort first.
"""

import logging

import typer

from launchpad.adapters.base import ProcessResult
from launchpad.adapters.status import diagnose_failure, last_lines
from launchpad.datastore.base import DatastoreProvisioner, ProvisionContext
from launchpad.datastore.status_report import (
    DEFAULT_API_URL,
    DEFAULT_DB_URL,
    PLACEHOLDER_ANON_KEY,
    PLACEHOLDER_SERVICE_KEY,
    looks_running,
    parse_status_report,
)
from launchpad.models.datastore import DatastoreConfig, DatastoreStrategy
from launchpad.utils.prompts import RecoveryAction, SetupAborted

logger = logging.getLogger(__name__)


class LocalServiceProvisioner(DatastoreProvisioner):
    """Runs the datastore service in local containers."""

    strategy = DatastoreStrategy.LOCAL_SERVICE

    def __init__(self, context: ProvisionContext) -> None:
        super().__init__(context)
        self._warnings: list[str] = []

    @property
    def cli(self) -> str:
        return self.config.service.cli

    def placeholder(self, reason: str) -> DatastoreConfig:
        """Well-known local defaults with placeholder keys."""
        return DatastoreConfig(
            strategy=self.strategy,
            endpoint_url=DEFAULT_API_URL,
            read_credential=PLACEHOLDER_ANON_KEY,
            write_credential=PLACEHOLDER_SERVICE_KEY,
            connection_string=DEFAULT_DB_URL,
            dashboard_url=self.config.service.dashboard_url,
            warnings=(*self._warnings, reason),
            is_placeholder=True,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def ensure_cli(self) -> bool:
        """Make sure the service CLI is on PATH, offering to install it."""
        if self.runner.which(self.cli):
            return True

        package = self.config.service.cli_package
        installer = self.config.runtime.installer
        if not self.prompter.confirm(
            "install_service_cli",
            f"{self.cli} CLI not found. Install it now with `{installer} install -g {package}`?",
            default=True,
        ):
            return False

        result = self.runner.run_streaming(
            [installer, "install", "-g", package],
            timeout=self.config.timeouts.install,
            label=f"Installing {self.cli} CLI",
        )
        if not result.success:
            diagnosis = diagnose_failure(result)
            self._warnings.append(f"{self.cli} CLI install failed: {diagnosis.summary}")
            typer.secho(f"   {diagnosis.hint}", fg="yellow")
            return False
        return self.runner.which(self.cli) is not None

    def engine_reachable(self) -> bool:
        result = self.runner.run(
            [self.config.service.engine, "info"],
            timeout=self.config.timeouts.query,
        )
        if not result.success:
            logger.debug("Engine check failed: %s", last_lines(result.output, 2))
        return result.success

    def query_status(self) -> ProcessResult:
        return self.runner.run([self.cli, "status"], timeout=self.config.timeouts.query)

    def ensure_initialized(self) -> None:
        """Create service configuration when the project has none."""
        if (self.context.root / "supabase" / "config.toml").exists():
            return
        typer.echo(f"  Initializing {self.cli} configuration...")
        result = self.runner.run([self.cli, "init"], timeout=self.config.timeouts.query)
        if not result.success:
            diagnosis = diagnose_failure(result)
            logger.warning("%s init failed: %s", self.cli, diagnosis.summary)
            self._warnings.append(f"`{self.cli} init` failed: {diagnosis.summary}")

    def start(self) -> bool:
        """Start the service, asking how to proceed on failure.

        Returns:
            True when the service reported a successful start

        Raises:
            SetupAborted: If the operator chose to abort
        """
        while True:
            result = self.runner.run_streaming(
                [self.cli, "start"],
                timeout=self.config.timeouts.service_start,
                label="Starting local datastore",
            )
            if result.success:
                return True

            details = last_lines(result.output)
            if details:
                typer.echo(details)
            diagnosis = diagnose_failure(result)
            action = self.prompter.recover("local_start_recovery", diagnosis)
            if action is RecoveryAction.RETRY:
                continue
            if action is RecoveryAction.ABORT:
                raise SetupAborted(diagnosis.summary)
            self._warnings.append(diagnosis.summary)
            return False

    def from_status(self, output: str) -> DatastoreConfig:
        """Build connection values from status output, defaults filling gaps."""
        report = parse_status_report(output)
        warnings = list(self._warnings)
        if report.missing:
            warnings.append(
                f"Could not read {', '.join(report.missing)} from `{self.cli} status`; "
                f"using defaults. Run `{self.cli} status` and update "
                f"{self.config.paths.env_output} if needed."
            )
        return DatastoreConfig(
            strategy=self.strategy,
            endpoint_url=report.api_url,
            read_credential=report.anon_key,
            write_credential=report.service_role_key,
            connection_string=report.db_url,
            dashboard_url=report.studio_url,
            warnings=tuple(warnings),
            is_placeholder=not report.has_credentials,
        )

    # -------------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------------

    def provision(self) -> DatastoreConfig:
        self._warnings = []

        if not self.ensure_cli():
            return self.placeholder(
                f"{self.cli} CLI not available; install it and re-run setup"
            )

        if not self.engine_reachable():
            typer.secho("  ⚠️  Container engine is not running", fg="yellow")
            return self.placeholder(
                "Container engine not reachable; start Docker and re-run setup"
            )

        status = self.query_status()
        if status.success and looks_running(status.output):
            typer.secho("  ✅ Local datastore is already running", fg="green")
            return self.from_status(status.output)

        self.ensure_initialized()
        if not self.start():
            return self.placeholder("Local datastore did not start; values are defaults")

        status = self.query_status()
        if not status.success:
            self._warnings.append(f"`{self.cli} status` failed after start")
        return self.from_status(status.output)
