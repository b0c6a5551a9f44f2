"""Schema push and seed for relational service strategies.

Both commands are opaque project scripts; only their exit status matters.
"""

import logging

import typer

from launchpad.adapters.status import diagnose_failure, last_lines
from launchpad.datastore.base import ProvisionContext
from launchpad.models.datastore import DatastoreConfig
from launchpad.models.state import SchemaResult
from launchpad.utils.prompts import RecoveryAction, SetupAborted

logger = logging.getLogger(__name__)


class SchemaInitializer:
    """Applies the schema and optionally loads seed data.

    Usage:
        result = SchemaInitializer(context).run(state.datastore)
        if result.seeded:
            ...
    """

    def __init__(self, context: ProvisionContext) -> None:
        self.context = context

    def push(self) -> bool:
        """Run the push command until it succeeds or the operator gives up.

        Raises:
            SetupAborted: If the operator chose to abort
        """
        schema = self.context.config.schema
        while True:
            result = self.context.runner.run_streaming(
                schema.push_command,
                timeout=self.context.config.timeouts.schema,
                label="Pushing database schema",
            )
            if result.success:
                return True

            details = last_lines(result.output)
            if details:
                typer.echo(details)
            diagnosis = diagnose_failure(result)
            action = self.context.prompter.recover("schema_push_recovery", diagnosis)
            if action is RecoveryAction.RETRY:
                continue
            if action is RecoveryAction.ABORT:
                raise SetupAborted(diagnosis.summary)
            typer.secho(f"  Run `{schema.push_command}` manually later.", fg="yellow")
            return False

    def seed(self) -> bool:
        schema = self.context.config.schema
        result = self.context.runner.run_streaming(
            schema.seed_command,
            timeout=self.context.config.timeouts.schema,
            label="Seeding database",
        )
        if not result.success:
            logger.warning("Seeding failed: %s", diagnose_failure(result).summary)
            typer.secho("  ⚠️  Seeding had issues, but the schema is ready.", fg="yellow")
        return result.success

    def run(self, datastore: DatastoreConfig | None) -> SchemaResult:
        """Push the schema, then seed on confirmation."""
        if datastore is None or not datastore.strategy.is_relational_service:
            return SchemaResult(success=False)

        if datastore.is_placeholder and not self.context.prompter.confirm(
            "schema_with_placeholders",
            "Connection values are placeholders. Push the schema anyway?",
            default=False,
        ):
            return SchemaResult(success=False)

        if not self.push():
            return SchemaResult(success=False)

        schema = self.context.config.schema
        wants_seed = self.context.prompter.confirm(
            "seed_database",
            f"Seed the database with a test user? ({schema.seed_email} / {schema.seed_password})",
            default=True,
        )
        return SchemaResult(success=True, seeded=wants_seed and self.seed())
