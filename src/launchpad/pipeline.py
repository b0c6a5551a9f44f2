"""Setup pipeline orchestrator.

The wizard is a fixed sequence of typed steps threading one PipelineState:

    preflight -> platform -> modules -> auth -> datastore -> scaffold
    -> prune -> environment -> schema -> verify

Each step is a function (state, context) -> state. Two decisions branch the
flow: the auth/datastore choice decides whether provisioning and schema run
and with which strategy; the platform choice decides whether mobile
scaffolding runs and whether server-only modules are offered.

Steps are not transactional. A failure partway leaves earlier effects in
place; every step is idempotent instead, so re-running the whole wizard
after a partial run is safe.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import typer

from launchpad.adapters.process import ProcessRunner
from launchpad.config import LaunchpadConfig
from launchpad.datastore import (
    ProvisionContext,
    ProvisionerRegistry,
    SchemaInitializer,
    setup_default_provisioners,
)
from launchpad.models.datastore import DatastoreStrategy
from launchpad.models.module import Platform
from launchpad.models.state import AuthChoice, AuthProvider, PipelineState
from launchpad.modules.platform import PlatformScaffolder
from launchpad.modules.pruner import ModulePruner
from launchpad.modules.registry import MODULE_REGISTRY, available_modules, effective_modules
from launchpad.templates.renderer import EnvironmentGenerator, strip_sentinels
from launchpad.utils.preflight import PreflightChecker, ReadinessReport
from launchpad.utils.prompts import Choice, Prompter, SetupAborted, require_value
from launchpad.utils.version import VersionNegotiator, VersionStatus

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Collaborators shared by every step.

    Attributes:
        root: Project root
        config: Launchpad configuration
        runner: Process runner for all external commands
        prompter: Operator prompts
        provisioners: Datastore provisioner registry
    """

    root: Path
    config: LaunchpadConfig = field(default_factory=LaunchpadConfig)
    runner: ProcessRunner = field(default_factory=ProcessRunner)
    prompter: Prompter = field(default_factory=Prompter)
    provisioners: ProvisionerRegistry = field(
        default_factory=lambda: setup_default_provisioners(ProvisionerRegistry())
    )

    @property
    def provision_context(self) -> ProvisionContext:
        return ProvisionContext(
            root=self.root,
            config=self.config,
            runner=self.runner,
            prompter=self.prompter,
        )


StepFunction = Callable[[PipelineState, StepContext], PipelineState]


def _always(state: PipelineState) -> bool:
    return True


@dataclass(frozen=True)
class PipelineStep:
    """One step of the wizard.

    Attributes:
        name: Identifier recorded in PipelineState.completed_steps
        title: Header shown to the operator
        run: Step function
        applies: Predicate deciding whether the step runs for a state
    """

    name: str
    title: str
    run: StepFunction
    applies: Callable[[PipelineState], bool] = _always


# =============================================================================
# Output helpers
# =============================================================================


def print_report(report: ReadinessReport) -> None:
    """Render a readiness report for the operator."""
    for tool in report.tools:
        if tool.available:
            version = f" ({tool.version})" if tool.version else ""
            typer.echo(f"  ✅ {tool.name}{version}")
        else:
            icon = "❌" if tool.required else "⚠️ "
            typer.echo(f"  {icon} {tool.name} not found")
            if tool.message:
                typer.echo(f"     └─ {tool.message}")
    for warning in report.warnings:
        if not warning.startswith("Recommended tool"):
            typer.secho(f"  ⚠️  {warning}", fg="yellow")


def _print_paths(prefix: str, paths: list[str]) -> None:
    for path in paths:
        typer.echo(f"  {prefix} {path}")


# =============================================================================
# Steps
# =============================================================================


def step_preflight(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Inspect the host, negotiate the runtime version, gate the start."""
    checker = PreflightChecker(ctx.config, ctx.root, ctx.runner)
    report = checker.check()
    print_report(report)

    negotiator = VersionNegotiator(ctx.config, ctx.root, ctx.runner, ctx.prompter)
    negotiation = negotiator.negotiate()
    if negotiation.aborted:
        raise SetupAborted("runtime version not fixed")

    blocking = report.blocking
    if negotiation.auto_fixed:
        # Managed versions only show up in new shells; refresh everything else
        report = checker.check()
        managed = {ctx.config.runtime.command, ctx.config.runtime.installer}
        blocking = [t for t in report.blocking if t.name not in managed]

    still_old = (
        not negotiation.auto_fixed
        and negotiation.status is VersionStatus.OLDER_THAN_MINIMUM
    )
    if (blocking or still_old) and not ctx.prompter.confirm(
        "continue_with_missing",
        "Some prerequisites are missing. Continue anyway?",
        default=False,
    ):
        raise SetupAborted("prerequisites missing")

    warnings = list(report.warnings)
    if still_old:
        warnings.append(
            f"{ctx.config.runtime.command} {negotiation.installed or '(missing)'} "
            f"is older than required"
        )
    return state.evolve(report=report, negotiation=negotiation).with_warnings(*warnings)


def step_platform(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Choose target platforms (at least one)."""
    selected = ctx.prompter.multiselect(
        "platforms",
        "Which platforms are you building for?",
        [
            Choice("Web (Next.js)", Platform.WEB, selected=Platform.WEB in state.platforms),
            Choice(
                "Mobile (React Native / Expo)",
                Platform.MOBILE,
                selected=Platform.MOBILE in state.platforms,
            ),
        ],
        min_selected=1,
    )
    return state.evolve(platforms=frozenset(selected or state.platforms))


def step_modules(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Choose optional modules; server-only ones need WEB."""
    offered = available_modules(state.platforms)
    selected = ctx.prompter.multiselect(
        "modules",
        "Which modules do you want to keep?",
        [Choice(m.display_name, m.id, selected=m.default_selected) for m in offered],
    )
    modules = effective_modules(selected, state.platforms)
    logger.debug("Effective modules: %s", sorted(modules))
    return state.evolve(modules=modules)


def step_auth(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Choose the auth provider."""
    provider = ctx.prompter.select(
        "auth",
        "Which authentication provider?",
        [
            Choice("Supabase Auth (recommended, bundled with the datastore)", AuthProvider.SUPABASE),
            Choice("Firebase Auth", AuthProvider.FIREBASE),
            Choice("Other (Clerk, Auth0, NextAuth, ...)", AuthProvider.CUSTOM),
        ],
    )
    custom_name = ""
    if provider is AuthProvider.CUSTOM:
        custom_name = ctx.prompter.text(
            "auth_custom_name",
            "What auth provider are you using?",
            validate=require_value("Provider name"),
        )
        if not custom_name:
            provider = AuthProvider.SUPABASE
    return state.evolve(auth=AuthChoice(provider=provider, custom_name=custom_name))


def datastore_choices(auth: AuthChoice) -> list[Choice[DatastoreStrategy]]:
    """Strategies offered for an auth choice, default first."""
    if auth.provider is AuthProvider.SUPABASE:
        return [
            Choice("Local development (containers on this machine)", DatastoreStrategy.LOCAL_SERVICE),
            Choice("Cloud project", DatastoreStrategy.REMOTE_SERVICE),
            Choice("Skip for now (configure later)", DatastoreStrategy.SKIP),
        ]
    return [
        Choice("Embedded file database (no setup)", DatastoreStrategy.EMBEDDED),
        Choice("Skip for now (configure later)", DatastoreStrategy.SKIP),
    ]


def step_datastore(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Choose exactly one datastore strategy and provision it."""
    strategy = ctx.prompter.select(
        "datastore",
        "How do you want to set up the datastore?",
        datastore_choices(state.auth),
    )
    if strategy is DatastoreStrategy.SKIP or not ctx.provisioners.has(strategy):
        typer.echo("  Skipping datastore setup")
        return state.evolve(strategy=DatastoreStrategy.SKIP, datastore=None)

    provisioner = ctx.provisioners.get(strategy, ctx.provision_context)
    datastore = provisioner.provision()
    logger.debug("Datastore provisioned: %s", datastore.to_dict())
    for warning in datastore.warnings:
        typer.secho(f"  ⚠️  {warning}", fg="yellow")
    if not datastore.is_placeholder:
        typer.secho(f"  ✅ Datastore ready ({strategy.value})", fg="green")
    return state.evolve(strategy=strategy, datastore=datastore).with_warnings(*datastore.warnings)


def _needs_scaffold(state: PipelineState) -> bool:
    return state.has_mobile or not state.has_web


def step_scaffold(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Add mobile structure; remove web structure without WEB."""
    result = PlatformScaffolder(ctx.root).scaffold(state.platforms)
    _print_paths("+", result.created)
    _print_paths("~", result.updated)
    _print_paths("-", result.removed)
    return state.evolve(
        removed_paths=(*state.removed_paths, *result.removed),
    ).with_warnings(*(f"Could not update {p}: {e}" for p, e in result.failed))


def step_prune(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Delete unselected module trees."""
    result = ModulePruner(ctx.root).prune(
        state.modules, platforms=state.platforms, auth=state.auth
    )
    _print_paths("-", result.removed)
    if not result.removed:
        typer.echo("  Nothing to remove")
    return state.evolve(
        removed_paths=(*state.removed_paths, *result.removed),
    ).with_warnings(*(f"Could not remove {p}: {e}" for p, e in result.failed))


def step_environment(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Write the environment file(s) and rules file."""
    generator = EnvironmentGenerator(ctx.root, ctx.config)
    result = generator.write(
        state.modules, state.datastore, state.auth, platforms=state.platforms
    )
    _print_paths("✅", result.written)
    return state.evolve(
        written_files=(*state.written_files, *result.written),
    ).with_warnings(*(f"Could not write {p}: {e}" for p, e in result.failed))


def _needs_schema(state: PipelineState) -> bool:
    return state.has_web and state.strategy.is_relational_service


def step_schema(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Push the schema and optionally seed."""
    result = SchemaInitializer(ctx.provision_context).run(state.datastore)
    if result.success:
        typer.secho("  ✅ Schema applied", fg="green")
    return state.evolve(schema=result)


def verify_project(state: PipelineState, ctx: StepContext) -> list[str]:
    """Check the tree against the decisions; return problems found."""
    problems: list[str] = []
    env_path = ctx.root / ctx.config.paths.env_output
    try:
        env_text = env_path.read_text(encoding="utf-8")
    except OSError:
        env_text = None
        problems.append(f"{ctx.config.paths.env_output} was not written")

    if env_text is not None and strip_sentinels(env_text) != env_text:
        problems.append(f"{ctx.config.paths.env_output} still contains module markers")

    leftovers = ModulePruner(ctx.root).leftover_paths(
        state.modules, platforms=state.platforms, auth=state.auth
    )
    problems.extend(f"Pruned path still present: {p}" for p in leftovers)

    if env_text is not None:
        for module in MODULE_REGISTRY:
            in_env = any(f"\n{key}=" in f"\n{env_text}" for key, _ in module.env_keys)
            on_disk = any((ctx.root / p).exists() for p in module.source_paths)
            if module.id in state.modules and on_disk and not in_env:
                problems.append(f"Module {module.id} kept but its settings are missing")
            if module.id not in state.modules and in_env:
                problems.append(f"Module {module.id} removed but its settings remain")
    return problems


def step_verify(state: PipelineState, ctx: StepContext) -> PipelineState:
    """Check sentinels, pruned paths and module/env consistency."""
    problems = verify_project(state, ctx)
    if not problems:
        typer.secho("  ✅ Project is consistent", fg="green")
    for problem in problems:
        typer.secho(f"  ⚠️  {problem}", fg="yellow")
    return state.with_warnings(*problems)


def default_steps() -> list[PipelineStep]:
    """The wizard's steps in order."""
    return [
        PipelineStep("preflight", "Checking your environment", step_preflight),
        PipelineStep("platform", "Choosing platforms", step_platform),
        PipelineStep("modules", "Choosing modules", step_modules),
        PipelineStep("auth", "Choosing authentication", step_auth),
        PipelineStep("datastore", "Setting up the datastore", step_datastore),
        PipelineStep("scaffold", "Preparing platform structure", step_scaffold, _needs_scaffold),
        PipelineStep("prune", "Removing unused modules", step_prune),
        PipelineStep("environment", "Writing configuration", step_environment),
        PipelineStep("schema", "Initializing the database", step_schema, _needs_schema),
        PipelineStep("verify", "Verifying the project", step_verify),
    ]


# =============================================================================
# Summary
# =============================================================================


def next_steps(state: PipelineState, config: LaunchpadConfig) -> list[str]:
    """What the operator should do after the wizard."""
    lines: list[str] = []
    negotiation = state.negotiation
    if negotiation is not None and negotiation.auto_fixed:
        lines.append(
            f"Open a new terminal so {config.runtime.command} "
            f"{negotiation.verified_version or negotiation.required} is active"
        )
    if state.datastore is not None and state.datastore.is_placeholder:
        lines.append(f"Replace placeholder values in {config.paths.env_output}")
    if state.strategy is DatastoreStrategy.SKIP:
        lines.append(f"Configure the datastore in {config.paths.env_output}")
    if (
        state.has_web
        and state.strategy.is_relational_service
        and (state.schema is None or not state.schema.success)
    ):
        lines.append(f"Apply the schema: {config.schema.push_command}")
    if state.has_web:
        lines.append(f"Start the web app: npm run dev (http://localhost:{config.ports.dev_server})")
    if state.has_mobile:
        lines.append("Start the mobile app: npm run expo:start")
    if state.datastore is not None and state.datastore.dashboard_url:
        lines.append(f"Datastore dashboard: {state.datastore.dashboard_url}")
    if state.schema is not None and state.schema.seeded:
        lines.append(f"Log in with {config.schema.seed_email} / {config.schema.seed_password}")
    return lines


def print_summary(state: PipelineState, config: LaunchpadConfig) -> None:
    typer.secho("\n🚀 Setup complete", fg="green", bold=True)
    if state.warnings:
        typer.secho(f"\n{len(state.warnings)} warning(s):", fg="yellow")
        for warning in dict.fromkeys(state.warnings):
            typer.echo(f"  • {warning}")
    typer.echo("\nNext steps:")
    for number, line in enumerate(next_steps(state, config), start=1):
        typer.echo(f"  {number}. {line}")


# =============================================================================
# Pipeline
# =============================================================================


class SetupPipeline:
    """Runs the steps in order, threading PipelineState.

    Usage:
        pipeline = SetupPipeline(StepContext(root=project_root))
        state = pipeline.run()
        if state.stopped:
            ...
    """

    def __init__(
        self,
        context: StepContext,
        steps: list[PipelineStep] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            context: Shared collaborators
            steps: Steps to run (default_steps() if None)
        """
        self.context = context
        self.steps = steps if steps is not None else default_steps()

    def run(self, state: PipelineState | None = None) -> PipelineState:
        """Execute every applicable step.

        Returns:
            Final state; stopped=True when the operator ended the run

        Raises:
            Exception: Anything other than SetupAborted is an internal fault
        """
        state = state or PipelineState()
        total = len(self.steps)
        logger.info("Starting setup in %s", self.context.root)

        for index, step in enumerate(self.steps, start=1):
            if not step.applies(state):
                logger.debug("Skipping step %s", step.name)
                continue

            typer.secho(f"\n[{index}/{total}] {step.title}", bold=True)
            try:
                state = step.run(state, self.context)
            except SetupAborted as e:
                logger.info("Setup stopped during %s: %s", step.name, e)
                typer.secho(f"\nSetup stopped: {e}. Re-run setup any time.", fg="yellow")
                return state.evolve(stopped=True)
            state = state.evolve(completed_steps=(*state.completed_steps, step.name))

        print_summary(state, self.context.config)
        return state
