"""Unit tests for the setup pipeline and its steps."""

from pathlib import Path
from unittest.mock import patch

import pytest

from launchpad.config import LaunchpadConfig
from launchpad.models.datastore import DatastoreConfig, DatastoreStrategy
from launchpad.models.module import Platform
from launchpad.models.state import AuthChoice, AuthProvider, PipelineState, SchemaResult
from launchpad.pipeline import (
    PipelineStep,
    SetupPipeline,
    StepContext,
    datastore_choices,
    default_steps,
    next_steps,
    step_auth,
    step_datastore,
    step_environment,
    step_modules,
    step_platform,
    step_preflight,
    step_prune,
    step_verify,
    verify_project,
)
from launchpad.utils.prompts import SetupAborted
from launchpad.utils.version import RemediationChoice
from tests.helpers import FakeRunner, ScriptedPrompter, fail, ok

READY_TOOLS = {"node", "npm", "git"}


def ready_runner() -> FakeRunner:
    """Host with the required tools and a compatible runtime."""
    return FakeRunner(
        {"node --version": ok("v20.11.1\n"), "npm --version": ok("10.2.4\n")},
        available=READY_TOOLS,
    )


def make_context(
    root: Path,
    runner: FakeRunner | None = None,
    prompter: ScriptedPrompter | None = None,
) -> StepContext:
    return StepContext(
        root=root,
        runner=runner or FakeRunner(),
        prompter=prompter or ScriptedPrompter(),
    )


class TestStepPreflight:
    """Tests for the preflight gate."""

    def test_ready_host_asks_nothing(self, template_project: Path) -> None:
        """Test that a ready host passes without questions."""
        prompter = ScriptedPrompter()

        ctx = make_context(template_project, ready_runner(), prompter)

        state = step_preflight(PipelineState(), ctx)

        assert state.report is not None
        assert state.report.success
        assert "continue_with_missing" not in prompter.asked

    def test_missing_runtime_declined(self, template_project: Path) -> None:
        """Test that missing prerequisites stop the run by default."""
        with pytest.raises(SetupAborted, match="prerequisites"):
            step_preflight(PipelineState(), make_context(template_project))

    def test_missing_runtime_accepted(self, template_project: Path) -> None:
        """Test that continuing anyway records a warning."""
        prompter = ScriptedPrompter({"continue_with_missing": True})

        state = step_preflight(PipelineState(), make_context(template_project, prompter=prompter))

        assert any("older than required" in w for w in state.warnings)
        assert state.report is not None and not state.report.success

    def test_runtime_abort(self, template_project: Path) -> None:
        """Test that aborting the version menu stops the run."""
        prompter = ScriptedPrompter({"runtime_remediation": RemediationChoice.ABORT})
        runner = FakeRunner({"node --version": ok("v18.0.0\n")}, available=READY_TOOLS)

        with pytest.raises(SetupAborted, match="runtime"):
            step_preflight(PipelineState(), make_context(template_project, runner, prompter))


class TestChoiceSteps:
    """Tests for the platform, module and auth prompts."""

    def test_platforms(self, tmp_path: Path) -> None:
        """Test that the selection replaces the default platforms."""
        prompter = ScriptedPrompter({"platforms": [Platform.WEB, Platform.MOBILE]})

        state = step_platform(PipelineState(), make_context(tmp_path, prompter=prompter))

        assert state.has_web and state.has_mobile

    def test_modules_default_selection(self, tmp_path: Path) -> None:
        """Test that unattended runs keep the pre-selected modules."""
        state = step_modules(PipelineState(), make_context(tmp_path))

        assert state.modules == frozenset({"stripe", "inngest"})

    def test_modules_filtered_by_platform(self, tmp_path: Path) -> None:
        """Test that server-only modules are dropped without WEB."""
        prompter = ScriptedPrompter({"modules": ["stripe", "inngest"]})
        state = PipelineState(platforms=frozenset({Platform.MOBILE}))

        state = step_modules(state, make_context(tmp_path, prompter=prompter))

        assert state.modules == frozenset({"stripe"})

    def test_custom_auth(self, tmp_path: Path) -> None:
        """Test that a custom provider carries its name."""
        prompter = ScriptedPrompter({"auth": AuthProvider.CUSTOM, "auth_custom_name": "Clerk"})

        state = step_auth(PipelineState(), make_context(tmp_path, prompter=prompter))

        assert state.auth == AuthChoice(AuthProvider.CUSTOM, "Clerk")

    def test_custom_auth_without_name_falls_back(self, tmp_path: Path) -> None:
        """Test that an unnamed custom provider becomes the default."""
        prompter = ScriptedPrompter({"auth": AuthProvider.CUSTOM})

        state = step_auth(PipelineState(), make_context(tmp_path, prompter=prompter))

        assert state.auth.is_default


class TestStepDatastore:
    """Tests for strategy choice and provisioning."""

    def test_choices_follow_auth(self) -> None:
        """Test that service strategies need the bundled auth provider."""
        default = [c.value for c in datastore_choices(AuthChoice())]
        other = [c.value for c in datastore_choices(AuthChoice(AuthProvider.FIREBASE))]

        assert default == [
            DatastoreStrategy.LOCAL_SERVICE,
            DatastoreStrategy.REMOTE_SERVICE,
            DatastoreStrategy.SKIP,
        ]
        assert other == [DatastoreStrategy.EMBEDDED, DatastoreStrategy.SKIP]

    def test_skip(self, tmp_path: Path) -> None:
        """Test that skipping provisions nothing."""
        prompter = ScriptedPrompter({"datastore": DatastoreStrategy.SKIP})
        runner = FakeRunner()

        state = step_datastore(PipelineState(), make_context(tmp_path, runner, prompter))

        assert state.strategy is DatastoreStrategy.SKIP
        assert state.datastore is None
        assert runner.calls == []

    def test_embedded_for_other_auth(self, tmp_path: Path) -> None:
        """Test that the default strategy for other providers is embedded."""
        state = PipelineState(auth=AuthChoice(AuthProvider.FIREBASE))

        state = step_datastore(state, make_context(tmp_path))

        assert state.strategy is DatastoreStrategy.EMBEDDED
        assert state.datastore is not None
        assert state.datastore.connection_string.startswith("file:")

    def test_provisioning_warnings_collected(self, tmp_path: Path) -> None:
        """Test that a degraded provision continues with its warnings."""
        runner = FakeRunner(
            {"docker info": fail("Cannot connect to the Docker daemon")},
            available={"supabase", "docker"},
        )

        state = step_datastore(PipelineState(), make_context(tmp_path, runner))

        assert state.strategy is DatastoreStrategy.LOCAL_SERVICE
        assert state.datastore is not None and state.datastore.is_placeholder
        assert any("Container engine not reachable" in w for w in state.warnings)

    def test_provisioned_values_logged_redacted(self, tmp_path: Path) -> None:
        """Test that the debug log shows the datastore with shortened keys."""
        state = PipelineState(auth=AuthChoice(AuthProvider.FIREBASE))

        with patch("launchpad.pipeline.logger") as logger:
            state = step_datastore(state, make_context(tmp_path))

        assert state.datastore is not None
        logger.debug.assert_called_once_with(
            "Datastore provisioned: %s", state.datastore.to_dict()
        )

    def test_redaction_hides_service_keys(self, tmp_path: Path) -> None:
        """Test that a provisioned service key never appears whole in the log data."""
        runner = FakeRunner(
            {"docker info": fail("Cannot connect to the Docker daemon")},
            available={"supabase", "docker"},
        )

        state = step_datastore(PipelineState(), make_context(tmp_path, runner))

        assert state.datastore is not None
        logged = state.datastore.to_dict()
        assert state.datastore.write_credential not in logged.values()
        assert logged["write_credential"].endswith("…")


class TestFileSteps:
    """Tests for pruning, environment generation and verification."""

    def test_prune_environment_verify(self, template_project: Path) -> None:
        """Test that a pruned project with its env file verifies clean."""
        ctx = make_context(template_project)
        state = PipelineState(
            modules=frozenset({"stripe"}),
            strategy=DatastoreStrategy.EMBEDDED,
            datastore=DatastoreConfig(
                strategy=DatastoreStrategy.EMBEDDED, connection_string="file:dev.db"
            ),
            auth=AuthChoice(AuthProvider.FIREBASE),
        )

        state = step_prune(state, ctx)
        state = step_environment(state, ctx)
        state = step_verify(state, ctx)

        assert "src/services/mux" in state.removed_paths
        assert ".env.local" in state.written_files
        assert state.warnings == ()

    def test_verify_reports_leftovers(self, template_project: Path) -> None:
        """Test that an unpruned tree and missing env file are reported."""
        problems = verify_project(PipelineState(), make_context(template_project))

        assert ".env.local was not written" in problems
        assert "Pruned path still present: src/services/stripe" in problems

    def test_verify_reports_module_settings(self, template_project: Path) -> None:
        """Test that env keys of removed modules are reported."""
        ctx = make_context(template_project)
        state = step_prune(PipelineState(modules=frozenset()), ctx)
        (template_project / ".env.local").write_text("STRIPE_SECRET_KEY=sk_test\n")

        problems = verify_project(state, ctx)

        assert "Module stripe removed but its settings remain" in problems


class TestSetupPipeline:
    """Tests for SetupPipeline."""

    def test_default_step_order(self) -> None:
        """Test the wizard's fixed step sequence."""
        assert [s.name for s in default_steps()] == [
            "preflight",
            "platform",
            "modules",
            "auth",
            "datastore",
            "scaffold",
            "prune",
            "environment",
            "schema",
            "verify",
        ]

    def test_conditional_steps(self) -> None:
        """Test the branches decided by platform and strategy."""
        steps = {s.name: s for s in default_steps()}
        web_local = PipelineState(strategy=DatastoreStrategy.LOCAL_SERVICE)
        mobile = PipelineState(platforms=frozenset({Platform.MOBILE}))

        assert not steps["scaffold"].applies(web_local)
        assert steps["scaffold"].applies(mobile)
        assert steps["schema"].applies(web_local)
        assert not steps["schema"].applies(
            web_local.evolve(strategy=DatastoreStrategy.EMBEDDED)
        )

    def test_abort_stops_run(self, tmp_path: Path) -> None:
        """Test that SetupAborted ends the run with stopped=True."""
        calls: list[str] = []

        def first(state: PipelineState, ctx: StepContext) -> PipelineState:
            calls.append("first")
            return state

        def stop(state: PipelineState, ctx: StepContext) -> PipelineState:
            raise SetupAborted("operator said no")

        def never(state: PipelineState, ctx: StepContext) -> PipelineState:
            calls.append("never")
            return state

        steps = [
            PipelineStep("first", "First", first),
            PipelineStep("stop", "Stop", stop),
            PipelineStep("never", "Never", never),
        ]

        state = SetupPipeline(make_context(tmp_path), steps).run()

        assert state.stopped
        assert state.completed_steps == ("first",)
        assert calls == ["first"]

    def test_internal_errors_propagate(self, tmp_path: Path) -> None:
        """Test that unexpected exceptions are not swallowed."""

        def broken(state: PipelineState, ctx: StepContext) -> PipelineState:
            raise RuntimeError("boom")

        pipeline = SetupPipeline(make_context(tmp_path), [PipelineStep("broken", "Broken", broken)])

        with pytest.raises(RuntimeError, match="boom"):
            pipeline.run()

    def test_skipped_steps_not_completed(self, tmp_path: Path) -> None:
        """Test that steps that do not apply are not recorded."""
        steps = [PipelineStep("never", "Never", lambda s, c: s, lambda s: False)]

        state = SetupPipeline(make_context(tmp_path), steps).run()

        assert state.completed_steps == ()
        assert not state.stopped


class TestNextSteps:
    """Tests for the closing instructions."""

    def test_skip_and_seed(self) -> None:
        """Test lines for a skipped datastore and a seeded one."""
        config = LaunchpadConfig()

        skipped = next_steps(PipelineState(), config)
        seeded = next_steps(
            PipelineState(
                strategy=DatastoreStrategy.LOCAL_SERVICE,
                datastore=DatastoreConfig(
                    strategy=DatastoreStrategy.LOCAL_SERVICE,
                    dashboard_url="http://127.0.0.1:54323",
                ),
                schema=SchemaResult(success=True, seeded=True),
            ),
            config,
        )

        assert "Configure the datastore in .env.local" in skipped
        assert "Datastore dashboard: http://127.0.0.1:54323" in seeded
        assert "Log in with test@example.com / Testing123" in seeded

    def test_failed_schema_and_mobile(self) -> None:
        """Test lines for a failed schema push on a mobile project."""
        state = PipelineState(
            platforms=frozenset({Platform.WEB, Platform.MOBILE}),
            strategy=DatastoreStrategy.REMOTE_SERVICE,
            schema=SchemaResult(success=False),
        )

        lines = next_steps(state, LaunchpadConfig())

        assert "Apply the schema: npm run db:push" in lines
        assert "Start the mobile app: npm run expo:start" in lines
