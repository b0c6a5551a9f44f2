"""Integration tests for Launchpad CLI commands.

Host checks are replaced by canned reports so exit codes do not depend on
the machine running the tests.
"""

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from launchpad import __version__
from launchpad.cli import app
from launchpad.models.state import PipelineState
from launchpad.pipeline import SetupPipeline
from launchpad.utils.preflight import (
    DiskCheck,
    PortCheck,
    PreflightChecker,
    ReadinessReport,
    Severity,
    ToolCheck,
)
from launchpad.utils.version import VersionCheck, VersionNegotiator, VersionStatus

runner = CliRunner()

NODE = ToolCheck(name="node", available=True, version="v20.11.1", path="/usr/bin/node")
NPM = ToolCheck(name="npm", available=True, version="10.2.4", path="/usr/bin/npm")
DOCKER_MISSING = ToolCheck(
    name="docker",
    available=False,
    severity=Severity.RECOMMENDED,
    message="Install Docker Desktop: https://docs.docker.com/get-docker/",
)
FREE_PORT = PortCheck(port=3000, available=True, purpose="dev server")
DISK = DiskCheck(path="/work", free_bytes=50 * 1024**3, minimum_bytes=2 * 1024**3)


def fake_host(
    monkeypatch: pytest.MonkeyPatch,
    report: ReadinessReport,
    runtime: VersionCheck,
) -> None:
    """Make preflight and the version check return canned results."""
    monkeypatch.setattr(PreflightChecker, "check", lambda self: report)
    monkeypatch.setattr(VersionNegotiator, "check", lambda self: runtime)


COMPATIBLE = VersionCheck(
    status=VersionStatus.COMPATIBLE, installed="v20.11.1", recommended="20", minimum=20
)


class TestGlobalOptions:
    """Tests for options handled by the app callback."""

    def test_version(self) -> None:
        """Test that --version prints and exits 0."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"launchpad {__version__}" in result.output

    def test_missing_config_file_rejected(self, tmp_path: Path) -> None:
        """Test that --config must point at an existing file."""
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "check"])

        assert result.exit_code == 2

    def test_invalid_config_exits_1(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a config with unknown keys fails cleanly."""
        config_file = tmp_path / "launchpad.yaml"
        config_file.write_text("runtime:\n  flavour: bun\n")
        fake_host(monkeypatch, ReadinessReport(tools=(NODE, NPM)), COMPATIBLE)

        result = runner.invoke(
            app, ["--config", str(config_file), "check", "--root", str(tmp_path)]
        )

        assert result.exit_code == 1


class TestInitCommand:
    """Tests for `launchpad init`."""

    def test_init_creates_config(self, tmp_path: Path) -> None:
        """Test that init writes the default config."""
        result = runner.invoke(app, ["init", "--root", str(tmp_path)])

        assert result.exit_code == 0
        config_file = tmp_path / ".launchpad" / "config.yaml"
        assert config_file.exists()
        assert "runtime:" in config_file.read_text()
        assert "Launchpad configuration initialized" in result.output

    def test_init_refuses_overwrite(self, tmp_path: Path) -> None:
        """Test that an existing config is kept without --force."""
        config_file = tmp_path / ".launchpad" / "config.yaml"
        config_file.parent.mkdir()
        config_file.write_text("# mine\n")

        result = runner.invoke(app, ["init", "--root", str(tmp_path)])

        assert result.exit_code == 1
        assert config_file.read_text() == "# mine\n"

    def test_init_force(self, tmp_path: Path) -> None:
        """Test that --force replaces an existing config."""
        config_file = tmp_path / ".launchpad" / "config.yaml"
        config_file.parent.mkdir()
        config_file.write_text("# mine\n")

        result = runner.invoke(app, ["init", "--root", str(tmp_path), "--force"])

        assert result.exit_code == 0
        assert config_file.read_text() != "# mine\n"


class TestCheckCommand:
    """Tests for `launchpad check` exit codes."""

    def test_ready(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a ready host exits 0."""
        fake_host(
            monkeypatch,
            ReadinessReport(tools=(NODE, NPM), ports=(FREE_PORT,), disk=DISK),
            COMPATIBLE,
        )

        result = runner.invoke(app, ["check", "--root", str(tmp_path)])

        assert result.exit_code == 0
        assert "Preflight Check Results" in result.output
        assert "✅ node (v20.11.1) [required]" in result.output
        assert "All preflight checks passed" in result.output

    def test_warnings_exit_2(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that missing recommended tools exit 2."""
        fake_host(monkeypatch, ReadinessReport(tools=(NODE, NPM, DOCKER_MISSING)), COMPATIBLE)

        result = runner.invoke(app, ["check", "--root", str(tmp_path)])

        assert result.exit_code == 2
        assert "Recommended tool not found: docker" in result.output

    def test_missing_required_exit_1(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a missing required tool exits 1."""
        npm_missing = ToolCheck(name="npm", available=False, message="Ships with node")
        fake_host(monkeypatch, ReadinessReport(tools=(NODE, npm_missing)), COMPATIBLE)

        result = runner.invoke(app, ["check", "--root", str(tmp_path)])

        assert result.exit_code == 1
        assert "Required tool not found: npm" in result.output

    def test_old_runtime_exit_1(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an installed runtime below the minimum exits 1."""
        old = VersionCheck(
            status=VersionStatus.OLDER_THAN_MINIMUM,
            installed="v18.0.0",
            recommended="20",
            minimum=20,
        )
        fake_host(monkeypatch, ReadinessReport(tools=(NODE, NPM)), old)

        result = runner.invoke(app, ["check", "--root", str(tmp_path)])

        assert result.exit_code == 1
        assert "node v18.0.0 is older than v20" in result.output

    def test_newer_runtime_exit_2(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a newer runtime is only a warning."""
        newer = VersionCheck(
            status=VersionStatus.NEWER_THAN_RECOMMENDED,
            installed="v22.1.0",
            recommended="20",
            minimum=20,
        )
        fake_host(monkeypatch, ReadinessReport(tools=(NODE, NPM)), newer)

        result = runner.invoke(app, ["check", "--root", str(tmp_path)])

        assert result.exit_code == 2

    def test_json_output(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that --json prints one parseable document."""
        fake_host(
            monkeypatch,
            ReadinessReport(tools=(NODE, NPM, DOCKER_MISSING), disk=DISK),
            COMPATIBLE,
        )

        result = runner.invoke(app, ["check", "--root", str(tmp_path), "--json"])

        assert result.exit_code == 2
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert data["runtime"]["status"] == "compatible"
        assert data["warnings"] == ["Recommended tool not found: docker"]
        assert [t["name"] for t in data["tools"]] == ["node", "npm", "docker"]


class TestResetCommand:
    """Tests for `launchpad reset`."""

    def test_reset_yes(self, tmp_path: Path) -> None:
        """Test that --yes removes generated files without asking."""
        (tmp_path / ".env.local").write_text("A=1\n")
        (tmp_path / "dev.db").write_text("")

        result = runner.invoke(app, ["reset", "--root", str(tmp_path), "--yes"])

        assert result.exit_code == 0
        assert "Removed: .env.local" in result.output
        assert not (tmp_path / "dev.db").exists()

    def test_reset_cancelled(self, tmp_path: Path) -> None:
        """Test that answering no keeps everything."""
        (tmp_path / ".env.local").write_text("A=1\n")

        result = runner.invoke(app, ["reset", "--root", str(tmp_path)], input="n\n")

        assert result.exit_code == 0
        assert "Reset cancelled." in result.output
        assert (tmp_path / ".env.local").exists()

    def test_reset_nothing(self, tmp_path: Path) -> None:
        """Test that a clean project reports nothing to remove."""
        result = runner.invoke(app, ["reset", "--root", str(tmp_path), "--yes", "--no-restore"])

        assert result.exit_code == 0
        assert "Nothing to remove" in result.output
        assert list(tmp_path.iterdir()) == []

    def test_reset_restores_defaults(self, tmp_path: Path) -> None:
        """Test that --yes also restores the default platform files."""
        (tmp_path / "app" / "(tabs)").mkdir(parents=True)
        (tmp_path / "app" / "(tabs)" / "home.tsx").write_text("// tab\n")
        (tmp_path / "app.json").write_text("{}\n")

        result = runner.invoke(app, ["reset", "--root", str(tmp_path), "--yes"])

        assert result.exit_code == 0
        assert "Cleared: app/(tabs)/" in result.output
        assert "Restored: app.json" in result.output
        assert "Restored: src/app/layout.tsx" in result.output
        assert (tmp_path / "App.tsx").exists()

    def test_reset_asks_before_restoring(self, tmp_path: Path) -> None:
        """Test that declining the restore prompt leaves the tree as reset left it."""
        (tmp_path / ".env.local").write_text("A=1\n")

        result = runner.invoke(app, ["reset", "--root", str(tmp_path)], input="y\nn\n")

        assert result.exit_code == 0
        assert "Restore default template files" in result.output
        assert not (tmp_path / "src").exists()


class TestSetupCommand:
    """Tests for `launchpad setup` exit codes."""

    def test_completed(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a finished run exits 0."""
        monkeypatch.setattr(
            SetupPipeline, "run", lambda self: PipelineState(completed_steps=("preflight",))
        )

        result = runner.invoke(app, ["setup", "--root", str(tmp_path), "--yes"])

        assert result.exit_code == 0
        assert "Launchpad setup" in result.output

    def test_stopped_by_operator(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a run the operator stopped still exits 0."""
        monkeypatch.setattr(SetupPipeline, "run", lambda self: PipelineState(stopped=True))

        result = runner.invoke(app, ["setup", "--root", str(tmp_path)])

        assert result.exit_code == 0

    def test_cancelled(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that Ctrl-C at a prompt exits 0."""

        def interrupted(self: SetupPipeline) -> PipelineState:
            raise typer.Abort()

        monkeypatch.setattr(SetupPipeline, "run", interrupted)

        result = runner.invoke(app, ["setup", "--root", str(tmp_path)])

        assert result.exit_code == 0
        assert "Setup cancelled" in result.output

    def test_internal_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an unexpected exception exits 1."""

        def broken(self: SetupPipeline) -> PipelineState:
            raise RuntimeError("boom")

        monkeypatch.setattr(SetupPipeline, "run", broken)

        result = runner.invoke(app, ["setup", "--root", str(tmp_path)])

        assert result.exit_code == 1

    def test_root_must_exist(self, tmp_path: Path) -> None:
        """Test that a missing project root is a usage error."""
        result = runner.invoke(app, ["setup", "--root", str(tmp_path / "missing")])

        assert result.exit_code == 2
