"""Unit tests for preflight checks."""

import socket
from pathlib import Path
from unittest.mock import patch

import pytest

from launchpad.config import LaunchpadConfig, PortsConfig
from launchpad.utils.preflight import (
    GIB,
    DiskCheck,
    PortCheck,
    PreflightChecker,
    ReadinessReport,
    Severity,
    ToolCheck,
)
from tests.helpers import FakeRunner, fail, ok


@pytest.fixture
def bound_port():
    """Hold a listening socket on an ephemeral port for the test."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()


class TestPortCheck:
    """Tests for bind-and-release port probing."""

    def test_bound_port_unavailable(self, bound_port: int, tmp_path: Path) -> None:
        """Test that a port held by another socket is reported unavailable."""
        checker = PreflightChecker(root=tmp_path, runner=FakeRunner())

        check = checker.check_port(bound_port, "service API")

        assert not check.available
        assert check.purpose == "service API"

    def test_free_port_available(self, tmp_path: Path) -> None:
        """Test that a free port is reported available."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
        sock.close()

        check = PreflightChecker(root=tmp_path, runner=FakeRunner()).check_port(port)

        assert check.available

    @pytest.mark.parametrize("port", [70000, -1, "3000"])
    def test_invalid_port_reported_unavailable(self, tmp_path: Path, port: object) -> None:
        """Test that a port the socket layer rejects is unavailable, not an error."""
        check = PreflightChecker(root=tmp_path, runner=FakeRunner()).check_port(port)  # type: ignore[arg-type]

        assert not check.available

    def test_check_survives_out_of_range_port(self, tmp_path: Path) -> None:
        """Test that a full check with an unusable port still returns a report."""
        config = LaunchpadConfig(ports=PortsConfig(dev_server=70000))

        report = PreflightChecker(config, tmp_path, FakeRunner()).check()

        assert any(p.port == 70000 and not p.available for p in report.ports)


class TestToolChecks:
    """Tests for tool discovery."""

    def test_available_tool_reports_version(self, tmp_path: Path) -> None:
        """Test that an installed tool reports the first version line."""
        runner = FakeRunner({"node --version": ok("v20.11.1\n")}, available={"node"})
        checker = PreflightChecker(root=tmp_path, runner=runner)

        check = checker.check_tool(checker.tool_specs[0])

        assert check.available
        assert check.version == "v20.11.1"
        assert check.path == "/usr/bin/node"
        assert check.required

    def test_missing_tool_carries_install_hint(self, tmp_path: Path) -> None:
        """Test that a missing tool says how to install it."""
        checker = PreflightChecker(root=tmp_path, runner=FakeRunner())

        check = checker.check_tool(checker.tool_specs[0])

        assert not check.available
        assert "nodejs.org" in check.message

    def test_engine_not_installed_is_unknown(self, tmp_path: Path) -> None:
        """Test that a missing engine CLI gives None rather than False."""
        assert PreflightChecker(root=tmp_path, runner=FakeRunner()).check_engine() is None

    def test_engine_installed_but_stopped(self, tmp_path: Path) -> None:
        """Test that a failing engine query reports not running."""
        runner = FakeRunner({"docker info": fail("Cannot connect")}, available={"docker"})

        assert PreflightChecker(root=tmp_path, runner=runner).check_engine() is False


class TestReadinessReport:
    """Tests for report classification."""

    def test_check_never_raises_on_bare_host(self, tmp_path: Path) -> None:
        """Test that a host with nothing installed still produces a report."""
        report = PreflightChecker(LaunchpadConfig(), tmp_path, FakeRunner()).check()

        assert {t.name for t in report.blocking} == {"node", "npm"}
        assert not report.success
        assert report.engine_running is None
        assert len(report.ports) == 4

    def test_disk_query_failure_is_unknown(self, tmp_path: Path) -> None:
        """Test that a failed disk query gives an unknown, sufficient result."""
        checker = PreflightChecker(LaunchpadConfig(), tmp_path, FakeRunner())

        with patch("launchpad.utils.preflight.shutil.disk_usage", side_effect=OSError("EIO")):
            disk = checker.check_disk()

        assert not disk.known
        assert disk.sufficient
        assert disk.path == str(tmp_path)

    def test_only_required_tools_block(self) -> None:
        """Test that recommended tools, ports and disk only warn."""
        report = ReadinessReport(
            tools=(
                ToolCheck(name="node", available=True),
                ToolCheck(name="git", available=False, severity=Severity.RECOMMENDED),
            ),
            ports=(PortCheck(port=54321, available=False, purpose="service API"),),
            disk=DiskCheck(path="/", free_bytes=GIB, minimum_bytes=2 * GIB),
            engine_running=False,
        )

        assert report.success
        assert report.errors == []
        assert len(report.warnings) == 4
        assert any("54321" in w for w in report.warnings)
        assert any("Low disk space" in w for w in report.warnings)

    def test_unknown_disk_is_not_a_warning(self) -> None:
        """Test that an unknown free size counts as sufficient."""
        report = ReadinessReport(disk=DiskCheck(path="/", free_bytes=None, minimum_bytes=GIB))

        assert report.disk is not None and report.disk.sufficient
        assert report.warnings == []

    def test_to_dict(self) -> None:
        """Test JSON conversion."""
        report = ReadinessReport(tools=(ToolCheck(name="node", available=False),))

        data = report.to_dict()

        assert data["success"] is False
        assert data["tools"][0]["severity"] == "required"
        assert data["errors"] == ["Required tool not found: node"]
