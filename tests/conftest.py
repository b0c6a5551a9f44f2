"""Shared pytest fixtures for Launchpad tests.

Fixtures are organized by category:
- Project fixtures: a miniature starter template on disk
- Prompt fixtures: a prompter answering by prompt key
- Process fixtures: a runner on which nothing is installed
"""

from pathlib import Path

import pytest

from tests.helpers import FakeRunner, ScriptedPrompter, make_project

# =============================================================================
# Project Fixtures
# =============================================================================


@pytest.fixture
def template_project(tmp_path: Path) -> Path:
    """Create a miniature starter template with every module present."""
    return make_project(tmp_path / "starter")


@pytest.fixture
def bare_project(tmp_path: Path) -> Path:
    """Create a project directory without an env template."""
    root = tmp_path / "bare"
    root.mkdir()
    return root


# =============================================================================
# Prompt Fixtures
# =============================================================================


@pytest.fixture
def prompter() -> ScriptedPrompter:
    """Return a prompter that takes every default."""
    return ScriptedPrompter()


# =============================================================================
# Process Fixtures
# =============================================================================


@pytest.fixture
def runner() -> FakeRunner:
    """Return a runner on which nothing is installed."""
    return FakeRunner()
