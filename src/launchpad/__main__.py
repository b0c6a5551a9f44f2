"""Entry point for running Launchpad as a module.

Usage:
    python -m launchpad [command] [options]

Example:
    python -m launchpad setup
    python -m launchpad check --json
"""

from launchpad.cli import app

if __name__ == "__main__":
    app()
