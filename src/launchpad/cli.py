"""Launchpad CLI interface.

Commands:
- setup: Run the interactive setup wizard
- check: Report host readiness and runtime version
- init: Write a default configuration file
- reset: Remove generated setup artifacts

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --version: Show version and exit
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from launchpad import __version__
from launchpad.config import LaunchpadConfig, create_default_config, load_config
from launchpad.utils.logging import configure_from_cli, get_logger

# Create Typer app
app = typer.Typer(
    name="launchpad",
    help="Interactive setup wizard for the starter template",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config_path: Path | None = None
_logger = get_logger()

RootOption = Annotated[
    Path | None,
    typer.Option(
        "--root",
        "-r",
        help="Project root (defaults to the current directory)",
        exists=True,
        file_okay=False,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"launchpad {__version__}")
        raise typer.Exit()


def _load(root: Path) -> LaunchpadConfig:
    """Load configuration for a project root, exiting 1 on errors."""
    try:
        config = load_config(config_path=_config_path, root=root)
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except (ValueError, OSError) as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)
    if config.config_path:
        _logger.debug(f"Loaded config from: {config.config_path}")
    return config


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON log output",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Launchpad - configure a freshly cloned starter template.

    Checks your machine, picks the modules you want, provisions a datastore
    and writes the environment file the app needs.
    """
    global _config_path

    # Configure logging based on CLI flags
    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)
    _config_path = config


# =============================================================================
# setup command
# =============================================================================


@app.command()
def setup(
    root: RootOption = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Accept every default without prompting",
        ),
    ] = False,
) -> None:
    """Run the setup wizard.

    Exit codes:
        0: Setup completed, or stopped by the operator
        1: Internal error
    """
    from launchpad.adapters.process import ProcessRunner
    from launchpad.datastore import ProvisionerRegistry, setup_default_provisioners
    from launchpad.pipeline import SetupPipeline, StepContext
    from launchpad.utils.prompts import Prompter

    project_root = (root or Path.cwd()).resolve()
    config = _load(project_root)

    context = StepContext(
        root=project_root,
        config=config,
        runner=ProcessRunner(
            cwd=project_root,
            status_interval=config.timeouts.status_interval,
        ),
        prompter=Prompter(assume_defaults=yes),
        provisioners=setup_default_provisioners(ProvisionerRegistry()),
    )
    _logger.structured(
        logging.DEBUG, "Provisioners registered", **context.provisioners.get_metadata()
    )

    typer.secho("\n🚀 Launchpad setup", bold=True)
    typer.echo(f"   Project: {project_root}")

    try:
        state = SetupPipeline(context).run()
    except (typer.Abort, KeyboardInterrupt):
        typer.secho("\nSetup cancelled. Re-run setup any time.", fg="yellow")
        raise typer.Exit(0)
    except Exception as e:
        _logger.error(f"Setup failed: {e}")
        _logger.debug("Traceback", exc_info=True)
        raise typer.Exit(1)

    _logger.structured(
        logging.INFO,
        "Setup finished",
        completed_steps=list(state.completed_steps),
        stopped=state.stopped,
        warnings=len(state.warnings),
    )
    raise typer.Exit(0)


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    root: RootOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results as JSON",
        ),
    ] = False,
) -> None:
    """Report host readiness without changing anything.

    Exit codes:
        0: Ready
        1: Required tool missing or runtime older than the minimum
        2: Ready with warnings
    """
    from launchpad.utils.preflight import PreflightChecker
    from launchpad.utils.version import VersionNegotiator, VersionStatus

    project_root = (root or Path.cwd()).resolve()
    config = _load(project_root)

    checker = PreflightChecker(config, project_root)
    report = checker.check()
    runtime = VersionNegotiator(config, project_root, checker.runner).check()

    errors = list(report.errors)
    warnings = list(report.warnings)
    runtime_name = config.runtime.command
    if runtime.status is VersionStatus.OLDER_THAN_MINIMUM and runtime.installed:
        errors.append(f"{runtime_name} {runtime.installed} is older than v{runtime.minimum}")
    elif runtime.status is VersionStatus.NEWER_THAN_RECOMMENDED:
        warnings.append(
            f"{runtime_name} {runtime.installed} is newer than the recommended v{runtime.recommended}"
        )

    if json_output:
        payload = report.to_dict()
        payload.update(
            {
                "runtime": {
                    "status": runtime.status.value,
                    "installed": runtime.installed,
                    "recommended": runtime.recommended,
                    "minimum": runtime.minimum,
                },
                "errors": errors,
                "warnings": warnings,
                "success": not errors,
            }
        )
        typer.echo(json.dumps(payload, indent=2))
    else:
        # Human-readable output
        typer.echo("\n🔍 Preflight Check Results\n")

        for tool in report.tools:
            status = "✅" if tool.available else "❌"
            version_str = f" ({tool.version})" if tool.version else ""
            required_str = " [required]" if tool.required else " [recommended]"

            typer.echo(f"  {status} {tool.name}{version_str}{required_str}")
            if tool.available and tool.path:
                typer.echo(f"     └─ {tool.path}")
            elif not tool.available:
                typer.echo(f"     └─ {tool.message}")

        for port in report.ports:
            status = "✅" if port.available else "⚠️ "
            typer.echo(f"  {status} port {port.port} ({port.purpose})")

        if report.disk is not None:
            free = (
                f"{report.disk.free_bytes / 1024**3:.1f} GB free"
                if report.disk.known
                else "free space unknown"
            )
            typer.echo(f"  💾 {free}")

        typer.echo()

    if errors:
        if not json_output:
            typer.echo("❌ Preflight check FAILED")
            for error in errors:
                typer.echo(f"   • {error}")
        raise typer.Exit(1)
    elif warnings:
        if not json_output:
            typer.echo("⚠️  Preflight check passed with WARNINGS")
            for warning in warnings:
                typer.echo(f"   • {warning}")
        raise typer.Exit(2)
    else:
        if not json_output:
            typer.echo("✅ All preflight checks passed")
        raise typer.Exit(0)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    root: RootOption = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Write a default configuration file to .launchpad/config.yaml."""
    project_root = (root or Path.cwd()).resolve()
    config_dir = project_root / ".launchpad"
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_dir.mkdir(exist_ok=True)
    config_file.write_text(create_default_config(), encoding="utf-8")
    _logger.info(f"Created config: {config_file}")

    typer.echo("\n✅ Launchpad configuration initialized")
    typer.echo(f"   Config: {config_file}")
    raise typer.Exit(0)


# =============================================================================
# reset command
# =============================================================================


@app.command()
def reset(
    root: RootOption = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Do not ask for confirmation",
        ),
    ] = False,
    restore: Annotated[
        bool | None,
        typer.Option(
            "--restore/--no-restore",
            help="Restore default platform files (asked when omitted)",
        ),
    ] = None,
    template_dir: Annotated[
        Path | None,
        typer.Option(
            "--template-dir",
            help="Pristine template checkout to copy the web structure from",
            exists=True,
            file_okay=False,
        ),
    ] = None,
) -> None:
    """Remove files generated by setup so it can be run again.

    Exit codes:
        0: Reset done (or cancelled)
        1: Some paths could not be removed or restored
    """
    from launchpad.reset import reset_project, reset_targets, restore_defaults

    project_root = (root or Path.cwd()).resolve()
    config = _load(project_root)

    typer.echo("\n🔄 Reset setup")
    typer.echo("   Removes: " + ", ".join(reset_targets(config)))
    if not yes and not typer.confirm("Delete these setup artifacts?", default=False):
        typer.echo("Reset cancelled.")
        raise typer.Exit(0)

    result = reset_project(project_root, config)
    for path in result.removed:
        typer.echo(f"  ✅ Removed: {path}")
    for path in result.cleared:
        typer.echo(f"  ✅ Cleared: {path}/")
    for path, error in result.failed:
        typer.secho(f"  ⚠️  Could not remove {path}: {error}", fg="yellow")

    if not (result.removed or result.cleared or result.failed):
        typer.echo("  Nothing to remove")

    if restore is None:
        restore = yes or typer.confirm(
            "Restore default template files (web structure, Expo files)?", default=True
        )
    if restore:
        restored = restore_defaults(project_root, template_dir=template_dir)
        for path in restored.restored:
            typer.echo(f"  ✅ Restored: {path}")
        for path, error in restored.failed:
            typer.secho(f"  ⚠️  Could not restore {path}: {error}", fg="yellow")
        result.failed.extend(restored.failed)

    if result.failed:
        raise typer.Exit(1)
    typer.echo("\n✅ Reset complete. Run `launchpad setup` to start again.")
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
