"""Removal of setup artifacts so the wizard can start fresh.

Only files the wizard (or the app's first run) generates are removed.
Pruned modules are not restored; that needs a fresh clone. restore_defaults()
puts back the platform files that setup shapes: the web structure (copied
from a pristine checkout when one is given) and the default Expo files.
"""

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from launchpad.config import LaunchpadConfig
from launchpad.modules.platform import EXPO_ENTRY, PlatformScaffolder, expo_app_manifest
from launchpad.modules.pruner import PruneResult, remove_path

logger = logging.getLogger(__name__)

CACHE_PATHS = (".expo", "node_modules/.cache")

# Emptied but kept, so the router layout stays in place
CLEARED_DIRECTORIES = ("app/(tabs)",)

# (checkout path, fallback file, fallback template); the fallback is used
# when no pristine checkout is available
WEB_DEFAULTS = (
    ("src/app", "src/app/layout.tsx", "layout.tsx.j2"),
    ("src/middleware.ts", "src/middleware.ts", "middleware.ts.j2"),
)


def reset_targets(config: LaunchpadConfig) -> list[str]:
    """Project-relative paths removed by reset, in order."""
    db = config.paths.embedded_db
    return [
        config.paths.env_output,
        config.paths.mobile_env,
        db,
        f"{db}-shm",
        f"{db}-wal",
        *CACHE_PATHS,
    ]


@dataclass
class ResetResult:
    """Outcome of a reset.

    Attributes:
        removed: Paths deleted
        cleared: Directories emptied
        restored: Files put back to their defaults
        failed: (path, error) pairs
    """

    removed: list[str] = field(default_factory=list)
    cleared: list[str] = field(default_factory=list)
    restored: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


def clear_directory(root: Path, relative: str, result: ResetResult) -> None:
    """Delete the contents of a directory, keeping the directory itself."""
    directory = root / relative
    if not directory.is_dir():
        return
    children = PruneResult()
    for child in sorted(directory.iterdir()):
        remove_path(root, child.relative_to(root).as_posix(), children)
    result.failed.extend(children.failed)
    if children.removed:
        result.cleared.append(relative)


def reset_project(root: Path, config: LaunchpadConfig | None = None) -> ResetResult:
    """Delete generated artifacts under root; missing paths are skipped."""
    config = config or LaunchpadConfig()
    outcome = PruneResult()
    for relative in reset_targets(config):
        remove_path(root, relative, outcome)
    result = ResetResult(removed=outcome.removed, failed=outcome.failed)
    for relative in CLEARED_DIRECTORIES:
        clear_directory(root, relative, result)
    logger.debug(
        "Reset removed %d path(s), cleared %d directory(ies)",
        len(result.removed),
        len(result.cleared),
    )
    return result


def _write(root: Path, relative: str, content: str, result: ResetResult) -> None:
    target = root / relative
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.warning("Could not restore %s: %s", relative, e)
        result.failed.append((relative, str(e)))
        return
    result.restored.append(relative)


def _restore_web(
    root: Path,
    scaffolder: PlatformScaffolder,
    template_dir: Path | None,
    result: ResetResult,
) -> None:
    for relative, fallback, template in WEB_DEFAULTS:
        target = root / relative
        if target.exists():
            continue

        source = template_dir / relative if template_dir is not None else None
        if source is not None and source.exists():
            try:
                if source.is_dir():
                    shutil.copytree(source, target)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source, target)
            except OSError as e:
                logger.warning("Could not copy %s from %s: %s", relative, template_dir, e)
                result.failed.append((relative, str(e)))
                continue
            result.restored.append(relative)
            continue

        _write(root, fallback, scaffolder.render(template), result)


def restore_defaults(
    root: Path,
    template_dir: Path | None = None,
    app_name: str | None = None,
) -> ResetResult:
    """Put platform files back to their template defaults.

    Existing Expo files (app.json, app/index.tsx) are overwritten with the
    defaults; web files are only created where missing.

    Args:
        root: Project root
        template_dir: Pristine checkout of the template to copy web files from
        app_name: Name used in the Expo defaults (defaults to the root name)

    Returns:
        ResetResult listing restored files and failures
    """
    result = ResetResult()
    scaffolder = PlatformScaffolder(root, app_name=app_name)

    _restore_web(root, scaffolder, template_dir, result)

    if (root / "app.json").exists():
        manifest = json.dumps(expo_app_manifest(scaffolder.app_name), indent=2) + "\n"
        _write(root, "app.json", manifest, result)
        if not (root / "App.tsx").exists():
            _write(root, "App.tsx", EXPO_ENTRY, result)

    if (root / "app").is_dir():
        _write(root, "app/index.tsx", scaffolder.render("index.tsx.j2"), result)

    logger.debug("Restored %d file(s)", len(result.restored))
    return result
