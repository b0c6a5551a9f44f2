"""Removal of unselected module source trees.

Pruning is driven purely by what exists on disk: a path already gone is
skipped, so an interrupted prune is finished by running it again.
"""

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from launchpad.models.module import ModuleDescriptor, Platform
from launchpad.models.state import AuthChoice
from launchpad.modules.registry import (
    CROSS_MODULE_CONSTRAINTS,
    MODULE_REGISTRY,
    CrossModuleConstraint,
)

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    """Outcome of a prune.

    Attributes:
        removed: Project-relative paths deleted by this call
        failed: (path, error) pairs for paths that could not be deleted
    """

    removed: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


def remove_path(root: Path, relative: str, result: PruneResult) -> None:
    """Delete a file or directory under root, recording the outcome.

    A missing path is not an error.
    """
    target = root / relative
    if not target.exists() and not target.is_symlink():
        return
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
    except OSError as e:
        logger.warning("Could not remove %s: %s", relative, e)
        result.failed.append((relative, str(e)))
        return
    logger.debug("Removed %s", relative)
    result.removed.append(relative)


class ModulePruner:
    """Deletes source trees of modules that were not selected.

    Never edits files inside kept modules.

    Usage:
        pruner = ModulePruner(project_root)
        result = pruner.prune(state.modules, platforms=state.platforms, auth=state.auth)
    """

    def __init__(
        self,
        root: Path,
        registry: Iterable[ModuleDescriptor] = MODULE_REGISTRY,
        constraints: Iterable[CrossModuleConstraint] = CROSS_MODULE_CONSTRAINTS,
    ) -> None:
        self.root = root
        self.registry = tuple(registry)
        self.constraints = tuple(constraints)

    def prune(
        self,
        selected: Iterable[str],
        *,
        platforms: frozenset[Platform] = frozenset({Platform.WEB}),
        auth: AuthChoice | None = None,
    ) -> PruneResult:
        """Remove every unselected module, then apply cross-module constraints.

        Args:
            selected: Effective module ids to keep
            platforms: Selected platforms
            auth: Auth choice (default auth if None)

        Returns:
            PruneResult listing removed and failed paths
        """
        keep = set(selected)
        auth = auth or AuthChoice()
        result = PruneResult()

        for module in self.registry:
            if module.id in keep:
                continue
            for path in module.source_paths:
                remove_path(self.root, path, result)

        for constraint in self.constraints:
            if not constraint.applies(platforms, auth):
                continue
            logger.debug("Applying constraint %s", constraint.name)
            for path in constraint.paths:
                remove_path(self.root, path, result)

        return result

    def leftover_paths(
        self,
        selected: Iterable[str],
        *,
        platforms: frozenset[Platform] = frozenset({Platform.WEB}),
        auth: AuthChoice | None = None,
    ) -> list[str]:
        """Paths that prune() should have removed but still exist."""
        keep = set(selected)
        auth = auth or AuthChoice()
        expected: list[str] = [
            path
            for module in self.registry
            if module.id not in keep
            for path in module.source_paths
        ]
        for constraint in self.constraints:
            if constraint.applies(platforms, auth):
                expected.extend(constraint.paths)
        return [p for p in dict.fromkeys(expected) if (self.root / p).exists()]
