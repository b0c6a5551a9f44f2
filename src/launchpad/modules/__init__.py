"""Feature modules: registry, pruning and platform scaffolding."""

from launchpad.modules.platform import PlatformScaffolder, ScaffoldResult
from launchpad.modules.pruner import ModulePruner, PruneResult
from launchpad.modules.registry import (
    CROSS_MODULE_CONSTRAINTS,
    MODULE_REGISTRY,
    CrossModuleConstraint,
    available_modules,
    effective_modules,
    get_module,
)

__all__ = [
    "CROSS_MODULE_CONSTRAINTS",
    "MODULE_REGISTRY",
    "CrossModuleConstraint",
    "ModulePruner",
    "PlatformScaffolder",
    "PruneResult",
    "ScaffoldResult",
    "available_modules",
    "effective_modules",
    "get_module",
]
