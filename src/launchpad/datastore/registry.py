"""Provisioner registry.

Maps each datastore strategy to the provisioner class implementing it.
Adding a strategy means implementing DatastoreProvisioner and registering
it here; the pipeline only talks to the registry.
"""

from typing import Any

from launchpad.adapters.base import ToolNotAvailableError
from launchpad.datastore.base import DatastoreProvisioner, ProvisionContext
from launchpad.models.datastore import DatastoreStrategy


class ProvisionerRegistry:
    """Registry of provisioner classes by strategy.

    SKIP is deliberately never registered: skipping produces no config.
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._provisioners: dict[DatastoreStrategy, type[DatastoreProvisioner]] = {}

    def register(
        self,
        strategy: DatastoreStrategy,
        provisioner_class: type[DatastoreProvisioner],
    ) -> None:
        """Register a provisioner class for a strategy.

        Args:
            strategy: Strategy the class implements
            provisioner_class: DatastoreProvisioner subclass
        """
        self._provisioners[strategy] = provisioner_class

    def get(self, strategy: DatastoreStrategy, context: ProvisionContext) -> DatastoreProvisioner:
        """Instantiate the provisioner for a strategy.

        Raises:
            ToolNotAvailableError: If no provisioner is registered for it
        """
        if strategy not in self._provisioners:
            available = [s.value for s in self._provisioners]
            raise ToolNotAvailableError(
                strategy.value,
                f"No provisioner registered for '{strategy.value}'. Available: {available}",
            )
        return self._provisioners[strategy](context)

    def has(self, strategy: DatastoreStrategy) -> bool:
        return strategy in self._provisioners

    def get_metadata(self) -> dict[str, Any]:
        """Get registry metadata for logging and debugging."""
        return {
            "provisioners": {s.value: cls.__name__ for s, cls in self._provisioners.items()},
        }
