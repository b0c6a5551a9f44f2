"""Datastore provisioning strategies.

Strategies:
- embedded: database file in the project, no external process
- local: containerized service started through its CLI
- remote: managed service, credentials entered or fetched through the CLI
"""

from launchpad.datastore.base import DatastoreProvisioner, ProvisionContext, ProvisioningError
from launchpad.datastore.embedded import EmbeddedProvisioner
from launchpad.datastore.local import LocalServiceProvisioner
from launchpad.datastore.registry import ProvisionerRegistry
from launchpad.datastore.remote import RemoteServiceProvisioner
from launchpad.datastore.schema import SchemaInitializer
from launchpad.datastore.status_report import StatusReport, parse_status_report
from launchpad.models.datastore import DatastoreStrategy

__all__ = [
    "DatastoreProvisioner",
    "EmbeddedProvisioner",
    "LocalServiceProvisioner",
    "ProvisionContext",
    "ProvisionerRegistry",
    "ProvisioningError",
    "RemoteServiceProvisioner",
    "SchemaInitializer",
    "StatusReport",
    "parse_status_report",
    "setup_default_provisioners",
]


def setup_default_provisioners(registry: ProvisionerRegistry | None = None) -> ProvisionerRegistry:
    """Register the built-in provisioners.

    Args:
        registry: Registry to populate (a new one if None)

    Returns:
        Populated ProvisionerRegistry
    """
    if registry is None:
        registry = ProvisionerRegistry()

    registry.register(DatastoreStrategy.LOCAL_SERVICE, LocalServiceProvisioner)
    registry.register(DatastoreStrategy.REMOTE_SERVICE, RemoteServiceProvisioner)
    registry.register(DatastoreStrategy.EMBEDDED, EmbeddedProvisioner)

    return registry
