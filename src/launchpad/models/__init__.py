"""Launchpad data models.

- state: PipelineState and the operator's choices
- module: ModuleDescriptor and Platform
- datastore: DatastoreConfig and DatastoreStrategy
"""

from launchpad.models.datastore import DatastoreConfig, DatastoreStrategy
from launchpad.models.module import ModuleDescriptor, Platform
from launchpad.models.state import AuthChoice, AuthProvider, PipelineState, SchemaResult

__all__ = [
    "AuthChoice",
    "AuthProvider",
    "DatastoreConfig",
    "DatastoreStrategy",
    "ModuleDescriptor",
    "PipelineState",
    "Platform",
    "SchemaResult",
]
