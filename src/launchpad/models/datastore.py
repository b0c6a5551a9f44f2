"""Datastore connection entities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DatastoreStrategy(Enum):
    """How the backing datastore is provided. Exactly one per run."""

    LOCAL_SERVICE = "local"  # containerized service on this machine
    REMOTE_SERVICE = "remote"  # managed service in the cloud
    EMBEDDED = "embedded"  # file-based store, no external process
    SKIP = "skip"  # configure later by hand

    @property
    def is_relational_service(self) -> bool:
        """Whether schema push and seeding apply to this strategy."""
        return self in (DatastoreStrategy.LOCAL_SERVICE, DatastoreStrategy.REMOTE_SERVICE)


@dataclass(frozen=True)
class DatastoreConfig:
    """Connection values produced by a provisioner.

    Lives only long enough to be written into the environment file.

    Attributes:
        strategy: Strategy that produced these values
        endpoint_url: Public API endpoint
        read_credential: Public (anon / publishable) key
        write_credential: Privileged (service role / secret) key
        connection_string: Database connection string or file URL
        dashboard_url: Local dashboard, when there is one
        warnings: Problems met while provisioning
        is_placeholder: True when values are defaults or placeholders
            that the operator must replace by hand
    """

    strategy: DatastoreStrategy
    endpoint_url: str = ""
    read_credential: str = ""
    write_credential: str = ""
    connection_string: str = ""
    dashboard_url: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)
    is_placeholder: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logs, with credentials shortened."""

        def _secret(value: str) -> str:
            if not value:
                return value
            return value[:6] + "…" if len(value) > 6 else "…"

        return {
            "strategy": self.strategy.value,
            "endpoint_url": self.endpoint_url,
            "read_credential": _secret(self.read_credential),
            "write_credential": _secret(self.write_credential),
            "connection_string": self.connection_string,
            "dashboard_url": self.dashboard_url,
            "warnings": list(self.warnings),
            "is_placeholder": self.is_placeholder,
        }
