"""Pipeline state entities.

PipelineState accumulates the operator's decisions as the wizard advances.
It is frozen: each step returns a new state built with dataclasses.replace,
so a step can be exercised in isolation from a constructed state.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from launchpad.models.datastore import DatastoreConfig, DatastoreStrategy
from launchpad.models.module import Platform

if TYPE_CHECKING:
    from launchpad.utils.preflight import ReadinessReport
    from launchpad.utils.version import NegotiationResult


class AuthProvider(Enum):
    """Authentication provider for the generated application."""

    SUPABASE = "supabase"  # default managed auth, bundled with the datastore
    FIREBASE = "firebase"
    CUSTOM = "custom"


@dataclass(frozen=True)
class AuthChoice:
    """Selected auth provider.

    Attributes:
        provider: Provider kind
        custom_name: Operator-supplied name for CUSTOM (e.g. "Clerk")
    """

    provider: AuthProvider = AuthProvider.SUPABASE
    custom_name: str = ""

    @property
    def is_default(self) -> bool:
        return self.provider is AuthProvider.SUPABASE

    @property
    def label(self) -> str:
        """Human-readable provider name."""
        if self.provider is AuthProvider.CUSTOM and self.custom_name:
            return self.custom_name
        return self.provider.value


@dataclass(frozen=True)
class SchemaResult:
    """Outcome of the schema/seed step.

    Attributes:
        success: Schema applied
        seeded: Seed data loaded
    """

    success: bool
    seeded: bool = False


@dataclass(frozen=True)
class PipelineState:
    """Everything decided or produced so far in one wizard run.

    Attributes:
        platforms: Selected platforms
        modules: Effective module set (selection filtered by platform)
        auth: Auth provider choice
        strategy: Datastore strategy
        datastore: Connection values once provisioned
        report: Latest readiness report
        negotiation: Runtime version negotiation outcome
        removed_paths: Paths deleted by scaffolding and pruning
        written_files: Files written by the environment step
        schema: Schema/seed outcome
        warnings: Non-fatal problems collected along the way
        completed_steps: Names of steps that ran
        stopped: Operator ended the run early (exit code 0)
    """

    platforms: frozenset[Platform] = frozenset({Platform.WEB})
    modules: frozenset[str] = frozenset()
    auth: AuthChoice = field(default_factory=AuthChoice)
    strategy: DatastoreStrategy = DatastoreStrategy.SKIP
    datastore: DatastoreConfig | None = None
    report: "ReadinessReport | None" = None
    negotiation: "NegotiationResult | None" = None
    removed_paths: tuple[str, ...] = ()
    written_files: tuple[str, ...] = ()
    schema: SchemaResult | None = None
    warnings: tuple[str, ...] = ()
    completed_steps: tuple[str, ...] = ()
    stopped: bool = False

    @property
    def has_web(self) -> bool:
        return Platform.WEB in self.platforms

    @property
    def has_mobile(self) -> bool:
        return Platform.MOBILE in self.platforms

    def evolve(self, **changes: Any) -> "PipelineState":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def with_warnings(self, *messages: str) -> "PipelineState":
        """Return a copy with additional warnings."""
        return replace(self, warnings=(*self.warnings, *messages))
