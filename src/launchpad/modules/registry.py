"""Static registry of optional feature modules.

Each module owns whole directories in the template and one sentinel block in
the env template. Rules that depend on more than one pipeline decision
(platform and auth) are not expressed here; see CROSS_MODULE_CONSTRAINTS.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from launchpad.models.module import ModuleDescriptor, Platform
from launchpad.models.state import AuthChoice, AuthProvider

MODULE_REGISTRY: tuple[ModuleDescriptor, ...] = (
    ModuleDescriptor(
        id="stripe",
        display_name="Payments (Stripe)",
        source_paths=("src/services/stripe", "src/app/api/webhooks/stripe"),
        env_block_marker="STRIPE",
        default_selected=True,
        env_keys=(
            ("STRIPE_SECRET_KEY", "sk_test_..."),
            ("STRIPE_WEBHOOK_SECRET", "whsec_..."),
            ("NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY", "pk_test_..."),
        ),
    ),
    ModuleDescriptor(
        id="mux",
        display_name="Video (Mux)",
        source_paths=("src/services/mux",),
        env_block_marker="MUX",
        env_keys=(("MUX_TOKEN_ID", "..."), ("MUX_TOKEN_SECRET", "...")),
    ),
    ModuleDescriptor(
        id="twilio",
        display_name="SMS (Twilio)",
        source_paths=("src/services/twilio",),
        env_block_marker="TWILIO",
        env_keys=(
            ("TWILIO_ACCOUNT_SID", "..."),
            ("TWILIO_AUTH_TOKEN", "..."),
            ("TWILIO_PHONE_NUMBER", "..."),
        ),
    ),
    ModuleDescriptor(
        id="elevenlabs",
        display_name="Text-to-speech (ElevenLabs)",
        source_paths=("src/services/elevenlabs",),
        env_block_marker="ELEVENLABS",
        env_keys=(("ELEVENLABS_API_KEY", "..."),),
    ),
    ModuleDescriptor(
        id="inngest",
        display_name="Background jobs (Inngest)",
        source_paths=("src/inngest", "src/app/api/inngest"),
        env_block_marker="INNGEST",
        default_selected=True,
        platform_constraint=Platform.WEB,
        env_keys=(("INNGEST_EVENT_KEY", "local"), ("INNGEST_SIGNING_KEY", "local")),
    ),
)

# Files of the default auth adapter, owned by no module
AUTH_ADAPTER_PATHS: tuple[str, ...] = ("src/middleware.ts", "src/utils/supabase")

# Web structure removed when the server platform is not selected
WEB_STRUCTURE_PATHS: tuple[str, ...] = ("src/app", "src/middleware.ts", "next.config.ts")


def get_module(module_id: str) -> ModuleDescriptor:
    """Look up a module by id.

    Raises:
        KeyError: If the id is not registered
    """
    for module in MODULE_REGISTRY:
        if module.id == module_id:
            return module
    raise KeyError(f"Unknown module: {module_id}")


def available_modules(platforms: frozenset[Platform]) -> list[ModuleDescriptor]:
    """Modules that can be offered for the selected platforms."""
    return [m for m in MODULE_REGISTRY if m.is_available_for(platforms)]


def effective_modules(
    selected: Iterable[str],
    platforms: frozenset[Platform],
) -> frozenset[str]:
    """Filter a selection down to modules the platforms allow.

    The result is the single input to both pruning and env generation.
    Unknown ids are dropped.
    """
    wanted = set(selected)
    return frozenset(
        m.id for m in MODULE_REGISTRY if m.id in wanted and m.is_available_for(platforms)
    )


@dataclass(frozen=True)
class CrossModuleConstraint:
    """A removal rule depending on platform and auth together.

    Attributes:
        name: Short identifier for logs
        paths: Project-relative paths removed when the rule fires
        applies: Predicate over (platforms, auth)
        reason: Shown next to removed paths
    """

    name: str
    paths: tuple[str, ...]
    applies: Callable[[frozenset[Platform], AuthChoice], bool]
    reason: str = ""


CROSS_MODULE_CONSTRAINTS: tuple[CrossModuleConstraint, ...] = (
    CrossModuleConstraint(
        name="background-jobs-need-web",
        paths=get_module("inngest").source_paths,
        applies=lambda platforms, auth: Platform.WEB not in platforms,
        reason="background jobs run on the web server",
    ),
    CrossModuleConstraint(
        name="auth-adapter-needs-default-auth",
        paths=AUTH_ADAPTER_PATHS,
        applies=lambda platforms, auth: auth.provider is not AuthProvider.SUPABASE,
        reason="default auth not selected",
    ),
)
