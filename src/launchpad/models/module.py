"""Feature module entities."""

from dataclasses import dataclass, field
from enum import Enum


class Platform(Enum):
    """Target platforms. Not mutually exclusive."""

    WEB = "web"  # Next.js, the server platform
    MOBILE = "mobile"  # React Native / Expo


@dataclass(frozen=True)
class ModuleDescriptor:
    """Static description of an optional feature module.

    Attributes:
        id: Stable identifier used in selections
        display_name: Label shown in the selection prompt
        source_paths: Project-relative directories owned by the module
        env_block_marker: Name used in the env template sentinels
            (# --- MARKER START --- / # --- MARKER END ---)
        default_selected: Pre-selected in the prompt
        platform_constraint: Platform the module requires, if any
        env_keys: (key, placeholder) pairs of the module's env block
    """

    id: str
    display_name: str
    source_paths: tuple[str, ...]
    env_block_marker: str
    default_selected: bool = False
    platform_constraint: Platform | None = None
    env_keys: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    def is_available_for(self, platforms: frozenset[Platform]) -> bool:
        """Whether the module can be offered for the selected platforms."""
        return self.platform_constraint is None or self.platform_constraint in platforms
