"""Platform scaffolding.

Adds the mobile (Expo) structure when MOBILE is selected and removes the web
structure when WEB is not. Files are only created where absent, so
re-running never overwrites edits.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from launchpad.models.module import Platform
from launchpad.modules.pruner import PruneResult, remove_path
from launchpad.modules.registry import WEB_STRUCTURE_PATHS
from launchpad.templates.loader import get_template_environment

logger = logging.getLogger(__name__)

MOBILE_DIRECTORIES = ("app", "app/(tabs)", "app/lib", "components", "hooks", "utils")

# (target, template) pairs, written only when the target is absent
MOBILE_TEMPLATES = (
    ("app/index.tsx", "index.tsx.j2"),
    ("app/lib/motion.tsx", "motion.tsx.j2"),
    ("babel.config.js", "babel.config.js.j2"),
    ("tailwind.config.js", "tailwind.config.js.j2"),
    ("global.css", "global.css.j2"),
)

EXPO_ENTRY = "import 'expo-router/entry';\n"

# Color names that come with a -foreground pair in the NativeWind theme
PALETTE = ("primary", "secondary", "muted", "accent", "destructive")

LIGHT_TOKENS = (
    ("radius", "0.65rem"),
    ("background", "oklch(1 0 0)"),
    ("foreground", "oklch(0.141 0.005 285.823)"),
    ("card", "oklch(1 0 0)"),
    ("card-foreground", "oklch(0.141 0.005 285.823)"),
    ("popover", "oklch(1 0 0)"),
    ("popover-foreground", "oklch(0.141 0.005 285.823)"),
    ("primary", "oklch(0.606 0.25 292.717)"),
    ("primary-foreground", "oklch(0.969 0.016 293.756)"),
    ("secondary", "oklch(0.967 0.001 286.375)"),
    ("secondary-foreground", "oklch(0.21 0.006 285.885)"),
    ("muted", "oklch(0.967 0.001 286.375)"),
    ("muted-foreground", "oklch(0.552 0.016 285.938)"),
    ("accent", "oklch(0.967 0.001 286.375)"),
    ("accent-foreground", "oklch(0.21 0.006 285.885)"),
    ("destructive", "oklch(0.577 0.245 27.325)"),
    ("destructive-foreground", "oklch(0.985 0 0)"),
    ("border", "oklch(0.92 0.004 286.32)"),
    ("input", "oklch(0.92 0.004 286.32)"),
    ("ring", "oklch(0.606 0.25 292.717)"),
)

DARK_TOKENS = (
    ("background", "oklch(0.141 0.005 285.823)"),
    ("foreground", "oklch(0.985 0 0)"),
    ("card", "oklch(0.21 0.006 285.885)"),
    ("card-foreground", "oklch(0.985 0 0)"),
    ("popover", "oklch(0.21 0.006 285.885)"),
    ("popover-foreground", "oklch(0.985 0 0)"),
    ("primary", "oklch(0.541 0.281 293.009)"),
    ("primary-foreground", "oklch(0.969 0.016 293.756)"),
    ("secondary", "oklch(0.274 0.006 286.033)"),
    ("secondary-foreground", "oklch(0.985 0 0)"),
    ("muted", "oklch(0.274 0.006 286.033)"),
    ("muted-foreground", "oklch(0.705 0.015 286.067)"),
    ("accent", "oklch(0.274 0.006 286.033)"),
    ("accent-foreground", "oklch(0.985 0 0)"),
    ("destructive", "oklch(0.704 0.191 22.216)"),
    ("destructive-foreground", "oklch(0.985 0 0)"),
    ("border", "oklch(1 0 0 / 10%)"),
    ("input", "oklch(1 0 0 / 15%)"),
    ("ring", "oklch(0.541 0.281 293.009)"),
)

EXPO_SCRIPTS = {
    "expo:start": "expo start",
    "expo:android": "expo start --android",
    "expo:ios": "expo start --ios",
    "expo:web": "expo start --web",
}


def expo_app_manifest(name: str) -> dict:
    """Minimal Expo app.json content."""
    slug = name.lower().replace(" ", "-")
    return {
        "expo": {
            "name": name,
            "slug": slug,
            "version": "1.0.0",
            "orientation": "portrait",
            "userInterfaceStyle": "automatic",
            "assetBundlePatterns": ["**/*"],
            "ios": {"supportsTablet": True},
            "plugins": ["expo-router"],
            "scheme": slug,
        }
    }


@dataclass
class ScaffoldResult:
    """Outcome of platform scaffolding.

    Attributes:
        created: Files written
        updated: Existing files modified (package.json scripts)
        removed: Web structure paths deleted
        failed: (path, error) pairs
    """

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


class PlatformScaffolder:
    """Shapes the project tree for the selected platforms.

    Usage:
        result = PlatformScaffolder(root).scaffold(state.platforms)
    """

    def __init__(self, root: Path, app_name: str | None = None) -> None:
        self.root = root
        self.app_name = app_name or root.resolve().name or "app"
        self._env = get_template_environment()

    def render(self, template: str) -> str:
        """Render a scaffold template for this project."""
        return self._env.get_template(template).render(
            app_name=self.app_name,
            palette=PALETTE,
            themes=[(":root", LIGHT_TOKENS), (".dark", DARK_TOKENS)],
        )

    def _write_if_absent(self, relative: str, content: str, result: ScaffoldResult) -> None:
        target = self.root / relative
        if target.exists():
            return
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not create %s: %s", relative, e)
            result.failed.append((relative, str(e)))
            return
        result.created.append(relative)

    def _add_expo_scripts(self, result: ScaffoldResult) -> None:
        package_json = self.root / "package.json"
        if not package_json.exists():
            return
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read package.json: %s", e)
            result.failed.append(("package.json", str(e)))
            return

        scripts = data.setdefault("scripts", {})
        missing = {k: v for k, v in EXPO_SCRIPTS.items() if k not in scripts}
        if not missing:
            return
        scripts.update(missing)
        try:
            package_json.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            result.failed.append(("package.json", str(e)))
            return
        result.updated.append("package.json")

    def scaffold_mobile(self, result: ScaffoldResult) -> None:
        """Create the Expo structure where it is missing."""
        for directory in MOBILE_DIRECTORIES:
            try:
                (self.root / directory).mkdir(parents=True, exist_ok=True)
            except OSError as e:
                result.failed.append((directory, str(e)))

        self._write_if_absent(
            "app.json",
            json.dumps(expo_app_manifest(self.app_name), indent=2) + "\n",
            result,
        )
        for relative, template in MOBILE_TEMPLATES:
            if (self.root / relative).exists():
                continue
            self._write_if_absent(relative, self.render(template), result)
        self._add_expo_scripts(result)

    def remove_web(self, result: ScaffoldResult) -> None:
        """Delete the web structure."""
        removed = PruneResult()
        for path in WEB_STRUCTURE_PATHS:
            remove_path(self.root, path, removed)
        result.removed.extend(removed.removed)
        result.failed.extend(removed.failed)

    def scaffold(self, platforms: frozenset[Platform]) -> ScaffoldResult:
        """Apply platform structure for the given selection."""
        result = ScaffoldResult()
        if Platform.MOBILE in platforms:
            self.scaffold_mobile(result)
        if Platform.WEB not in platforms:
            self.remove_web(result)
        return result
