"""Environment file generation.

Builds the app's environment file from a marked-up template. Each module
owns a block between paired sentinel comments:

    # --- STRIPE START ---
    STRIPE_SECRET_KEY=sk_test_...
    # --- STRIPE END ---

Blocks of unselected modules are removed whole, the remaining sentinel lines
are dropped, and datastore keys are substituted by name. The output is a
pure function of (template, selection, datastore, auth): generating twice
gives byte-identical text.
"""

import logging
import re
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from launchpad.config import LaunchpadConfig
from launchpad.models.datastore import DatastoreConfig, DatastoreStrategy
from launchpad.models.module import ModuleDescriptor, Platform
from launchpad.models.state import AuthChoice, AuthProvider
from launchpad.modules.registry import MODULE_REGISTRY
from launchpad.templates.loader import get_template_environment

logger = logging.getLogger(__name__)

SITE_URL_KEY = "NEXT_PUBLIC_SITE_URL"
DEFAULT_SITE_URL = "http://localhost:3000"

# Datastore keys in template order, with the DatastoreConfig field feeding each
DATASTORE_KEYS: tuple[tuple[str, str], ...] = (
    ("DATABASE_URL", "connection_string"),
    ("NEXT_PUBLIC_SUPABASE_URL", "endpoint_url"),
    ("NEXT_PUBLIC_SUPABASE_ANON_KEY", "read_credential"),
    ("SUPABASE_SERVICE_ROLE_KEY", "write_credential"),
)

FIREBASE_KEYS: tuple[tuple[str, str], ...] = (
    ("NEXT_PUBLIC_FIREBASE_API_KEY", "..."),
    ("NEXT_PUBLIC_FIREBASE_AUTH_DOMAIN", "..."),
    ("NEXT_PUBLIC_FIREBASE_PROJECT_ID", "..."),
)

_SENTINEL_LINE = re.compile(r"^[ \t]*# --- .+? (?:START|END) ---[ \t]*\r?\n?", re.MULTILINE)
_AUTH_BLOCK = re.compile(
    r"# --- (?P<name>[^\n]+?) AUTH START ---.*?# --- (?P=name) AUTH END ---[ \t]*\n?",
    re.DOTALL,
)
_RULES_AUTH_SECTION = re.compile(r"^## Auth Strategy\n.*?(?=^## |\Z)", re.DOTALL | re.MULTILINE)


def block_pattern(marker: str) -> re.Pattern[str]:
    """Non-greedy match of one sentinel-delimited block, end marker included."""
    name = re.escape(marker)
    return re.compile(
        rf"# --- {name} START ---.*?# --- {name} END ---[ \t]*\n?",
        re.DOTALL,
    )


def strip_block(content: str, marker: str) -> str:
    """Remove every block delimited by the given marker."""
    return block_pattern(marker).sub("", content)


def strip_sentinels(content: str) -> str:
    """Drop any remaining sentinel comment lines, keeping their contents."""
    return _SENTINEL_LINE.sub("", content)


def normalize(content: str) -> str:
    """Collapse runs of blank lines and end with exactly one newline."""
    content = content.replace("\r\n", "\n")
    content = re.sub(r"\n{3,}", "\n\n", content)
    return content.strip("\n") + "\n"


def auth_marker(auth: AuthChoice) -> str | None:
    """Sentinel marker of the auth provider's env block, if it has one."""
    if auth.provider is AuthProvider.FIREBASE:
        return "FIREBASE"
    if auth.provider is AuthProvider.CUSTOM:
        return f"{(auth.custom_name or 'CUSTOM').upper()} AUTH"
    return None


def datastore_values(
    datastore: DatastoreConfig | None,
    auth: AuthChoice,
) -> dict[str, str | None]:
    """Datastore keys the env file must contain.

    A None value means "keep whatever the template says" (configure by hand).
    Keys absent from the result are removed from the file.
    """
    if datastore is None or datastore.strategy is DatastoreStrategy.SKIP:
        if auth.provider is AuthProvider.SUPABASE:
            return {key: None for key, _ in DATASTORE_KEYS}
        return {}

    if datastore.strategy is DatastoreStrategy.EMBEDDED:
        return {"DATABASE_URL": datastore.connection_string}

    return {key: getattr(datastore, attr) for key, attr in DATASTORE_KEYS}


def _key_line(key: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(key)}=.*$\n?", re.MULTILINE)


def apply_datastore(content: str, values: dict[str, str | None]) -> str:
    """Substitute datastore keys by name, remove unneeded ones, append missing."""
    missing: list[str] = []
    for key, _ in DATASTORE_KEYS:
        pattern = _key_line(key)
        if key not in values:
            content = pattern.sub("", content)
            continue
        value = values[key]
        if not pattern.search(content):
            missing.append(f"{key}={value or ''}")
        elif value is not None:
            # Callable replacement: credentials may contain backslashes
            content = pattern.sub(lambda m, k=key, v=value: f"{k}={v}\n", content)

    if missing:
        content = content.rstrip("\n") + "\n\n" + "\n".join(missing) + "\n"
    return content


def ensure_key(content: str, key: str, value: str) -> str:
    """Append KEY=value when the key is not already set."""
    if _key_line(key).search(content):
        return content
    return content.rstrip("\n") + f"\n\n{key}={value}\n"


@dataclass
class WriteResult:
    """Files written by the environment step.

    Attributes:
        written: Project-relative paths written
        failed: (path, error) pairs
    """

    written: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


class EnvironmentGenerator:
    """Renders the environment file and assistant rules for one run.

    Usage:
        generator = EnvironmentGenerator(project_root, config)
        text = generator.generate(state.modules, state.datastore, state.auth)
        result = generator.write(state.modules, state.datastore, state.auth,
                                 platforms=state.platforms)
    """

    def __init__(
        self,
        root: Path,
        config: LaunchpadConfig | None = None,
        registry: Iterable[ModuleDescriptor] = MODULE_REGISTRY,
    ) -> None:
        self.root = root
        self.config = config or LaunchpadConfig()
        self.registry = tuple(registry)
        self._env = get_template_environment()

    @property
    def template_path(self) -> Path:
        return self.root / self.config.paths.env_template

    def synthesize_template(self, auth: AuthChoice | None = None) -> str:
        """Build a marked-up template from the module registry."""
        auth = auth or AuthChoice()
        marker = auth_marker(auth)
        auth_block: dict[str, Any] | None = None
        if marker == "FIREBASE":
            auth_block = {"marker": marker, "entries": FIREBASE_KEYS, "note": ""}
        elif marker is not None:
            auth_block = {
                "marker": marker,
                "entries": (),
                "note": f"Add your {auth.label} credentials here",
            }

        return self._env.get_template("env.example.j2").render(
            site_url=DEFAULT_SITE_URL,
            datastore_keys=[(key, "") for key, _ in DATASTORE_KEYS],
            auth_block=auth_block,
            modules=self.registry,
        )

    def load_template(self, auth: AuthChoice | None = None) -> str:
        """Read the project's template, or synthesize one when it is absent."""
        try:
            return self.template_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("%s not found, synthesizing template", self.template_path.name)
        except OSError as e:
            logger.warning("Could not read %s (%s), synthesizing template", self.template_path, e)
        return self.synthesize_template(auth)

    def generate(
        self,
        selected: Iterable[str],
        datastore: DatastoreConfig | None = None,
        auth: AuthChoice | None = None,
    ) -> str:
        """Render the environment file text.

        Args:
            selected: Effective module ids
            datastore: Provisioned connection values (None when skipped)
            auth: Auth provider choice

        Returns:
            Sentinel-free env text with a single trailing newline
        """
        keep = set(selected)
        auth = auth or AuthChoice()
        content = self.load_template(auth)

        for module in self.registry:
            if module.id not in keep:
                content = strip_block(content, module.env_block_marker)

        marker = auth_marker(auth)
        if marker != "FIREBASE":
            content = strip_block(content, "FIREBASE")
        content = _AUTH_BLOCK.sub(
            lambda m: m.group(0) if f"{m.group('name')} AUTH" == marker else "",
            content,
        )
        if marker is not None and f"# --- {marker} START ---" not in content:
            content = content.rstrip("\n") + "\n\n" + self._auth_block_text(auth, marker)

        content = strip_sentinels(content)
        content = apply_datastore(content, datastore_values(datastore, auth))
        content = ensure_key(content, SITE_URL_KEY, DEFAULT_SITE_URL)
        return normalize(content)

    def _auth_block_text(self, auth: AuthChoice, marker: str) -> str:
        if marker == "FIREBASE":
            body = "\n".join(f"{key}={value}" for key, value in FIREBASE_KEYS)
        else:
            body = f"# Add your {auth.label} credentials here"
        return f"# --- {marker} START ---\n{body}\n# --- {marker} END ---\n"

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def _write(self, relative: str, content: str, result: WriteResult) -> bool:
        target = self.root / relative
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write %s: %s", relative, e)
            result.failed.append((relative, str(e)))
            return False
        result.written.append(relative)
        return True

    def render_rules(self, existing: str | None, auth: AuthChoice) -> str:
        """Replace (or insert) the auth section of the assistant rules file."""
        section = self._env.get_template("rules_auth.md.j2").render(auth=auth)
        if existing is None:
            return f"# Project Rules\n\n{section}"

        if _RULES_AUTH_SECTION.search(existing):
            return _RULES_AUTH_SECTION.sub(lambda m: section, existing, count=1)

        # Below the document title when there is one
        lines = existing.splitlines(keepends=True)
        if lines and lines[0].startswith("# "):
            rest = "".join(lines[1:]).lstrip("\n")
            return f"{lines[0].rstrip()}\n\n{section}{rest}"
        return section + existing

    def update_rules_file(self, auth: AuthChoice, result: WriteResult) -> None:
        """Record the auth provider in the assistant rules file."""
        relative = self.config.paths.rules_file
        try:
            existing: str | None = (self.root / relative).read_text(encoding="utf-8")
        except FileNotFoundError:
            existing = None
        except OSError as e:
            result.failed.append((relative, str(e)))
            return
        self._write(relative, self.render_rules(existing, auth), result)

    def write(
        self,
        selected: Iterable[str],
        datastore: DatastoreConfig | None = None,
        auth: AuthChoice | None = None,
        platforms: frozenset[Platform] = frozenset({Platform.WEB}),
    ) -> WriteResult:
        """Write the env file, its mobile copy and the rules file.

        Each path is attempted independently; failures are collected.
        """
        auth = auth or AuthChoice()
        result = WriteResult()
        content = self.generate(selected, datastore, auth)

        paths = self.config.paths
        written = self._write(paths.env_output, content, result)
        if Platform.MOBILE in platforms and written:
            try:
                shutil.copyfile(self.root / paths.env_output, self.root / paths.mobile_env)
            except OSError as e:
                result.failed.append((paths.mobile_env, str(e)))
            else:
                result.written.append(paths.mobile_env)

        self.update_rules_file(auth, result)
        return result
