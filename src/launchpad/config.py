"""Launchpad configuration system.

Configuration is YAML-based with a handful of CLI overrides (--root, --yes).
Every value has a default that matches the starter template, so running
without a config file is the common case.
Supports environment variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. <root>/.launchpad/config.yaml
3. <root>/launchpad.yaml
"""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class RuntimeConfig:
    """Runtime (Node.js) version requirements.

    Attributes:
        command: Runtime executable name
        installer: Package installer executable name
        version_file: Project file holding the recommended version
        recommended: Recommended major version (overrides version_file)
        minimum: Lowest acceptable major version (defaults to recommended)
        download_url: Page offered for manual installation
    """

    command: str = "node"
    installer: str = "npm"
    version_file: str = ".nvmrc"
    recommended: str | None = None
    minimum: str | None = None
    download_url: str = "https://nodejs.org/en/download"


@dataclass
class PortsConfig:
    """Network ports checked before provisioning.

    Attributes:
        api: Local service API port
        database: Local service database port
        dashboard: Local service dashboard port
        dev_server: Web dev server port
    """

    api: int = 54321
    database: int = 54322
    dashboard: int = 54323
    dev_server: int = 3000

    def targets(self) -> list[tuple[int, str]]:
        """List each port with the purpose reported by preflight.

        Two purposes configured on the same port stay separate entries.
        """
        return [
            (self.api, "service API"),
            (self.database, "service database"),
            (self.dashboard, "service dashboard"),
            (self.dev_server, "dev server"),
        ]


@dataclass
class TimeoutConfig:
    """Timeouts for external tools, in seconds.

    Attributes:
        query: Short status and version queries
        install: Runtime and CLI installs (multi-minute)
        service_start: Starting the local service (first run pulls images)
        schema: Schema push and seed commands
        status_interval: Progress line refresh interval
        port_check: Bind-and-release check timeout
    """

    query: float = 30
    install: float = 600
    service_start: float = 900
    schema: float = 300
    status_interval: float = 2.0
    port_check: float = 1.0


@dataclass
class PathsConfig:
    """Project-relative paths the wizard reads and writes.

    Attributes:
        env_template: Marked-up environment template
        env_output: Generated environment file
        mobile_env: Copy of the environment file for the mobile toolchain
        rules_file: Assistant rules file updated with the auth provider
        embedded_db: Embedded database file name
    """

    env_template: str = ".env.example"
    env_output: str = ".env.local"
    mobile_env: str = ".env"
    rules_file: str = ".cursorrules"
    embedded_db: str = "dev.db"


@dataclass
class ServiceConfig:
    """Datastore service tooling.

    Attributes:
        cli: Service CLI executable
        cli_package: npm package that installs the CLI
        engine: Container engine CLI
        min_free_disk_gb: Free disk space recommended for service images
        dashboard_url: Fallback dashboard URL for the local service
    """

    cli: str = "supabase"
    cli_package: str = "supabase"
    engine: str = "docker"
    min_free_disk_gb: float = 2.0
    dashboard_url: str = "http://localhost:54323"


@dataclass
class SchemaConfig:
    """Schema and seed commands run after provisioning.

    Attributes:
        push_command: Command that applies the schema
        seed_command: Command that loads seed data
        seed_email: Seeded account shown in the summary
        seed_password: Seeded account password shown in the summary
    """

    push_command: str = "npm run db:push"
    seed_command: str = "npm run db:seed"
    seed_email: str = "test@example.com"
    seed_password: str = "Testing123"


@dataclass
class LaunchpadConfig:
    """Top-level Launchpad configuration.

    Attributes:
        runtime: Runtime version requirements
        ports: Ports checked by preflight
        timeouts: External tool timeouts
        paths: Files read and written
        service: Datastore service tooling
        schema: Schema and seed commands
    """

    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    ports: PortsConfig = field(default_factory=PortsConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    schema: SchemaConfig = field(default_factory=SchemaConfig)

    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax, recursively through dicts and lists.

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return _ENV_VAR_PATTERN.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Args:
        start_path: Project root to search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".launchpad" / "config.yaml",
        start_path / "launchpad.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def _load_section(section_cls: type, data: Any, section_name: str) -> Any:
    """Build a section dataclass, rejecting unknown keys."""
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{section_name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(
            f"Unknown keys in config section '{section_name}': {sorted(unknown)}"
        )
    return section_cls(**data)


def load_config_from_dict(data: dict[str, Any]) -> LaunchpadConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        LaunchpadConfig instance

    Raises:
        ValueError: On unknown keys, unset environment variables or invalid ports
    """
    data = substitute_env_vars(data)

    config = LaunchpadConfig(
        runtime=_load_section(RuntimeConfig, data.get("runtime"), "runtime"),
        ports=_load_section(PortsConfig, data.get("ports"), "ports"),
        timeouts=_load_section(TimeoutConfig, data.get("timeouts"), "timeouts"),
        paths=_load_section(PathsConfig, data.get("paths"), "paths"),
        service=_load_section(ServiceConfig, data.get("service"), "service"),
        schema=_load_section(SchemaConfig, data.get("schema"), "schema"),
    )

    for port_field in fields(PortsConfig):
        value = getattr(config.ports, port_field.name)
        # ${VAR} substitution always yields strings
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value)
            setattr(config.ports, port_field.name, value)
        if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= 65535:
            raise ValueError(
                f"Config value ports.{port_field.name} must be a port number "
                f"between 1 and 65535, got {value!r}"
            )

    # Version strings written as bare numbers in YAML arrive as ints
    for attr in ("recommended", "minimum"):
        value = getattr(config.runtime, attr)
        if value is not None:
            setattr(config.runtime, attr, str(value))

    return config


def load_config(
    config_path: Path | None = None,
    root: Path | None = None,
    auto_discover: bool = True,
) -> LaunchpadConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        root: Project root used for discovery
        auto_discover: Whether to search for config file if not specified

    Returns:
        LaunchpadConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path: Path | None = config_path
    elif auto_discover:
        found_path = find_config_file(root)
    else:
        found_path = None

    if found_path is None:
        return LaunchpadConfig()

    with open(found_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    config = load_config_from_dict(data)
    config._config_path = found_path
    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return """# Launchpad Configuration
# Every key is optional; the values below are the defaults.

runtime:
  command: "node"
  installer: "npm"
  version_file: ".nvmrc"       # recommended version is read from here
  # recommended: "20"          # overrides version_file
  # minimum: "18"              # defaults to the recommended major
  download_url: "https://nodejs.org/en/download"

ports:
  api: 54321
  database: 54322
  dashboard: 54323
  dev_server: 3000

# Seconds
timeouts:
  query: 30
  install: 600
  service_start: 900           # first start pulls container images
  schema: 300
  status_interval: 2.0
  port_check: 1.0

paths:
  env_template: ".env.example"
  env_output: ".env.local"
  mobile_env: ".env"
  rules_file: ".cursorrules"
  embedded_db: "dev.db"

service:
  cli: "supabase"
  cli_package: "supabase"
  engine: "docker"
  min_free_disk_gb: 2.0
  dashboard_url: "http://localhost:54323"

schema:
  push_command: "npm run db:push"
  seed_command: "npm run db:seed"
"""
