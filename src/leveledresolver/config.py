"""
Resolver Configuration

Loads configuration from YAML file or environment variables.
Controls the patch (sink) plugin, the entry cap and sublist naming.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


# Default configuration file locations (checked in order)
CONFIG_SEARCH_PATHS = [
    Path.home() / ".leveledresolver" / "resolver_config.yaml",
    Path(__file__).parent / "resolver_config.yaml",
]


# Largest entry count the leveled item record format can hold
MAX_LEVELED_ENTRIES = 255


DEFAULT_CONFIG = {
    # Plugin the merged records are written to
    "sink": "Synthesis.esp",

    # Entry cap and sublist split
    "max_entries": MAX_LEVELED_ENTRIES,
    "sublist_name_format": "Mir_{editor_id}Sublist{depth}",
    "sublist_entry_level": 1,
    "sublist_entry_count": 1,
    "first_form_id": 0x800,        # First local id handed out for new sublists

    # Run settings
    "workers": 1,                  # Threads used to resolve records in parallel
    "trace_paths": False,          # Log every dependency path of every record
    "only_conflicts": True,        # Skip records with a single extent version
}


ENV_MAPPINGS = {
    "LEVELEDRESOLVER_SINK": ("sink", str),
    "LEVELEDRESOLVER_MAX_ENTRIES": ("max_entries", int),
    "LEVELEDRESOLVER_WORKERS": ("workers", int),
    "LEVELEDRESOLVER_TRACE_PATHS": ("trace_paths", lambda v: v.strip().lower() in ("1", "true", "yes", "on")),
    "LEVELEDRESOLVER_SUBLIST_FORMAT": ("sublist_name_format", str),
}


class ResolverConfig:
    """Configuration for leveled list resolution."""

    def __init__(self, config_path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = dict(DEFAULT_CONFIG)
        self._config_path: Optional[Path] = None

        # Load from file if found
        self._load_config(config_path)

        # Override with environment variables
        self._apply_env_overrides()

        # Explicit overrides win over everything
        if overrides:
            self._config.update(overrides)

        self._validate()

    def _load_config(self, explicit_path: Optional[Path] = None) -> None:
        """Load configuration from YAML file."""
        search_paths = [explicit_path] if explicit_path else CONFIG_SEARCH_PATHS

        for config_path in search_paths:
            if config_path and Path(config_path).exists():
                try:
                    with open(config_path, 'r', encoding='utf-8') as f:
                        user_config = yaml.safe_load(f) or {}
                    if not isinstance(user_config, dict):
                        raise ValueError("top level must be a mapping")
                    self._config.update(user_config)
                    self._config_path = Path(config_path)
                    return
                except (OSError, yaml.YAMLError, ValueError) as e:
                    logger.warning(f"Failed to load config from {config_path}: {e}")

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        for env_var, (config_key, convert) in ENV_MAPPINGS.items():
            if env_var in os.environ:
                try:
                    self._config[config_key] = convert(os.environ[env_var])
                except ValueError:
                    logger.warning(f"Ignoring {env_var}={os.environ[env_var]!r}: not a valid {config_key}")

    def _validate(self) -> None:
        if int(self._config["max_entries"]) < 2:
            raise ValueError("max_entries must be at least 2 to leave room for a sublist reference")
        if int(self._config["workers"]) < 1:
            raise ValueError("workers must be at least 1")
        if "{editor_id}" not in self._config["sublist_name_format"]:
            raise ValueError("sublist_name_format must contain {editor_id}")

    @property
    def config_path(self) -> Optional[Path]:
        """Path to loaded config file, or None if using defaults."""
        return self._config_path

    @property
    def sink(self) -> str:
        """Name of the patch plugin."""
        return str(self._config["sink"])

    @property
    def max_entries(self) -> int:
        """Maximum entries per leveled list before splitting."""
        return int(self._config["max_entries"])

    @property
    def sublist_name_format(self) -> str:
        return self._config["sublist_name_format"]

    @property
    def sublist_entry_level(self) -> int:
        return int(self._config.get("sublist_entry_level", 1))

    @property
    def sublist_entry_count(self) -> int:
        return int(self._config.get("sublist_entry_count", 1))

    @property
    def first_form_id(self) -> int:
        return int(self._config.get("first_form_id", 0x800))

    @property
    def workers(self) -> int:
        return int(self._config["workers"])

    @property
    def trace_paths(self) -> bool:
        return bool(self._config["trace_paths"])

    @property
    def only_conflicts(self) -> bool:
        return bool(self._config.get("only_conflicts", True))

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as dict."""
        return {
            "sink": self.sink,
            "max_entries": self.max_entries,
            "sublist_name_format": self.sublist_name_format,
            "sublist_entry_level": self.sublist_entry_level,
            "sublist_entry_count": self.sublist_entry_count,
            "first_form_id": self.first_form_id,
            "workers": self.workers,
            "trace_paths": self.trace_paths,
            "only_conflicts": self.only_conflicts,
            "config_file": str(self._config_path) if self._config_path else None,
        }


# Global config instance (lazy-loaded)
_config: Optional[ResolverConfig] = None


def get_config(config_path: Optional[Path] = None) -> ResolverConfig:
    """Get the global config instance, loading if needed."""
    global _config
    if _config is None or config_path is not None:
        _config = ResolverConfig(config_path)
    return _config


def write_default_config(path: Optional[Path] = None) -> Path:
    """
    Write a default configuration file.

    Returns the path where config was written.
    """
    if path is None:
        path = Path.home() / ".leveledresolver" / "resolver_config.yaml"

    path.parent.mkdir(parents=True, exist_ok=True)

    config_content = """# Leveled list resolver configuration
#
# Any setting here can also be overridden via environment variables
# (LEVELEDRESOLVER_SINK, LEVELEDRESOLVER_MAX_ENTRIES, ...).

# Patch plugin the merged leveled lists are written to
sink: "Synthesis.esp"

# Leveled lists hold at most 255 entries; longer lists are split
# into chained sublists named after the parent's editor id
max_entries: 255
sublist_name_format: "Mir_{editor_id}Sublist{depth}"
sublist_entry_level: 1
sublist_entry_count: 1
first_form_id: 0x800

# Threads used to resolve records
workers: 1

# Log every dependency path (debug level)
trace_paths: false

# Only emit records where more than one plugin version is in effect
only_conflicts: true
"""

    with open(path, 'w', encoding='utf-8') as f:
        f.write(config_content)

    return path
