"""Configuration system for flatree.

Provides hierarchical configuration with precedence:
1. CLI flags (highest)
2. Environment variables
3. Project config (.flatree/config.json)
4. Global config (~/.flatree_config.json)
5. Hardcoded defaults (lowest)
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from flatree.records import FieldMapping
from flatree.render.base import OutputFormat
from flatree.tree.builder import OrphanPolicy
from flatree.tree.errors import FlatreeError

logger = logging.getLogger(__name__)

# Valid values for enums
VALID_ORPHAN_POLICIES = tuple(p.value for p in OrphanPolicy)
VALID_OUTPUT_FORMATS = tuple(f.value for f in OutputFormat)

# Hardcoded defaults
DEFAULT_HOME_DIR = ".flatree"
DEFAULT_ORPHAN_POLICY = OrphanPolicy.IGNORE.value
DEFAULT_OUTPUT_FORMAT = OutputFormat.ASCII.value
DEFAULT_WIDTH = 120
DEFAULT_INDENT = 2

# Environment variable names
ENV_HOME = "FLATREE_HOME"
ENV_ORPHAN_POLICY = "FLATREE_ORPHAN_POLICY"
ENV_SORT_BY = "FLATREE_SORT_BY"
ENV_OUTPUT_FORMAT = "FLATREE_OUTPUT_FORMAT"
ENV_QUIET = "FLATREE_QUIET"
ENV_RENDER_DEPTH = "FLATREE_RENDER_DEPTH"


class ConfigValidationError(FlatreeError):
    """Raised when configuration validation fails."""

    pass


class ConfigLoadError(FlatreeError):
    """Raised when configuration file cannot be loaded."""

    pass


def _reject_unknown(cls: type, data: dict[str, Any], section: str) -> None:
    known_fields = {f.name for f in fields(cls) if not f.name.startswith("_")}
    unknown = set(data.keys()) - known_fields
    if unknown:
        raise ConfigValidationError(
            f"Unknown fields in {section} config: {', '.join(sorted(unknown))}"
        )


@dataclass
class DefaultsConfig:
    """Default build options."""

    orphan_policy: str = DEFAULT_ORPHAN_POLICY
    sort_by: list[str] = field(default_factory=list)
    output_format: str = DEFAULT_OUTPUT_FORMAT
    quiet: bool = False
    _explicit: frozenset[str] = field(default_factory=frozenset, init=False, repr=False, compare=False)

    def validate(self) -> None:
        """Validate configuration values."""
        if self.orphan_policy not in VALID_ORPHAN_POLICIES:
            raise ConfigValidationError(
                f"Invalid orphan_policy '{self.orphan_policy}'. "
                f"Valid values: {', '.join(VALID_ORPHAN_POLICIES)}"
            )
        if self.output_format not in VALID_OUTPUT_FORMATS:
            raise ConfigValidationError(
                f"Invalid output_format '{self.output_format}'. "
                f"Valid values: {', '.join(VALID_OUTPUT_FORMATS)}"
            )
        if not isinstance(self.sort_by, list) or not all(isinstance(s, str) for s in self.sort_by):
            raise ConfigValidationError(
                f"sort_by must be a list of field names, got {self.sort_by!r}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "orphan_policy": self.orphan_policy,
            "sort_by": list(self.sort_by),
            "output_format": self.output_format,
            "quiet": self.quiet,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "DefaultsConfig":
        """Create from dictionary."""
        if strict:
            _reject_unknown(cls, data, "defaults")

        config = cls(
            orphan_policy=data.get("orphan_policy", DEFAULT_ORPHAN_POLICY),
            sort_by=list(data.get("sort_by", [])),
            output_format=data.get("output_format", DEFAULT_OUTPUT_FORMAT),
            quiet=data.get("quiet", False),
        )
        config._explicit = frozenset(data)
        return config


@dataclass
class FieldsConfig:
    """Source field names used when loading record files."""

    key: str = "id"
    parent: str = "parent_id"
    name: str = "name"
    order: str = "order"
    id: str = "id"
    root_value: Any = None
    _explicit: frozenset[str] = field(default_factory=frozenset, init=False, repr=False, compare=False)

    def validate(self) -> None:
        for name in ("key", "parent", "name", "order", "id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ConfigValidationError(
                    f"fields.{name} must be a non-empty string, got {value!r}"
                )
        if self.key == self.parent:
            raise ConfigValidationError(
                f"fields.key and fields.parent must differ, both are '{self.key}'"
            )

    def to_mapping(self) -> FieldMapping:
        return FieldMapping(
            key=self.key,
            parent=self.parent,
            name=self.name,
            order=self.order,
            id=self.id,
            root_value=self.root_value,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "parent": self.parent,
            "name": self.name,
            "order": self.order,
            "id": self.id,
            "root_value": self.root_value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "FieldsConfig":
        """Create from dictionary."""
        if strict:
            _reject_unknown(cls, data, "fields")

        config = cls(
            key=data.get("key", "id"),
            parent=data.get("parent", "parent_id"),
            name=data.get("name", "name"),
            order=data.get("order", "order"),
            id=data.get("id", "id"),
            root_value=data.get("root_value"),
        )
        config._explicit = frozenset(data)
        return config


@dataclass
class RenderConfig:
    """Rendering options."""

    depth: int | None = None
    width: int = DEFAULT_WIDTH
    indent: int = DEFAULT_INDENT
    _explicit: frozenset[str] = field(default_factory=frozenset, init=False, repr=False, compare=False)

    def validate(self) -> None:
        """Validate render values."""
        if self.depth is not None and self.depth < 0:
            raise ConfigValidationError(
                f"render depth must be non-negative, got {self.depth}"
            )
        if self.width <= 0:
            raise ConfigValidationError(
                f"render width must be positive, got {self.width}"
            )
        if self.indent < 0:
            raise ConfigValidationError(
                f"render indent must be non-negative, got {self.indent}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"depth": self.depth, "width": self.width, "indent": self.indent}

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "RenderConfig":
        """Create from dictionary."""
        if strict:
            _reject_unknown(cls, data, "render")

        config = cls(
            depth=data.get("depth"),
            width=data.get("width", DEFAULT_WIDTH),
            indent=data.get("indent", DEFAULT_INDENT),
        )
        config._explicit = frozenset(data)
        return config


@dataclass
class FlatreeConfig:
    """Main configuration container."""

    version: str = "1"
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    fields: FieldsConfig = field(default_factory=FieldsConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    def validate(self) -> None:
        """Validate entire configuration."""
        self.defaults.validate()
        self.fields.validate()
        self.render.validate()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "defaults": self.defaults.to_dict(),
            "fields": self.fields.to_dict(),
            "render": self.render.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "FlatreeConfig":
        """Create from dictionary."""
        if strict:
            known_fields = {"version", "defaults", "fields", "render"}
            unknown = set(data.keys()) - known_fields
            if unknown:
                raise ConfigValidationError(
                    f"Unknown fields in config: {', '.join(sorted(unknown))}"
                )

        return cls(
            version=data.get("version", "1"),
            defaults=DefaultsConfig.from_dict(data.get("defaults", {}), strict),
            fields=FieldsConfig.from_dict(data.get("fields", {}), strict),
            render=RenderConfig.from_dict(data.get("render", {}), strict),
        )


def get_global_config_path() -> Path:
    """Get path to global config file."""
    return Path.home() / ".flatree_config.json"


def get_flatree_home() -> Path:
    """Resolve the project directory holding config.json."""
    return Path(os.environ.get(ENV_HOME, DEFAULT_HOME_DIR))


def get_project_config_path(flatree_home: Path) -> Path:
    """Get path to project config file."""
    return flatree_home / "config.json"


def load_config_file(path: Path, strict: bool = False) -> FlatreeConfig:
    """Load configuration from a JSON file.

    Args:
        path: Path to the config file
        strict: If True, fail on unknown fields

    Returns:
        FlatreeConfig instance (defaults when the file does not exist)

    Raises:
        ConfigLoadError: If file cannot be read or parsed
        ConfigValidationError: If strict=True and unknown fields found
    """
    if not path.exists():
        return FlatreeConfig()

    try:
        content = path.read_text()
    except PermissionError as e:
        raise ConfigLoadError(f"Permission denied reading {path}: {e}")
    except OSError as e:
        raise ConfigLoadError(f"Error reading {path}: {e}")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Invalid JSON in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigLoadError(f"Config in {path} must be a JSON object")

    logger.debug("Loaded config from %s", path)
    return FlatreeConfig.from_dict(data, strict=strict)


def _overridden(section: Any) -> set[str]:
    """Settings a layer provides: keys present in its file plus non-default values."""
    baseline = type(section)()
    names = {f.name for f in fields(section) if not f.name.startswith("_")}
    changed = {name for name in names if getattr(section, name) != getattr(baseline, name)}
    return changed | (set(section._explicit) & names)


def merge_configs(*configs: FlatreeConfig) -> FlatreeConfig:
    """Merge multiple configs with later configs taking precedence.

    A later config overrides every setting its file spelled out, even
    when the value equals the hardcoded default, plus any value set to
    something other than the default in code. Unset settings fall
    through to earlier configs.

    Args:
        *configs: Configs to merge (first is base, last has highest priority)

    Returns:
        Merged FlatreeConfig
    """
    if not configs:
        return FlatreeConfig()

    result = copy.deepcopy(configs[0])

    for config in configs[1:]:
        for section_name in ("defaults", "fields", "render"):
            source = getattr(config, section_name)
            target = getattr(result, section_name)
            overridden = _overridden(source)
            for name in overridden:
                setattr(target, name, copy.deepcopy(getattr(source, name)))
            target._explicit = target._explicit | overridden

    return result


def _int_from_env(name: str) -> int | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigValidationError(f"{name} must be an integer, got '{raw}'")


def apply_env_overrides(config: FlatreeConfig) -> FlatreeConfig:
    """Apply environment variable overrides to config.

    Args:
        config: Base configuration

    Returns:
        New config with env var overrides applied

    Raises:
        ConfigValidationError: If env var value is invalid
    """
    result = copy.deepcopy(config)

    if policy := os.environ.get(ENV_ORPHAN_POLICY):
        result.defaults.orphan_policy = policy.lower()

    if sort_by := os.environ.get(ENV_SORT_BY):
        result.defaults.sort_by = [s.strip() for s in sort_by.split(",") if s.strip()]

    if output_format := os.environ.get(ENV_OUTPUT_FORMAT):
        result.defaults.output_format = output_format.lower()

    if quiet := os.environ.get(ENV_QUIET):
        result.defaults.quiet = quiet.lower() in ("true", "1", "yes")

    depth = _int_from_env(ENV_RENDER_DEPTH)
    if depth is not None:
        result.render.depth = depth

    return result


def get_config(flatree_home: Path | None = None) -> FlatreeConfig:
    """Load and merge configuration from all sources.

    Loads in order (later sources override earlier):
    1. Hardcoded defaults
    2. Global config (~/.flatree_config.json)
    3. Project config (<flatree_home>/config.json)
    4. Environment variables

    Args:
        flatree_home: Directory holding the project config

    Returns:
        Merged configuration with all overrides applied
    """
    base_config = FlatreeConfig()
    global_config = load_config_file(get_global_config_path())

    home = flatree_home if flatree_home is not None else get_flatree_home()
    project_config = load_config_file(get_project_config_path(home))

    merged = merge_configs(base_config, global_config, project_config)
    return apply_env_overrides(merged)


def generate_config_template() -> dict[str, Any]:
    """Generate a config template dictionary.

    Returns:
        Dictionary suitable for JSON serialization
    """
    return {
        "version": "1",
        "defaults": {
            "orphan_policy": DEFAULT_ORPHAN_POLICY,
            "sort_by": [],
            "output_format": DEFAULT_OUTPUT_FORMAT,
            "quiet": False,
        },
        "fields": FieldsConfig().to_dict(),
        "render": RenderConfig().to_dict(),
    }


def generate_config_template_string() -> str:
    """Generate a config template as a formatted JSON string."""
    return json.dumps(generate_config_template(), indent=2)
