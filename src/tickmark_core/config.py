"""Configuration for tickmark.

The effective config is one immutable value threaded into discovery,
propagation and linting. It is built by layering sources (later wins):

1) System defaults (``TickmarkConfig()``)
2) Optional TOML file (``tickmark.toml`` or any path passed explicitly)
3) Explicit overrides (dict), e.g. from CLI flags
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigError
from .models import Severity

# Conditional TOML import: stdlib tomllib (3.11+) or fallback tomli (<3.11)
try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "tickmark.toml"


class PropagationMode(str, Enum):
    """How far a smart-toggle rule reaches."""

    ALL_CHILDREN = "all_children"
    DIRECT_CHILDREN = "direct_children"
    NONE = "none"


class TodoMarkers(BaseModel):
    """Glyphs used for todo markers in the editable form."""

    unchecked: str = "□"
    checked: str = "✔"

    model_config = ConfigDict(frozen=True)

    @field_validator("unchecked", "checked")
    @classmethod
    def _no_whitespace(cls, value: str) -> str:
        if not value:
            raise ValueError("todo marker must be non-empty")
        if any(ch.isspace() for ch in value):
            raise ValueError(f"todo marker must not contain whitespace: {value!r}")
        return value

    @model_validator(mode="after")
    def _distinct(self) -> "TodoMarkers":
        if self.unchecked == self.checked:
            raise ValueError("checked and unchecked markers must differ")
        return self


class SmartTogglePolicy(BaseModel):
    """Cascade rules between parent and child todos."""

    enabled: bool = True
    check_down: PropagationMode = PropagationMode.DIRECT_CHILDREN
    uncheck_down: PropagationMode = PropagationMode.NONE
    check_up: PropagationMode = PropagationMode.DIRECT_CHILDREN
    uncheck_up: PropagationMode = PropagationMode.DIRECT_CHILDREN

    model_config = ConfigDict(frozen=True)


class MetadataTagConfig(BaseModel):
    """One canonical ``@tag`` with its aliases."""

    aliases: List[str] = Field(default_factory=list)
    default_value: Optional[str] = Field(None, description="Value inserted when none is given")
    sort_order: int = 100

    model_config = ConfigDict(frozen=True)


def _default_metadata() -> Dict[str, MetadataTagConfig]:
    return {
        "priority": MetadataTagConfig(default_value="medium", sort_order=10),
        "started": MetadataTagConfig(aliases=["init"], sort_order=20),
        "done": MetadataTagConfig(aliases=["completed", "finished"], sort_order=30),
    }


class LinterConfig(BaseModel):
    """Indentation linter settings."""

    enabled: bool = True
    severity: Dict[str, Severity] = Field(default_factory=dict, description="Per issue code override")
    verbose: bool = False
    namespace: str = "tickmark_lint"

    model_config = ConfigDict(frozen=True)


class LogConfig(BaseModel):
    level: str = "warning"

    model_config = ConfigDict(frozen=True)

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"unknown log level: {value}")
        return normalized


class TickmarkConfig(BaseModel):
    """Effective tickmark configuration."""

    todo_markers: TodoMarkers = Field(default_factory=TodoMarkers)
    default_list_marker: str = "-"
    todo_action_depth: int = Field(1, ge=0, description="List levels below a todo that still act on it")
    smart_toggle: SmartTogglePolicy = Field(default_factory=SmartTogglePolicy)
    metadata: Dict[str, MetadataTagConfig] = Field(default_factory=_default_metadata)
    linter: LinterConfig = Field(default_factory=LinterConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    model_config = ConfigDict(frozen=True)

    @field_validator("default_list_marker")
    @classmethod
    def _list_marker(cls, value: str) -> str:
        if value not in ("-", "*", "+"):
            raise ValueError("default_list_marker must be one of: '-', '*', '+'")
        return value


class ConfigLoader:
    """Load and resolve tickmark configuration."""

    @staticmethod
    def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = dict(base)
        for key, value in overlay.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = ConfigLoader._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @staticmethod
    def _read_toml_optional(path: Path) -> dict[str, Any]:
        """Read TOML config file; return {} if not found."""
        if not path.exists():
            return {}
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except Exception as e:
            raise ConfigError(f"Failed to load TOML from {path}: {e}")
        # pyproject.toml keeps settings under [tool.tickmark]
        if path.name == "pyproject.toml":
            data = data.get("tool", {}).get("tickmark", {})
        if not isinstance(data, dict):
            raise ConfigError(f"Config TOML must be a table: {path}")
        return data

    @staticmethod
    def find_config_file(start: Path) -> Optional[Path]:
        """Walk up from ``start`` looking for ``tickmark.toml``."""
        current = start.resolve()
        if current.is_file():
            current = current.parent
        for candidate in [current, *current.parents]:
            path = candidate / DEFAULT_CONFIG_FILENAME
            if path.exists():
                return path
        return None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> TickmarkConfig:
        try:
            return TickmarkConfig.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid tickmark config: {e}") from e

    @staticmethod
    def load(
        path: Optional[Path] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> TickmarkConfig:
        """Build the effective config from defaults, an optional TOML file and overrides.

        Args:
            path: TOML file to read (missing file is treated as empty)
            overrides: Highest-precedence values

        Returns:
            Frozen TickmarkConfig

        Raises:
            ConfigError: If a file cannot be read or a value is invalid
        """
        # Start from the dumped defaults so partial tables (e.g. one extra
        # metadata tag) merge into the defaults instead of replacing them.
        data: dict[str, Any] = TickmarkConfig().model_dump(mode="json")
        if path is not None:
            file_data = ConfigLoader._read_toml_optional(path)
            logger.debug(f"Loaded config layer from {path}: keys={sorted(file_data)}")
            data = ConfigLoader._deep_merge(data, file_data)
        if overrides:
            data = ConfigLoader._deep_merge(data, overrides)
        return ConfigLoader.from_dict(data)


DEFAULT_CONFIG = TickmarkConfig()
