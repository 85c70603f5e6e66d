"""Configuration for the harmonizer.

Configurations are stored as YAML:

    merger_path: /path/to/some/merger/data/
    harmonic_path: /path/to/some/harmonic/data/
    harmonic_size: 10000000000
    min_run: 55
    max_run: 69

``harmonic_size`` is in bytes. The run range is inclusive; runs may be missing.
"""

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from harmonizer.constants import DEFAULT_HARMONIC_SIZE
from harmonizer.data.abstractions import RunRange
from harmonizer.errors import ConfigError

logger = logging.getLogger(__name__)


def serialize_config(config: Any) -> Any:
    """Recursively serialize a configuration object to plain data.

    Handles:
    - Dataclasses (recursively serialized)
    - Tuples and lists (converted to lists)
    - Paths (converted to strings)
    - Primitive types (passed through)

    Args:
        config: Configuration object (typically a dataclass)

    Returns:
        Representation suitable for YAML serialization
    """
    if dataclasses.is_dataclass(config) and not isinstance(config, type):
        return {
            field.name: serialize_config(getattr(config, field.name))
            for field in dataclasses.fields(config)
        }

    elif isinstance(config, (tuple, list)):
        return [serialize_config(item) for item in config]

    elif isinstance(config, dict):
        return {key: serialize_config(value) for key, value in config.items()}

    elif isinstance(config, Path):
        return str(config)

    else:
        # Primitive types: int, float, str, bool, None
        return config


@dataclass(frozen=True)
class HarmonizerConfig:
    """Settings for one harmonizer invocation.

    Attributes:
        merger_path: Directory holding the merger runs
        harmonic_path: Directory receiving the harmonic runs (must exist)
        harmonic_size: Size of a harmonic run in bytes
        min_run: First merger run to harmonize (inclusive)
        max_run: Last merger run to harmonize (inclusive)
    """

    merger_path: Path
    harmonic_path: Path
    harmonic_size: int
    min_run: int
    max_run: int

    def __post_init__(self) -> None:
        # Use object.__setattr__ because frozen=True
        for name in ("merger_path", "harmonic_path"):
            value = getattr(self, name)
            if not isinstance(value, (str, Path)):
                raise ConfigError(f"{name} must be a path, got {value!r}")
            object.__setattr__(self, name, Path(value))

        for name in ("harmonic_size", "min_run", "max_run"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")

        if self.harmonic_size <= 0:
            raise ConfigError(f"harmonic_size must be positive, got {self.harmonic_size}")
        if self.min_run < 0:
            raise ConfigError(f"min_run must be non-negative, got {self.min_run}")
        if self.min_run > self.max_run:
            raise ConfigError(
                f"min_run ({self.min_run}) must not exceed max_run ({self.max_run})"
            )

    @property
    def run_range(self) -> RunRange:
        """Return the inclusive run range."""
        return RunRange(self.min_run, self.max_run)

    @classmethod
    def template(cls) -> "HarmonizerConfig":
        """Return a template configuration for users to fill in."""
        return cls(
            merger_path=Path("/path/to/some/merger/data/"),
            harmonic_path=Path("/path/to/some/harmonic/data/"),
            harmonic_size=DEFAULT_HARMONIC_SIZE,
            min_run=0,
            max_run=0,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HarmonizerConfig":
        """Build a configuration from a parsed YAML mapping.

        Raises:
            ConfigError: If keys are missing or unknown, or values are invalid
        """
        expected = {field.name for field in dataclasses.fields(cls)}
        missing = expected - set(data)
        unknown = set(data) - expected
        if missing:
            raise ConfigError(f"Configuration is missing keys: {sorted(missing)}")
        if unknown:
            raise ConfigError(f"Configuration has unknown keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "HarmonizerConfig":
        """Load a configuration from a YAML file.

        Args:
            path: Path to the YAML file

        Raises:
            ConfigError: If the file does not exist or is not a valid configuration
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(
                f"Attempted to load configuration from non-existant path: {path}"
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse configuration {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {path} must be a YAML mapping")
        return cls.from_dict(data)

    def save(self, path: Union[str, Path]) -> None:
        """Write the configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(serialize_config(self), f, sort_keys=False)
        logger.debug(f"Configuration written to {path}")
