"""Configuration management for Grocery Reconciler."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .models import DEFAULT_UNIT, UNCATEGORIZED


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path
    backend: str = "json"


@dataclass
class DefaultsConfig:
    """Default values configuration."""

    category: str = UNCATEGORIZED
    unit: str = DEFAULT_UNIT


@dataclass
class OrderingConfig:
    """Shopping list reordering configuration."""

    debounce_seconds: float = 1.0


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    defaults: DefaultsConfig
    ordering: OrderingConfig


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def defaults(self) -> DefaultsConfig:
        """Get defaults configuration."""
        return self._config.defaults

    @property
    def ordering(self) -> OrderingConfig:
        """Get reordering configuration."""
        return self._config.ordering

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "grocery-reconciler" / "config.toml",
            Path.home() / ".grocery-reconciler" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        # Return default location if none found
        return Path.home() / ".config" / "grocery-reconciler" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        backend = data.get("data", {}).get("backend", "json")
        if backend not in ("json", "sqlite"):
            raise ValueError(f"Unknown storage backend '{backend}' in {self.config_path}")

        debounce = float(data.get("ordering", {}).get("debounce_seconds", 1.0))
        if debounce < 0:
            raise ValueError("ordering.debounce_seconds must not be negative")

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data.get("data", {}).get("storage_dir", "~/grocery-reconciler/data")
                ).expanduser(),
                backend=backend,
            ),
            defaults=DefaultsConfig(
                category=data.get("defaults", {}).get("category", UNCATEGORIZED),
                unit=data.get("defaults", {}).get("unit", DEFAULT_UNIT),
            ),
            ordering=OrderingConfig(debounce_seconds=debounce),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "grocery-reconciler" / "data"),
            defaults=DefaultsConfig(),
            ordering=OrderingConfig(),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'data.storage_dir'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default
