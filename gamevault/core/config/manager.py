"""
ConfigManager: tunable game configuration access for GameVault.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable values
  (economy limits, leaderboard sizes, identity constraints).
- Back configuration with YAML defaults from the `config/` directory.
- Allow in-memory overrides for operators and tests without redeploys.

Responsibilities
----------------
- Load and deep-merge every YAML file found under `Config.CONFIG_DIR`.
- Serve reads from an in-memory cache, falling back to YAML defaults.
- Apply validated in-memory overrides via `set()`.
- Expose a small health snapshot for the CLI.

Non-Responsibilities
--------------------
- Environment/static settings (handled by `Config`)
- Persisting overrides (overrides live for the process lifetime)

Examples
--------
>>> await ConfigManager.initialize()
>>> ConfigManager.get("leaderboard.default_limit", 10)
10
>>> ConfigManager.set("economy.allow_player_credit_grant", False)
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, MutableMapping, Optional

import yaml

from gamevault.core.config.config import Config
from gamevault.core.exceptions import ConfigurationError
from gamevault.core.logging.logger import get_logger

logger = get_logger(__name__)

__all__ = ["ConfigManager"]


class ConfigManager:
    """
    Tunable game configuration with YAML defaults and in-memory overrides.

    Class-level state; instances share it, so ``ConfigManager()`` and
    ``ConfigManager`` may be passed to services interchangeably.
    """

    _defaults: Dict[str, Any] = {}
    _cache: Dict[str, Any] = {}
    _loaded_at: Optional[datetime] = None
    _source_files: List[str] = []

    _initialized: bool = False
    _init_lock: asyncio.Lock = asyncio.Lock()

    # full dot key -> callable(value) -> value
    _validators: Dict[str, Callable[[Any], Any]] = {}

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)  # type: ignore[index]
            else:
                target[key] = value

    @classmethod
    def _load_yaml_configs(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load every YAML file under the config directory into `_defaults`.

        Files are merged in sorted path order so later files override
        earlier ones deterministically. A missing directory leaves only
        the call-site defaults in effect.
        """
        config_dir = Path(config_dir or Config.CONFIG_DIR)
        cls._defaults = {}
        cls._source_files = []

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using call-site defaults only",
                extra={"config_dir": str(config_dir)},
            )
            cls._cache = {}
            return

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )

        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                logger.error(
                    "Failed to parse YAML config",
                    extra={"file": relative, "error": str(exc)},
                )
                raise ConfigurationError(relative, f"Invalid YAML: {exc}") from exc

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                cls._source_files.append(relative)
                logger.debug("Loaded YAML config", extra={"file": relative})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": relative, "root_type": type(data).__name__},
                )

        cls._cache = copy.deepcopy(cls._defaults)
        cls._loaded_at = datetime.now(timezone.utc)

        logger.info(
            "YAML configs loaded",
            extra={
                "yaml_file_count": len(cls._source_files),
                "top_level_keys": sorted(cls._cache.keys()),
            },
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    async def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """Load YAML defaults. Idempotent unless `reset()` is called in between."""
        async with cls._init_lock:
            if cls._initialized:
                logger.debug("ConfigManager already initialized; skipping")
                return
            cls._load_yaml_configs(config_dir)
            cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop overrides and loaded state; next access reloads from YAML."""
        cls._defaults = {}
        cls._cache = {}
        cls._source_files = []
        cls._loaded_at = None
        cls._initialized = False

    @classmethod
    def _ensure_loaded(cls) -> None:
        if not cls._initialized:
            logger.debug("ConfigManager accessed before initialize(); loading YAML now")
            cls._load_yaml_configs()
            cls._initialized = True

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    @classmethod
    def register_validator(cls, key: str, validator: Callable[[Any], Any]) -> None:
        """Register a callable applied to values written through `set()`."""
        cls._validators[key] = validator

    # =========================================================================
    # READ / WRITE
    # =========================================================================

    @staticmethod
    def _traverse(tree: Dict[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("economy.max_balance", 1_000_000_000)
        """
        cls._ensure_loaded()

        value = cls._traverse(cls._cache, key)
        if value is None:
            value = cls._traverse(cls._defaults, key)
        return default if value is None else value

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """
        Override a configuration value in memory.

        Raises
        ------
        ConfigurationError
            If a registered validator rejects the value.
        """
        cls._ensure_loaded()

        validator = cls._validators.get(key)
        if validator is not None:
            try:
                value = validator(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(key, str(exc)) from exc

        parts = key.split(".")
        node: Dict[str, Any] = cls._cache
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child

        old_value = node.get(parts[-1])
        node[parts[-1]] = value

        logger.info(
            "Configuration override applied",
            extra={"config_key": key, "old_value": old_value, "new_value": value},
        )

    @classmethod
    def get_all_keys(cls) -> List[str]:
        """Return all top-level configuration keys."""
        cls._ensure_loaded()
        return sorted(cls._cache.keys())

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._initialized,
            "source_files": list(cls._source_files),
            "loaded_at": cls._loaded_at.isoformat() if cls._loaded_at else None,
            "top_level_keys": sorted(cls._cache.keys()),
        }
