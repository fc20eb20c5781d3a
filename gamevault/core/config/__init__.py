"""
Configuration subsystem.

- **config.py**: static settings from environment variables (.env support)
- **manager.py**: tunable values from YAML with in-memory overrides

``ConfigManager`` is imported from its module directly; it depends on the
logging subsystem, which itself depends on ``Config``.
"""

from .config import Config, Environment

__all__ = ["Config", "Environment"]
