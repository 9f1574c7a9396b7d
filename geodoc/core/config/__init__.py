"""
Core configuration module for geodoc.

Provides layered settings (constructor overrides, environment variables, ``.env`` and the bundled ``config.ini``)
and a dictionary-style ``Config`` with secret masking.
"""

from geodoc.core.config.config import Config, CoreConfig, CoreSettings, SettingsLike, get_config

__all__ = ["Config", "CoreConfig", "CoreSettings", "SettingsLike", "get_config"]
