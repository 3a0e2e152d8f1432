"""Config – 12-factor settings and loaders."""

from mp_chaos.config.errors import ConfigError, InvalidSettingValueError
from mp_chaos.config.loaders import EnvSettingsLoader, SettingsLoader
from mp_chaos.config.settings import ChaosSettings, Settings

__all__ = [
    "ChaosSettings",
    "ConfigError",
    "EnvSettingsLoader",
    "InvalidSettingValueError",
    "Settings",
    "SettingsLoader",
]
