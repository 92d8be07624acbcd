"""Configuration module -- environment settings and the indexer settings loader."""

from wp_indexer.config.loader import SettingsLoader, load_settings_file, parse_settings
from wp_indexer.config.settings import ENVIRONMENT_VARIABLES, Settings

__all__ = [
    "ENVIRONMENT_VARIABLES",
    "Settings",
    "SettingsLoader",
    "load_settings_file",
    "parse_settings",
]
