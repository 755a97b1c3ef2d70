"""Configuration management for Fuel Monitor."""

from fuel_monitor.config.schema import AppConfig
from fuel_monitor.config.manager import ConfigManager

__all__ = ["AppConfig", "ConfigManager"]
