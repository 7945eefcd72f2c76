"""
Configuration Management
"""
from .config_manager import AppConfig, ConfigManager, get_config, reset_config

__all__ = ['AppConfig', 'ConfigManager', 'get_config', 'reset_config']
