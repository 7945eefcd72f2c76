"""
Configuration Management Module

Handles metadata store configuration across different environments
with environment variable overrides.
"""

import os
import yaml
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class StoreConfig:
    """Metadata store file configuration"""
    db_path: str = "lfs.db"
    open_timeout: float = 1.0
    echo: bool = False


@dataclass
class AuthConfig:
    """Credential storage configuration"""
    hash_iterations: int = 260000


@dataclass
class LoggingConfig:
    """Logging configuration"""
    log_level: str = "INFO"
    log_format: str = "console"


@dataclass
class AppConfig:
    """Main application configuration"""
    store: StoreConfig = field(default_factory=StoreConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    environment: str = "development"
    debug: bool = False


class ConfigManager:
    """
    Configuration manager with environment-specific settings
    """

    ENV_MAPPINGS = {
        "LFS_METADB": ["store", "db_path"],
        "LFS_OPEN_TIMEOUT": ["store", "open_timeout"],
        "LFS_HASH_ITERATIONS": ["auth", "hash_iterations"],
        "LOG_LEVEL": ["logging", "log_level"],
        "LOG_FORMAT": ["logging", "log_format"],
    }

    def __init__(self, config_path: Optional[str] = None):
        self._explicit = config_path is not None
        self.config_path = config_path or self._get_default_config_path()
        self._config: Optional[AppConfig] = None

    def _get_default_config_path(self) -> str:
        """Get default configuration file based on environment"""
        env = os.getenv("ENVIRONMENT", "development")
        base_path = Path(__file__).parent
        return str(base_path / f"{env}.yaml")

    def load_config(self) -> AppConfig:
        """Load and validate configuration from file"""
        if self._config is None:
            self._config = self._load_from_file()
        return self._config

    def _load_from_file(self) -> AppConfig:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}
        except FileNotFoundError:
            if self._explicit:
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            # no file for this environment: built-in defaults
            config_data = {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML configuration: {e}")

        if not isinstance(config_data, dict):
            raise ValueError(f"Invalid YAML configuration: expected a mapping in {self.config_path}")

        config_data = self._override_with_env(config_data)
        return self._create_config_object(config_data)

    def _override_with_env(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Override configuration with environment variables"""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            if env_var in os.environ:
                value: Any = os.environ[env_var]
                if config_path[-1] == "open_timeout":
                    value = float(value)
                elif config_path[-1] == "hash_iterations":
                    value = int(value)

                # Navigate nested dictionary
                target = config_data
                for key in config_path[:-1]:
                    target = target.setdefault(key, {})
                target[config_path[-1]] = value

        return config_data

    def _create_config_object(self, config_data: Dict[str, Any]) -> AppConfig:
        """Create typed configuration object from dictionary"""
        try:
            return AppConfig(
                store=StoreConfig(**config_data.get("store", {})),
                auth=AuthConfig(**config_data.get("auth", {})),
                logging=LoggingConfig(**config_data.get("logging", {})),
                environment=config_data.get("environment", "development"),
                debug=config_data.get("debug", False)
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration in {self.config_path}: {e}")


# Global configuration instance
config_manager = ConfigManager()


def get_config() -> AppConfig:
    """Get application configuration"""
    return config_manager.load_config()


def reset_config(config_path: Optional[str] = None) -> None:
    """Point the global configuration at another file and drop the cached copy"""
    global config_manager
    config_manager = ConfigManager(config_path)
