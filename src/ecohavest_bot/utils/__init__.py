from .config import AppConfig, ConfigManager, ConfigurationError, load_config
from .logging import setup_logging

__all__ = ['AppConfig', 'ConfigManager', 'ConfigurationError', 'load_config', 'setup_logging']
