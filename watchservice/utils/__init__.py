# watchservice/utils/__init__.py

"""
watchservice Utilities
"""
from .config import Config, WatcherConfig, LoggingConfig, load_config, get_config_paths
from .logger import setup_logging, get_logger, log_exception, JsonFormatter, ColorFormatter

__all__ = [
    'Config', 'WatcherConfig', 'LoggingConfig', 'load_config', 'get_config_paths',
    'setup_logging', 'get_logger', 'log_exception', 'JsonFormatter', 'ColorFormatter',
]
