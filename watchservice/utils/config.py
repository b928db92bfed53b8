# watchservice/utils/config.py

"""
Configuration management for watchservice
"""
import os
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union, List
from dataclasses import dataclass, field, asdict
import logging

logger = logging.getLogger(__name__)

ENV_LOG_LEVEL = "WATCHSERVICE_LOG_LEVEL"


@dataclass
class WatcherConfig:
    """Directory watcher configuration"""
    use_polling: bool = False  # force the stat-polling observer
    poll_interval: float = 0.1  # seconds, polling observer only
    batch_latency: float = 0.02  # seconds to gather events into one batch
    liveness_interval: float = 1.0  # seconds between idle watch checks
    ready_timeout: float = 10.0  # seconds to wait for registration
    join_timeout: float = 5.0  # seconds to wait for the observer on shutdown

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.batch_latency < 0:
            raise ValueError(f"batch_latency must not be negative, got {self.batch_latency}")
        if self.liveness_interval <= 0:
            raise ValueError(f"liveness_interval must be positive, got {self.liveness_interval}")


@dataclass
class LoggingConfig:
    """Logging configuration"""
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "text"  # text, json, or color


@dataclass
class Config:
    """Main configuration class"""
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        env_level = os.environ.get(ENV_LOG_LEVEL)
        if env_level:
            self.logging.log_level = env_level.upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert config to JSON string"""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_yaml(self) -> str:
        """Convert config to YAML string"""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def save(self, path: Union[str, Path]):
        """Save config to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
        else:  # default to JSON
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, default=str)

        logger.info(f"Configuration saved to {path}")

    def update_from_dict(self, data: Dict[str, Any]):
        """
        Update config from dictionary

        Accepts nested sections (``{"watcher": {...}}``) as well as flat keys
        naming a field of any section.
        """
        for key, value in data.items():
            if key == 'watcher' and isinstance(value, dict):
                self.watcher = _merge(self.watcher, value)
            elif key == 'logging' and isinstance(value, dict):
                self.logging = _merge(self.logging, value)
            elif hasattr(self.watcher, key):
                self.watcher = _merge(self.watcher, {key: value})
            elif hasattr(self.logging, key):
                setattr(self.logging, key, value)
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")


def _merge(section, values: Dict[str, Any]):
    """Rebuild a section dataclass so its validation runs on new values"""
    merged = asdict(section)
    for key, value in values.items():
        if key in merged:
            merged[key] = value
        else:
            logger.warning(f"Ignoring unknown configuration key: {key}")
    return type(section)(**merged)


def get_config_paths(path: Union[str, Path, None] = None) -> List[Path]:
    """Get configuration file candidates in lookup order"""
    config_paths = []

    if path:
        config_paths.append(Path(path))

    config_paths.extend([
        Path("watchservice.yaml"),
        Path("watchservice.json"),
    ])

    import sys
    if sys.platform == "win32":
        appdata = Path(os.environ.get('LOCALAPPDATA', Path.home()))
        config_paths.append(appdata / "watchservice" / "config.yaml")
    elif sys.platform == "darwin":
        config_paths.append(Path.home() / "Library" / "Application Support" / "watchservice" / "config.yaml")
    else:  # linux
        config_paths.append(Path.home() / ".config" / "watchservice" / "config.yaml")

    return config_paths


def load_config(path: Union[str, Path, None] = None) -> Config:
    """
    Load configuration from file or fall back to defaults

    Args:
        path: Explicit config file; an explicit path that does not exist is
            an error, the default locations are optional

    Raises:
        FileNotFoundError: If ``path`` was given and does not exist
    """
    if path and not Path(path).exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    for config_path in get_config_paths(path):
        if not config_path.exists():
            continue

        logger.info(f"Loading configuration from {config_path}")

        if config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        else:  # JSON
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)

        config = Config()
        config.update_from_dict(data or {})
        return config

    logger.debug("No configuration file found, using defaults")
    return Config()
