"""
Configuration management for the site crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from urllib.parse import urlparse


RENDERERS = ('browser', 'http')
WAIT_UNTIL_EVENTS = ('load', 'domcontentloaded', 'networkidle', 'commit')


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""
    pass


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    base_url: str
    concurrency: int = 5
    retry_limit: int = 2
    renderer: str = 'browser'
    request_timeout: float = 30.0
    user_agent: str = 'sitecrawl/1.0'
    headless: bool = True
    wait_until: str = 'load'
    fail_on_http_error: bool = False


@dataclass
class StorageConfig:
    """Configuration for result storage."""
    output_file: str = 'sitemap.json'
    base_directory: Optional[str] = None


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: str = 'logs/crawler.log'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Build and validate a configuration from a plain mapping."""
        crawler_data = section_of(data, 'crawler')
        if not crawler_data.get('base_url'):
            raise ConfigError("crawler.base_url must be provided")

        try:
            config = cls(
                crawler=CrawlerConfig(**crawler_data),
                storage=StorageConfig(**section_of(data, 'storage')),
                logging=LoggingConfig(**section_of(data, 'logging')),
                monitoring=MonitoringConfig(**section_of(data, 'monitoring')),
            )
        except TypeError as e:
            raise ConfigError(f"Unknown configuration key: {e}") from e

        validate_config(config)
        return config


def validate_config(config: Config):
    """Validate configuration values."""
    crawler = config.crawler

    parsed = urlparse(crawler.base_url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigError(f"base_url must be an absolute http(s) URL: {crawler.base_url!r}")

    if crawler.concurrency < 1:
        raise ConfigError("concurrency must be at least 1")

    if crawler.retry_limit < 0:
        raise ConfigError("retry_limit must be non-negative")

    if crawler.renderer not in RENDERERS:
        raise ConfigError(f"renderer must be one of {', '.join(RENDERERS)}")

    if crawler.wait_until not in WAIT_UNTIL_EVENTS:
        raise ConfigError(f"wait_until must be one of {', '.join(WAIT_UNTIL_EVENTS)}")

    if crawler.request_timeout <= 0:
        raise ConfigError("request_timeout must be positive")

    if not config.storage.output_file:
        raise ConfigError("storage.output_file must be provided")

    logging.getLogger(__name__).debug("Configuration validation passed")


def section_of(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a copy of a config section; an absent or empty section is an empty mapping."""
    values = data.get(name)
    if values is None:
        return {}
    if not isinstance(values, dict):
        raise ConfigError(f"Configuration section '{name}' must be a mapping, got {values!r}")
    return dict(values)


def merge_overrides(data: Dict[str, Any], overrides: Optional[Dict[str, Dict[str, Any]]]) -> Dict[str, Any]:
    """Overlay non-None override values section by section."""
    merged = {section: section_of(data, section) for section in data}
    for section, values in (overrides or {}).items():
        target = merged.setdefault(section, {})
        for key, value in values.items():
            if value is not None:
                target[key] = value
    return merged


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
        """Load configuration from YAML file, applying command line overrides."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            try:
                config_data = yaml.safe_load(file) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {self.config_path}")

        self._config = Config.from_dict(merge_overrides(config_data, overrides))
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: str = "config.yaml",
                overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
    """Load configuration from file."""
    return ConfigManager(config_path).load_config(overrides)
