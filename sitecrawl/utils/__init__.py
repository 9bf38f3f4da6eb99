"""
Utility modules for the site crawler.
"""

from .config import Config, ConfigError, ConfigManager, CrawlerConfig, load_config

__all__ = ['Config', 'ConfigError', 'ConfigManager', 'CrawlerConfig', 'load_config']
