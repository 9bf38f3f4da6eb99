"""
Tests for configuration loading and validation.
"""

import pytest
import yaml

from sitecrawl.utils.config import Config, ConfigError, ConfigManager, load_config, merge_overrides


def write_config(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_load_with_defaults(tmp_path):
    path = write_config(tmp_path, {'crawler': {'base_url': "https://example.com"}})

    config = load_config(str(path))

    assert config.crawler.base_url == "https://example.com"
    assert config.crawler.concurrency == 5
    assert config.crawler.retry_limit == 2
    assert config.crawler.renderer == 'browser'
    assert config.storage.output_file == 'sitemap.json'
    assert config.logging.level == 'INFO'
    assert config.monitoring.metrics_enabled is False


def test_overrides_take_precedence(tmp_path):
    path = write_config(tmp_path, {
        'crawler': {'base_url': "https://example.com", 'concurrency': 3},
        'storage': {'output_file': 'a.json'},
    })

    config = load_config(str(path), {
        'crawler': {'concurrency': 8, 'retry_limit': None, 'renderer': 'http'},
        'storage': {'output_file': 'b.json'},
    })

    assert config.crawler.concurrency == 8
    assert config.crawler.retry_limit == 2
    assert config.crawler.renderer == 'http'
    assert config.storage.output_file == 'b.json'


def test_merge_overrides_ignores_none():
    merged = merge_overrides({'crawler': {'a': 1}}, {'crawler': {'a': None, 'b': 2}, 'storage': {'c': 3}})
    assert merged == {'crawler': {'a': 1, 'b': 2}, 'storage': {'c': 3}}


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / "absent.yaml")).load_config()


def test_config_property_requires_load(tmp_path):
    with pytest.raises(ValueError):
        ConfigManager(str(tmp_path / "config.yaml")).config


@pytest.mark.parametrize("crawler", [
    {},
    {'base_url': "example.com"},
    {'base_url': "ftp://example.com"},
    {'base_url': "https://example.com", 'concurrency': 0},
    {'base_url': "https://example.com", 'retry_limit': -1},
    {'base_url': "https://example.com", 'renderer': 'curl'},
    {'base_url': "https://example.com", 'wait_until': 'never'},
    {'base_url': "https://example.com", 'request_timeout': 0},
    {'base_url': "https://example.com", 'unknown_key': 1},
])
def test_invalid_crawler_settings(crawler):
    with pytest.raises(ConfigError):
        Config.from_dict({'crawler': crawler})


def test_non_mapping_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_scalar_section_is_config_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler:\n  base_url: https://example.com\nstorage: out.json\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="'storage' must be a mapping"):
        load_config(str(path))


def test_scalar_section_rejected_without_overrides():
    with pytest.raises(ConfigError, match="'crawler' must be a mapping"):
        Config.from_dict({'crawler': "https://example.com"})


def test_empty_section_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler:\n  base_url: https://example.com\nstorage:\n", encoding="utf-8")
    assert load_config(str(path)).storage.output_file == 'sitemap.json'


def test_malformed_yaml_is_config_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler:\n  base_url: [https://example.com\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(str(path))
