"""
Tests for log formatting and filtering.
"""

import json
import logging

from sitecrawl.utils.logger import JSONFormatter, NoiseFilter


def make_record(name="sitecrawl.crawler.scheduler", level=logging.INFO, **extra):
    record = logging.makeLogRecord({
        'name': name, 'levelno': level, 'levelname': logging.getLevelName(level),
        'msg': "Retrying URL (1/2): %s", 'args': ("https://example.com/a",),
    })
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_url():
    entry = json.loads(JSONFormatter().format(make_record(url="https://example.com/a")))

    assert entry['message'] == "Retrying URL (1/2): https://example.com/a"
    assert entry['level'] == 'INFO'
    assert entry['url'] == "https://example.com/a"


def test_json_formatter_without_url():
    entry = json.loads(JSONFormatter().format(make_record()))
    assert 'url' not in entry
    assert entry['logger'] == "sitecrawl.crawler.scheduler"


def test_noise_filter_drops_chatty_debug_records():
    noise = NoiseFilter()
    assert noise.filter(make_record(name="playwright._impl", level=logging.DEBUG)) is False
    assert noise.filter(make_record(name="asyncio", level=logging.WARNING)) is True
    assert noise.filter(make_record(level=logging.DEBUG)) is True
