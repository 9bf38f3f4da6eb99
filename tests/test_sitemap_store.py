"""
Tests for the sitemap result store.
"""

import json

import pytest

from sitecrawl.crawler.parser import PageDependencies
from sitecrawl.storage.sitemap_store import PageRecord, SitemapStore, StorageError


def test_flush_writes_records(tmp_path):
    store = SitemapStore("sitemap.json", str(tmp_path))
    store.append(PageRecord(
        url="https://example.com/",
        dependencies=PageDependencies(js=["/app.js"], link=["/site.css"], image=["/logo.png"]),
    ))
    store.append(PageRecord(url="https://example.com/about"))

    path = store.flush()

    assert path == (tmp_path / "sitemap.json").resolve()
    assert store.count() == 2
    assert json.loads(path.read_text(encoding="utf-8")) == [
        {
            "url": "https://example.com/",
            "dependencies": {"js": ["/app.js"], "link": ["/site.css"], "image": ["/logo.png"]},
        },
        {
            "url": "https://example.com/about",
            "dependencies": {"js": [], "link": [], "image": []},
        },
    ]


def test_output_is_indented(tmp_path):
    store = SitemapStore("sitemap.json", str(tmp_path))
    store.append(PageRecord(url="https://example.com/"))
    text = store.flush().read_text(encoding="utf-8")
    assert text.startswith("[\n  {\n")


def test_previous_result_removed_on_init(tmp_path):
    stale = tmp_path / "sitemap.json"
    stale.write_text("[]", encoding="utf-8")

    store = SitemapStore("sitemap.json", str(tmp_path))

    assert not stale.exists()
    assert store.output_path == stale.resolve()


def test_missing_previous_result_is_fine(tmp_path):
    store = SitemapStore("nested/out.json", str(tmp_path))
    assert store.count() == 0
    assert store.flush() == (tmp_path / "nested" / "out.json").resolve()
    assert json.loads(store.output_path.read_text(encoding="utf-8")) == []


def test_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = SitemapStore("blocker/sitemap.json", str(tmp_path))

    with pytest.raises(StorageError):
        store.flush()
