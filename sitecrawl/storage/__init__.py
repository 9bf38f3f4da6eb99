"""
Storage layer for crawl results.
"""

from .sitemap_store import PageRecord, SitemapStore, StorageError

__all__ = ['PageRecord', 'SitemapStore', 'StorageError']
