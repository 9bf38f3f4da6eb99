"""
Single-site crawler producing a sitemap of pages and their static assets.
"""

__version__ = "1.0.0"
