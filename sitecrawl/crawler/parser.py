"""
Markup parser for extracting links and static-asset references.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from bs4 import BeautifulSoup


logger = logging.getLogger(__name__)


@dataclass
class PageDependencies:
    """Static assets referenced by a page."""
    js: List[str] = field(default_factory=list)
    link: List[str] = field(default_factory=list)
    image: List[str] = field(default_factory=list)


class ContentParser:
    """
    Extracts attribute values from rendered markup.
    Parsing is best effort: malformed markup never raises.
    """

    @staticmethod
    def _soup(markup: str) -> BeautifulSoup:
        return BeautifulSoup(markup or '', 'lxml')

    @staticmethod
    def attributes_of(markup: str, tag_name: str, attribute_name: str) -> List[str]:
        """
        Return the `attribute_name` values of every `tag_name` element, in document order.

        Elements without the attribute are skipped.
        """
        try:
            soup = ContentParser._soup(markup)
            return [
                ContentParser._attribute_text(tag.get(attribute_name))
                for tag in soup.find_all(tag_name)
                if tag.get(attribute_name) is not None
            ]
        except Exception as e:
            logger.error(f"Error extracting {tag_name}[{attribute_name}]: {e}")
            return []

    @staticmethod
    def _attribute_text(value) -> str:
        # Multi-valued attributes (e.g. rel) come back as lists.
        if isinstance(value, list):
            return ' '.join(value)
        return value

    def extract_links(self, markup: str) -> List[str]:
        """Anchor targets found on the page."""
        return self.attributes_of(markup, 'a', 'href')

    def extract_dependencies(self, markup: str) -> PageDependencies:
        """Scripts, linked resources and images referenced by the page."""
        return PageDependencies(
            js=self.attributes_of(markup, 'script', 'src'),
            link=self.attributes_of(markup, 'link', 'href'),
            image=self.attributes_of(markup, 'img', 'src'),
        )
