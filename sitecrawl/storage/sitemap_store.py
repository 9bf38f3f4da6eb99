"""
Sitemap storage: collects one record per crawled page and writes them as JSON.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from ..crawler.parser import PageDependencies


class StorageError(Exception):
    """Raised when the sitemap file cannot be written."""
    pass


@dataclass
class PageRecord:
    """A crawled page and the static assets it depends on."""
    url: str
    dependencies: PageDependencies = field(default_factory=PageDependencies)


class SitemapStore:
    """
    In-memory record list flushed to a single JSON file at the end of a crawl.

    Any result file left over from a previous run is removed on construction
    so a failed run never leaves stale output behind.
    """

    def __init__(self, output_file: str, base_directory: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        base = Path(base_directory) if base_directory else Path.cwd()
        self._output_path = (base / output_file).resolve()
        self._records: List[PageRecord] = []
        self._remove_previous_output()

    def _remove_previous_output(self):
        try:
            self._output_path.unlink()
            self.logger.info(f"Removed previous result file {self._output_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Error while deleting file at path: {self._output_path}. Error: {e}")

    def append(self, record: PageRecord):
        self._records.append(record)

    def count(self) -> int:
        return len(self._records)

    @property
    def output_path(self) -> Path:
        return self._output_path

    def flush(self) -> Path:
        """Write all records to the output file and return its path."""
        payload = [asdict(record) for record in self._records]
        try:
            self._output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._output_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to write sitemap to {self._output_path}: {e}") from e

        self.logger.info(f"Wrote {len(payload)} records to {self._output_path}")
        return self._output_path
