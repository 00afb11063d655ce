"""
Shared run state: dedup set, saved counter and quota.

One instance lives for the whole run and is shared by Tier 1 and every
crawl worker; all mutations happen under a single lock.
"""
import logging
import threading
from collections import Counter
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)


class PaginationState:
    """Dedup and quota tracker for one run"""

    def __init__(self, results_wanted: int, max_pages: int):
        self.results_wanted = results_wanted
        self.max_pages = max_pages
        self.current_page = 1
        self._saved = 0
        self._saved_by_source: Counter = Counter()
        self._seen_urls: Set[str] = set()
        self._lock = threading.Lock()

    @property
    def saved(self) -> int:
        with self._lock:
            return self._saved

    @property
    def saved_by_source(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._saved_by_source)

    def should_process(self, url: str) -> bool:
        """Mark url as seen and return True, or return False if it was seen before."""
        with self._lock:
            if url in self._seen_urls:
                return False
            self._seen_urls.add(url)
            return True

    def is_seen(self, url: str) -> bool:
        with self._lock:
            return url in self._seen_urls

    def remaining_quota(self) -> int:
        with self._lock:
            return max(0, self.results_wanted - self._saved)

    def quota_met(self) -> bool:
        return self.remaining_quota() == 0

    def save(self, record: Dict[str, Any], sink, source: Optional[str] = None) -> bool:
        """
        Push a record to the sink if quota remains.

        Check, push and increment happen under the lock, so the count never
        exceeds the quota and sink order is acceptance order.
        """
        with self._lock:
            if self._saved >= self.results_wanted:
                return False
            sink.push(record)
            self._saved += 1
            self._saved_by_source[source or record.get('source') or 'unknown'] += 1
            return True

    def __repr__(self):
        return (
            f"PaginationState(saved={self._saved}/{self.results_wanted}, "
            f"page={self.current_page}/{self.max_pages}, seen={len(self._seen_urls)})"
        )
