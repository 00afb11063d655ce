"""
Round-robin proxy rotation.
"""
import logging
import threading
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


class ProxyRotator:
    """Hands out configured proxy URLs in rotation. No proxies means direct connections."""

    def __init__(self, proxy_urls: Optional[Iterable[str]] = None):
        self.proxy_urls: List[str] = [u.strip() for u in (proxy_urls or []) if u and u.strip()]
        self._index = 0
        self._lock = threading.Lock()
        if self.proxy_urls:
            logger.info(f"[proxy] Rotating across {len(self.proxy_urls)} proxy URL(s)")

    @property
    def enabled(self) -> bool:
        return bool(self.proxy_urls)

    def new_url(self) -> Optional[str]:
        """Return the next proxy URL, or None for a direct connection."""
        if not self.proxy_urls:
            return None
        with self._lock:
            url = self.proxy_urls[self._index % len(self.proxy_urls)]
            self._index += 1
        return url

    def __repr__(self):
        return f"ProxyRotator(proxies={len(self.proxy_urls)})"
