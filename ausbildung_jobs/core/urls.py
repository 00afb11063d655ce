"""
URL helpers for ausbildung.de: absolute resolution and search URL construction.
"""
import logging
from typing import Optional
from urllib.parse import urlencode, urljoin, urlparse, urlunparse

logger = logging.getLogger(__name__)

BASE_URL = "https://www.ausbildung.de"
SEARCH_URL = f"{BASE_URL}/suche/"
ALLOWED_SCHEMES = ("http", "https")


def to_absolute(href: Optional[str], base: str = BASE_URL) -> Optional[str]:
    """
    Resolve an href against a base URL.

    Returns None when the href cannot yield a crawlable http(s) URL:
    empty or fragment-only hrefs, javascript:/mailto:/tel: links, or
    anything without a host after resolution. The fragment is dropped.
    """
    if href is None:
        return None
    href = str(href).strip()
    if not href or href.startswith('#'):
        return None

    try:
        resolved = urljoin(base or BASE_URL, href)
        parsed = urlparse(resolved)
    except ValueError as e:
        logger.debug(f"Unresolvable href {href!r}: {e}")
        return None

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        return None

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path or '/',
        parsed.params,
        parsed.query,
        '',
    ))


def build_search_url(keyword: str = '', location: str = '', beruf: str = '') -> str:
    """Build the public search URL (was=keyword, wo=location, beruf=profession)."""
    params = {}
    if keyword and str(keyword).strip():
        params['was'] = str(keyword).strip()
    if location and str(location).strip():
        params['wo'] = str(location).strip()
    if beruf and str(beruf).strip():
        params['beruf'] = str(beruf).strip()
    if not params:
        return SEARCH_URL
    return f"{SEARCH_URL}?{urlencode(params)}"


def job_url_from_slug(slug: str) -> str:
    """Canonical detail URL for a job slug."""
    return f"{BASE_URL}/stellen/{str(slug).strip('/')}/"
