"""
Build token discovery.

The Next.js data endpoint is addressed by a per-deployment build id. It is
recovered from the search landing page: first by textual patterns, then from
the `__NEXT_DATA__` bootstrap script.
"""
import json
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from ..core.net import FetchError, HTTPClient
from ..core.urls import SEARCH_URL

logger = logging.getLogger(__name__)

# Ordered; the first pattern with a match wins
BUILD_ID_PATTERNS = [
    re.compile(r'buildId["\':\s]+["\']?([a-zA-Z0-9_-]+)'),
    re.compile(r'"buildId":"([^"]+)"'),
    re.compile(r'buildId[\'"]\s*:\s*[\'"]([\w-]+)[\'"]'),
    re.compile(r'_buildId["\']?\s*:\s*["\']([^"\']+)["\']'),
]


def extract_build_id(html: str) -> Optional[str]:
    """Recover the build id from landing page HTML, or None."""
    if not html:
        return None

    for pattern in BUILD_ID_PATTERNS:
        match = pattern.search(html)
        if match and match.group(1):
            return match.group(1)

    soup = BeautifulSoup(html, 'html.parser')
    script = soup.find('script', id='__NEXT_DATA__')
    if script and script.string:
        try:
            next_data = json.loads(script.string)
        except json.JSONDecodeError as e:
            logger.debug(f"Malformed __NEXT_DATA__ block: {e}")
            return None
        if isinstance(next_data, dict) and next_data.get('buildId'):
            return str(next_data['buildId'])

    return None


async def discover_build_id(client: HTTPClient, url: str = SEARCH_URL) -> Optional[str]:
    """
    Fetch the landing page once and recover the build id.

    Never raises for transport problems: a failed fetch means "not found".
    """
    logger.info(f"Extracting build id from {url}...")
    try:
        response = await client.fetch(url, retries=0)
    except FetchError as e:
        logger.warning(f"Build id extraction failed: {e}")
        return None

    build_id = extract_build_id(response.text)
    if build_id:
        logger.info(f"Extracted build id: {build_id}")
    else:
        logger.warning("Could not extract build id from HTML")
    return build_id
