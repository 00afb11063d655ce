"""
Text cleaning helpers.
"""
import re
from typing import Any, Optional

from bs4 import BeautifulSoup

_WHITESPACE = re.compile(r'\s+')


def collapse_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    if not text:
        return ''
    return _WHITESPACE.sub(' ', text).strip()


def clean_text(html: Optional[str]) -> str:
    """Strip markup (dropping script/style/noscript/iframe) and normalize whitespace."""
    if not html:
        return ''
    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup(['script', 'style', 'noscript', 'iframe']):
        tag.decompose()
    return collapse_whitespace(soup.get_text(' '))


def has_value(value: Any) -> bool:
    """True for anything except None, empty/blank strings and empty containers."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) > 0
    return True
