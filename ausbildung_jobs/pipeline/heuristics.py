"""
Tier 3: heuristic HTML extractor.

Uses cascading CSS selectors, label heuristics and pattern matching to pull
list-page cards, detail-page fields and the next-page link out of raw markup.
Every cascade is a declarative tuple of strategies; the first one that
yields a value wins.
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Pattern, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag

from ..core.text import collapse_whitespace
from ..core.urls import to_absolute
from .models import BasicInfo
from .strategies import first_match, first_success

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# List pages
# ---------------------------------------------------------------------------

PRIMARY_CARD_SELECTOR = '.c-jobCard'

# (anchor selector, closest container selector), tried in order when the primary selector finds nothing
FALLBACK_CARD_SELECTORS = [
    ('a[href*="/stellen/"]', 'article, div[class*="card"], li'),
    ('h2 a[href*="/stellen/"]', 'article, div, li'),
]

CARD_LINK_SELECTORS = ['h2 a[href]', 'a[href*="/stellen/"]', 'a[href*="/ausbildung/"]']
CARD_TITLE_SELECTORS = ['h2 a, h3, h2', '[class*="title"]']
CARD_COMPANY_SELECTORS = ['.c-jobCard__company, [class*="company"]']
CARD_LOCATION_SELECTORS = ['.c-jobCard__location, [class*="location"]']


def tag_text(tag: Optional[Tag]) -> str:
    if tag is None:
        return ''
    return collapse_whitespace(tag.get_text(' '))


def select_text(root: Tag, selector: str) -> str:
    """Trimmed text of the first element matching selector (document order)."""
    return tag_text(root.select_one(selector))


def first_text(root: Tag, selectors: List[str]) -> str:
    """First non-empty trimmed text over an ordered list of selectors."""
    for selector in selectors:
        text = select_text(root, selector)
        if text:
            return text
    return ''


def _unique(tags: List[Tag]) -> List[Tag]:
    seen = set()
    result = []
    for tag in tags:
        if id(tag) not in seen:
            seen.add(id(tag))
            result.append(tag)
    return result


def _closest_containers(soup: BeautifulSoup, anchor_selector: str, container_selector: str) -> List[Tag]:
    containers = []
    for anchor in soup.select(anchor_selector):
        container = anchor.css.closest(container_selector)
        if container is not None:
            containers.append(container)
    return _unique(containers)


def find_job_cards(soup: BeautifulSoup) -> List[Tag]:
    """Locate job cards: primary selector, then the anchor/heading based fallbacks."""
    cards = soup.select(PRIMARY_CARD_SELECTOR)
    if cards:
        return cards

    for anchor_selector, container_selector in FALLBACK_CARD_SELECTORS:
        cards = _closest_containers(soup, anchor_selector, container_selector)
        if cards:
            logger.debug(f"Card fallback matched {len(cards)} cards via {anchor_selector}")
            return cards

    return []


def _card_link_strategies(base_url: str) -> List[Callable[[Tag], Optional[str]]]:
    strategies = []
    for selector in CARD_LINK_SELECTORS:
        strategies.append(lambda card, s=selector: to_absolute((card.select_one(s) or {}).get('href'), base_url))
    # The card itself may be the link
    strategies.append(lambda card: to_absolute(card.get('href'), base_url))
    return strategies


def extract_list(soup: BeautifulSoup, base_url: str) -> List[BasicInfo]:
    """
    Extract job summaries from a list page.

    Cards without a resolvable link, or with neither title nor company, are dropped.
    """
    jobs = []
    link_strategies = _card_link_strategies(base_url)

    for card in find_job_cards(soup):
        job_url = first_success(link_strategies, card)
        if not job_url:
            continue

        title = first_text(card, CARD_TITLE_SELECTORS)
        company = first_text(card, CARD_COMPANY_SELECTORS)
        location = first_text(card, CARD_LOCATION_SELECTORS)

        if title or company:
            jobs.append(BasicInfo(
                url=job_url,
                title=title or None,
                company=company or None,
                location=location or None,
            ))

    return jobs


# ---------------------------------------------------------------------------
# Detail pages
# ---------------------------------------------------------------------------

LABEL_SELECTOR = 'dt, .label, strong'
VALUE_SELECTOR = 'dd, .value, span'
INFO_BLOCK_SELECTOR = '[class*="info"], [class*="fact"], [class*="detail"]'

DESCRIPTION_SELECTORS = ['.c-jobDetail__description', '[class*="job-description"], [class*="beschreibung"], .description']
SIDEBAR_SELECTOR = '.c-jobDetail__sidebar, .c-jobDetail__facts'
BREADCRUMB_SELECTOR = '.breadcrumb, [class*="breadcrumb"], nav'

# Longer names first so "Sachsen-Anhalt" is not read as "Sachsen"
FEDERAL_STATES = [
    'Mecklenburg-Vorpommern', 'Nordrhein-Westfalen', 'Baden-Württemberg',
    'Schleswig-Holstein', 'Rheinland-Pfalz', 'Sachsen-Anhalt', 'Niedersachsen',
    'Brandenburg', 'Thüringen', 'Saarland', 'Hamburg', 'Sachsen', 'Hessen',
    'Bremen', 'Berlin', 'Bayern',
]
FEDERAL_STATE_PATTERN = re.compile(
    r'(?<![\w-])(' + '|'.join(re.escape(s) for s in FEDERAL_STATES) + r')(?![\w-])',
    re.IGNORECASE,
)
_CANONICAL_STATES = {s.lower(): s for s in FEDERAL_STATES}

TRAINING_TYPES = ['Duale Ausbildung', 'Schulische Ausbildung', 'Duales Studium', 'Praktikum', 'Trainee']

LABEL_PATTERNS: Dict[str, Pattern] = {
    'company': re.compile(r'unternehmen|arbeitgeber|firma', re.I),
    'location': re.compile(r'standort|arbeitsort|einsatzort', re.I),
    'administrative_region': re.compile(r'bundesland|federal\s*state|region', re.I),
    'profession_category': re.compile(r'beruf|profession|kategorie|berufsfeld|fachrichtung', re.I),
    'training_type': re.compile(r'ausbildungsart|art\s*der\s*ausbildung|stellenart|training|typ', re.I),
    'start_date': re.compile(r'beginn|start|ab wann|ausbildungsbeginn', re.I),
}


class DetailPage:
    """Parsed detail page with lazily computed text views."""

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup
        self._full_text: Optional[str] = None

    @property
    def full_text(self) -> str:
        if self._full_text is None:
            body = self.soup.body or self.soup
            self._full_text = body.get_text(' ')
        return self._full_text

    @property
    def breadcrumbs(self) -> str:
        return ' '.join(tag.get_text(' ') for tag in self.soup.select(BREADCRUMB_SELECTOR))


def _adjacent_value(label: Tag) -> str:
    """Text of the value node right after a label element."""
    sibling = label.find_next_sibling()
    if sibling is not None and sibling.css.match(VALUE_SELECTOR):
        value = tag_text(sibling)
        if value:
            return value

    # <strong>Beginn:</strong> 01.08.2025 - value is a bare text node
    node = label.next_sibling
    if isinstance(node, NavigableString):
        return collapse_whitespace(str(node)).lstrip(':').strip()
    return ''


def find_labeled_value(soup: BeautifulSoup, label_pattern: Pattern) -> Optional[str]:
    """
    Labeled-pair scan: label elements (dt, .label, strong) whose text matches
    the pattern, read through their adjacent value; then "Label: value" lines
    inside info/fact/detail blocks.
    """
    for label in soup.select(LABEL_SELECTOR):
        if label_pattern.search(tag_text(label).lower()):
            value = _adjacent_value(label)
            if value:
                return value

    inline = re.compile(r'(?:' + label_pattern.pattern + r')[:\s]+(?P<value>[^\n]+)', re.IGNORECASE)
    for block in soup.select(INFO_BLOCK_SELECTOR):
        match = inline.search(block.get_text())
        if match and match.group('value').strip():
            return collapse_whitespace(match.group('value'))

    return None


def _structural(selector: str) -> Callable[[DetailPage], str]:
    def strategy(page: DetailPage) -> str:
        return select_text(page.soup, selector)
    return strategy


def _labeled(field_name: str) -> Callable[[DetailPage], Optional[str]]:
    pattern = LABEL_PATTERNS[field_name]

    def strategy(page: DetailPage) -> Optional[str]:
        return find_labeled_value(page.soup, pattern)
    return strategy


def _state_in_text(page: DetailPage) -> Optional[str]:
    for text in (page.breadcrumbs, page.full_text):
        match = FEDERAL_STATE_PATTERN.search(text or '')
        if match:
            return _CANONICAL_STATES.get(match.group(1).lower(), match.group(1))
    return None


def _profession_from_keywords(page: DetailPage) -> Optional[str]:
    meta = page.soup.find('meta', attrs={'name': 'keywords'})
    keywords = meta.get('content') if meta else None
    if not keywords or 'Ausbildung' not in keywords:
        return None
    for part in (p.strip() for p in keywords.split(',')):
        if 'Ausbildung.de' not in part and 5 < len(part) < 50:
            return part
    return None


def _training_type_in_text(page: DetailPage) -> Optional[str]:
    for training_type in TRAINING_TYPES:
        if training_type in page.full_text:
            return training_type
    return None


def _training_type_from_heading(page: DetailPage) -> Optional[str]:
    heading = select_text(page.soup, 'h1').lower()
    if 'duales studium' in heading:
        return 'Duales Studium'
    if 'ausbildung' in heading:
        return 'Ausbildung'
    return None


def _description_html(page: DetailPage) -> Optional[str]:
    for selector in DESCRIPTION_SELECTORS:
        element = page.soup.select_one(selector)
        if element is not None:
            html = element.decode_contents().strip()
            if html:
                return html
    return None


def _sidebar_info(page: DetailPage) -> str:
    return collapse_whitespace(' '.join(tag.get_text(' ') for tag in page.soup.select(SIDEBAR_SELECTOR)))


StrategyTable = Dict[str, Tuple[Tuple[str, Callable[[DetailPage], Optional[str]]], ...]]

# field -> ordered (level, strategy) pairs: structural, then labeled pair, then free-text heuristics
DETAIL_STRATEGIES: StrategyTable = {
    'title': (
        ('structural', _structural('h1')),
        ('structural', _structural('[class*="job-title"]')),
    ),
    'company': (
        ('structural', _structural('[class*="company"], [class*="employer"], [class*="firma"]')),
        ('labeled', _labeled('company')),
    ),
    'location': (
        ('structural', _structural('[class*="location"], [class*="ort"], [class*="standort"]')),
        ('labeled', _labeled('location')),
    ),
    'administrative_region': (
        ('structural', _structural('[class*="bundesland"], [class*="state"], [class*="region"]')),
        ('labeled', _labeled('administrative_region')),
        ('free_text', _state_in_text),
    ),
    'profession_category': (
        ('structural', _structural('[class*="beruf"], [class*="profession"], [class*="category"], [class*="berufsfeld"]')),
        ('labeled', _labeled('profession_category')),
        ('free_text', _profession_from_keywords),
    ),
    'training_type': (
        ('structural', _structural('[class*="ausbildungsart"], [class*="training-type"], [class*="stellenart"]')),
        ('labeled', _labeled('training_type')),
        ('free_text', _training_type_in_text),
        ('free_text', _training_type_from_heading),
    ),
    'start_date': (
        ('structural', _structural('[class*="beginn"], [class*="start"]')),
        ('labeled', _labeled('start_date')),
    ),
    'description_html': (
        ('structural', _description_html),
    ),
    'sidebar_info': (
        ('structural', _sidebar_info),
    ),
}


def extract_detail(soup: BeautifulSoup, trace: Optional[Dict[str, str]] = None) -> Dict[str, Optional[str]]:
    """
    Extract detail-page fields, each through its own fallback cascade.

    If `trace` is given it is filled with field -> fallback level that produced the value.
    """
    page = DetailPage(soup)
    fields: Dict[str, Optional[str]] = {}

    for field_name, strategies in DETAIL_STRATEGIES.items():
        level, value = first_match(strategies, page)
        fields[field_name] = value
        if trace is not None and level:
            trace[field_name] = level

    return fields


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

NEXT_TEXT_PATTERN = re.compile(r'\bweiter\b|\bnext\b|›|»|>', re.IGNORECASE)
PREVIOUS_TEXT_PATTERN = re.compile(r'zurück|prev|back', re.IGNORECASE)


def _rel_next(soup: BeautifulSoup) -> Optional[str]:
    link = soup.select_one('a[rel~="next"][href]')
    return link.get('href') if link else None


def _site_next(soup: BeautifulSoup) -> Optional[str]:
    element = soup.select_one('.c-pagination__next')
    if element is None:
        return None
    if element.get('href'):
        return element.get('href')
    link = element.select_one('a[href]')
    return link.get('href') if link else None


def find_next_page(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """
    Find the absolute URL of the next list page: rel="next", then the site's
    pagination class, then link text tokens (never "previous/back" links).
    """
    for strategy in (_rel_next, _site_next):
        next_url = to_absolute(strategy(soup), base_url)
        if next_url:
            return next_url

    current = to_absolute(base_url, base_url)
    for link in soup.select('a[href]'):
        text = tag_text(link)
        if not text or not NEXT_TEXT_PATTERN.search(text) or PREVIOUS_TEXT_PATTERN.search(text):
            continue
        next_url = to_absolute(link.get('href'), base_url)
        if next_url and next_url != current:
            return next_url

    return None
