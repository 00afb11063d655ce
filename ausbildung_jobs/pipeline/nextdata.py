"""
Tier 1: Next.js data API extractor.

The `/_next/data/<build id>/suche.json` payload has no fixed shape. The job
array is located by probing a ranked list of paths (first non-empty array
wins) and every field is read from an ordered list of alias accessors.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.net import FetchError, HTTPClient
from ..core.text import clean_text
from ..core.urls import BASE_URL, job_url_from_slug
from .models import ExtractionOutcome
from .strategies import Accessor, dig, first_defined, flag, key

logger = logging.getLogger(__name__)

# Records per page at or above which more pages are assumed when the payload
# carries no explicit pagination signal
FULL_PAGE_THRESHOLD = 20

# Ranked candidate locations of the job array, relative to pageProps
JOB_ARRAY_PATHS: Tuple[Tuple[str, Accessor], ...] = (
    ('jobs', key('jobs')),
    ('data.jobs', key('data', 'jobs')),
    ('searchResults.jobs', key('searchResults', 'jobs')),
    ('results', key('results')),
    ('data.results', key('data', 'results')),
    ('positions', key('positions')),
    ('listings', key('listings')),
    ('data.listings', key('data', 'listings')),
    ('initialData.jobs', key('initialData', 'jobs')),
    ('jobListings', key('jobListings')),
)

PAGINATION_PATHS: Tuple[Accessor, ...] = (
    key('pagination'),
    key('meta', 'pagination'),
    key('data', 'pagination'),
    key('paging'),
)


def _text_location(item: Dict[str, Any]) -> Any:
    """`location` only counts when it is a plain value, not an object."""
    location = item.get('location')
    return None if isinstance(location, (dict, list)) else location


def _slug_url(item: Dict[str, Any]) -> Optional[str]:
    slug = item.get('slug')
    return job_url_from_slug(slug) if slug else None


# Per-field alias accessors, in priority order
FIELD_ACCESSORS: Dict[str, Tuple[Accessor, ...]] = {
    'title': (key('title'), key('name'), key('jobTitle')),
    'company': (
        key('company'), key('employer'), key('companyName'),
        key('hiringOrganization', 'name'), key('firma'),
    ),
    'location': (
        key('location', 'city'), key('location', 'name'), _text_location,
        key('city'), key('address', 'city'),
        key('jobLocation', 'address', 'addressLocality'), key('ort'),
    ),
    'administrative_region': (
        key('bundesland'), key('state'), key('region'), key('federalState'),
        key('address', 'region'), key('location', 'bundesland'), key('location', 'state'),
        key('jobLocation', 'address', 'addressRegion'),
    ),
    'profession_category': (
        key('beruf'), key('profession'), key('category'), key('berufsfeld'),
        key('jobCategory'), key('occupationalCategory'), key('branche'),
        key('field'), key('fachrichtung'),
    ),
    'training_type': (
        key('ausbildungsart'), key('trainingType'), key('stellenart'),
        key('positionType'), key('type'), key('employmentType'), key('contractType'),
        flag('isDualStudium', 'Duales Studium'), flag('isAusbildung', 'Ausbildung'),
    ),
    'date_posted': (key('datePosted'), key('publishedAt'), key('createdAt'), key('date')),
    'start_date': (key('startDate'), key('ausbildungsbeginn'), key('beginnDate'), key('start')),
    'description_html': (key('description'), key('descriptionHtml')),
    'description_text': (key('descriptionText'),),
    'salary': (key('salary'), key('gehalt'), key('baseSalary', 'value'), key('verguetung')),
    'job_type': (key('jobType'), key('employmentType')),
    'url': (key('url'), key('href'), key('link'), _slug_url),
}


def _flatten_value(value: Any) -> Any:
    """Collapse object values ({"name": ...}) to their name; keep scalars."""
    if isinstance(value, dict):
        return value.get('name') or value.get('title') or value.get('value')
    if isinstance(value, list):
        parts = [str(_flatten_value(v)) for v in value if _flatten_value(v) is not None]
        return ', '.join(parts) if parts else None
    return value


def map_job(item: Dict[str, Any]) -> Dict[str, Any]:
    """Map one API job item onto the record field names."""
    job = {name: _flatten_value(first_defined(item, accessors)) for name, accessors in FIELD_ACCESSORS.items()}
    if job.get('description_text') is None and isinstance(job.get('description_html'), str):
        job['description_text'] = clean_text(job['description_html']) or None
    return job


def find_job_array(page_props: Dict[str, Any]) -> Tuple[Optional[str], List[Any]]:
    """Return (path name, items) for the first ranked path holding a non-empty list."""
    for name, accessor in JOB_ARRAY_PATHS:
        items = accessor(page_props)
        if isinstance(items, list) and items:
            return name, items
    return None, []


def _find_pagination(page_props: Dict[str, Any]) -> Dict[str, Any]:
    for accessor in PAGINATION_PATHS:
        pagination = accessor(page_props)
        if isinstance(pagination, dict):
            return pagination
    return {}


def _has_explicit_more(pagination: Dict[str, Any]) -> bool:
    return (
        pagination.get('hasNext') is True
        or pagination.get('hasMore') is True
        or pagination.get('nextPage') is not None
        or pagination.get('next') is not None
    )


def _total_pages(pagination: Dict[str, Any]) -> Optional[int]:
    for name in ('totalPages', 'total_pages', 'lastPage'):
        value = pagination.get(name)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def parse_api_payload(payload: Any, full_page_threshold: int = FULL_PAGE_THRESHOLD) -> ExtractionOutcome:
    """
    Parse a Next.js data payload into job dicts plus a continuation signal.

    has_more is true when the payload says so explicitly, or when the page
    held at least `full_page_threshold` jobs.
    """
    if not isinstance(payload, dict):
        logger.debug(f"Unexpected API payload type: {type(payload).__name__}")
        return ExtractionOutcome()

    page_props = dig(payload, 'pageProps')
    if not isinstance(page_props, dict):
        page_props = payload

    path, items = find_job_array(page_props)
    try:
        jobs = [map_job(item) for item in items if isinstance(item, dict)]
    except Exception as e:
        logger.warning(f"Failed to map API jobs at pageProps.{path}: {e}", exc_info=True)
        return ExtractionOutcome(matched_path=path)
    if path:
        logger.debug(f"Job array found at pageProps.{path} ({len(jobs)} items)")

    pagination = _find_pagination(page_props)
    has_more = _has_explicit_more(pagination) or len(jobs) >= full_page_threshold

    return ExtractionOutcome(
        jobs=jobs,
        has_more=has_more,
        total_pages=_total_pages(pagination),
        matched_path=path,
    )


def api_url(build_id: str) -> str:
    return f"{BASE_URL}/_next/data/{build_id}/suche.json"


async def fetch_api_page(
    client: HTTPClient,
    build_id: str,
    page: int,
    keyword: str = '',
    location: str = '',
    beruf: str = '',
) -> Optional[Any]:
    """
    Fetch one page of the data API as JSON.

    Returns None on any transport or decoding failure.
    """
    params = {'page': str(page)}
    if keyword:
        params['was'] = keyword
    if location:
        params['wo'] = location
    if beruf:
        params['beruf'] = beruf

    url = api_url(build_id)
    logger.debug(f"Next.js API: fetching {url} page={page}")
    try:
        return await client.fetch_json(url, params=params, retries=0)
    except FetchError as e:
        logger.warning(f"Next.js API fetch failed for page {page}: {e}")
        return None
