"""
Field-level merge of what the tiers found about one detail URL.

Precedence per field: JSON-LD (Tier 2) > HTML heuristics (Tier 3) > list-page
BasicInfo > None. Fields JSON-LD cannot express come from Tier 3 only.
"""
import logging
from typing import Any, Dict, Optional, Union

from ..core.text import clean_text, has_value
from .models import SOURCE_DETAIL, BasicInfo, JobRecord

logger = logging.getLogger(__name__)

# Fields resolved across all three sources
LAYERED_FIELDS = (
    'title', 'company', 'location', 'date_posted', 'start_date',
    'description_html', 'salary', 'job_type',
)

# Fields only the HTML heuristics can supply
TIER3_ONLY_FIELDS = ('administrative_region', 'profession_category', 'training_type', 'sidebar_info')

Partial = Optional[Dict[str, Any]]


def _pick(field_name: str, *sources: Partial) -> Any:
    for source in sources:
        if source and has_value(source.get(field_name)):
            return source[field_name]
    return None


def reconcile(
    url: str,
    jsonld: Partial = None,
    html_data: Partial = None,
    basic_info: Union[BasicInfo, Dict[str, Any], None] = None,
) -> JobRecord:
    """Merge up to three partial records for `url` into one JobRecord."""
    basic = basic_info.to_dict() if isinstance(basic_info, BasicInfo) else basic_info
    merged: Dict[str, Any] = {}

    for field_name in LAYERED_FIELDS:
        merged[field_name] = _pick(field_name, jsonld, html_data, basic)

    for field_name in TIER3_ONLY_FIELDS:
        merged[field_name] = _pick(field_name, html_data)

    # A directly supplied text wins; otherwise derive it from the winning html
    description_text = _pick('description_text', jsonld, html_data)
    if description_text is None and merged['description_html']:
        description_text = clean_text(merged['description_html']) or None
    merged['description_text'] = description_text

    return JobRecord.from_partial(url, merged, source=SOURCE_DETAIL)
