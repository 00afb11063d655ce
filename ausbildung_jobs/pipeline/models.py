"""
Record types shared by all extraction tiers.
"""
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, List, Optional

from ..core.text import clean_text, has_value

# Record sources (which tier emitted the record)
SOURCE_API = 'nextjs_api'
SOURCE_DETAIL = 'html_detail'
SOURCE_LIST = 'html_list'


@dataclass
class JobRecord:
    """
    Canonical output record. `url` is the identity key and must be absolute.

    administrative_region, profession_category and training_type correspond to
    the site's "Bundesland", "Beruf" and "Ausbildungsart".
    """
    url: str
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    administrative_region: Optional[str] = None
    profession_category: Optional[str] = None
    training_type: Optional[str] = None
    date_posted: Optional[str] = None
    start_date: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    sidebar_info: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        # description_text derives from description_html, never the reverse
        if isinstance(self.description_html, str) and has_value(self.description_html) and not has_value(self.description_text):
            self.description_text = clean_text(self.description_html) or None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_partial(cls, url: str, partial: Dict[str, Any], source: Optional[str] = None) -> 'JobRecord':
        """Build a record from a partial dict, ignoring unknown keys and blank values."""
        known = set(cls.field_names()) - {'url', 'source'}
        values = {k: v for k, v in partial.items() if k in known and has_value(v)}
        return cls(url=url, source=source, **values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BasicInfo:
    """List-page summary of a job, carried into its detail request."""
    url: str
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExtractionOutcome:
    """Result of one tier attempt (e.g. one Tier 1 page)."""
    jobs: List[Dict[str, Any]] = field(default_factory=list)
    has_more: bool = False
    total_pages: Optional[int] = None
    matched_path: Optional[str] = None

    def is_success(self) -> bool:
        return len(self.jobs) > 0

    def __repr__(self):
        return f"ExtractionOutcome(jobs={len(self.jobs)}, has_more={self.has_more}, total_pages={self.total_pages})"
