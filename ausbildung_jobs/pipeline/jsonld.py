"""
Tier 2: JSON-LD extractor.

Extracts job information from structured JSON-LD data (Schema.org JobPosting).
"""

import json
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from ..core.text import has_value

logger = logging.getLogger(__name__)


class JSONLDExtractor:
    """Extracts the first JobPosting found in a page's JSON-LD blocks."""

    def extract(self, soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
        """
        Scan all JSON-LD scripts and map the first JobPosting.

        Malformed blocks are skipped. Returns None when no block holds a
        JobPosting, which is normal for many pages.
        """
        for script in soup.find_all('script', type='application/ld+json'):
            raw = script.string if script.string is not None else script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.debug(f"Failed to parse JSON-LD: {e}")
                continue

            for item in self._flatten_jsonld(data):
                if self._is_job_posting(item):
                    return self._extract_job_posting(item)

        return None

    def _flatten_jsonld(self, data: Any) -> List[Dict]:
        """Flatten JSON-LD structure to list of candidate items."""
        items = []

        if isinstance(data, list):
            items.extend(item for item in data if isinstance(item, dict))
        elif isinstance(data, dict):
            items.append(data)
            if isinstance(data.get('@graph'), list):
                items.extend(item for item in data['@graph'] if isinstance(item, dict))

        return items

    def _is_job_posting(self, item: Dict) -> bool:
        """Check if JSON-LD item is a JobPosting (scalar or list @type)."""
        item_type = item.get('@type', item.get('type'))
        if isinstance(item_type, str):
            return item_type == 'JobPosting'
        if isinstance(item_type, list):
            return 'JobPosting' in item_type
        return False

    def _extract_job_posting(self, job_data: Dict) -> Dict[str, Any]:
        """Map JobPosting properties onto record field names."""
        return {
            'title': job_data.get('title') or job_data.get('name') or None,
            'company': self._organization_name(job_data.get('hiringOrganization')),
            'date_posted': job_data.get('datePosted') or None,
            'description_html': job_data.get('description') or None,
            'location': self._locality(job_data.get('jobLocation')),
            'salary': self._salary(job_data.get('baseSalary')),
            'job_type': self._employment_type(job_data.get('employmentType')),
            'start_date': job_data.get('jobStartDate') or job_data.get('validThrough') or None,
        }

    def _organization_name(self, org: Any) -> Optional[str]:
        if isinstance(org, dict):
            return org.get('name') or org.get('legalName') or None
        if isinstance(org, str):
            return org.strip() or None
        return None

    def _locality(self, job_location: Any) -> Optional[str]:
        """Locality, else region, of the first job location."""
        if isinstance(job_location, list):
            job_location = job_location[0] if job_location else None
        if isinstance(job_location, str):
            return job_location.strip() or None
        if not isinstance(job_location, dict):
            return None

        address = job_location.get('address')
        if isinstance(address, dict):
            return address.get('addressLocality') or address.get('addressRegion') or None
        if isinstance(address, str):
            return address.strip() or None
        return job_location.get('name') or None

    def _salary(self, base_salary: Any) -> Any:
        """baseSalary.value.value, a scalar baseSalary.value, or a min-max range."""
        if not isinstance(base_salary, dict):
            return base_salary if has_value(base_salary) else None

        value = base_salary.get('value')
        if not isinstance(value, dict):
            return value if has_value(value) else None

        if has_value(value.get('value')):
            return value['value']
        low, high = value.get('minValue'), value.get('maxValue')
        if has_value(low) and has_value(high):
            return f"{low}-{high}"
        return low if has_value(low) else (high if has_value(high) else None)

    def _employment_type(self, employment_type: Any) -> Optional[str]:
        if isinstance(employment_type, list):
            parts = [str(t) for t in employment_type if has_value(t)]
            return ', '.join(parts) if parts else None
        return employment_type or None
