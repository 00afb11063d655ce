"""
Unit tests for the JSON-LD tier.
"""
import pytest
from bs4 import BeautifulSoup

from ausbildung_jobs.pipeline.jsonld import JSONLDExtractor


def _soup(*blocks):
    scripts = ''.join(f'<script type="application/ld+json">{block}</script>' for block in blocks)
    return BeautifulSoup(f"<html><head>{scripts}</head><body></body></html>", 'lxml')


class TestJSONLDExtractor:
    """JobPosting extraction."""

    def test_extract_job_posting(self):
        soup = _soup("""
        {
          "@context": "https://schema.org",
          "@type": "JobPosting",
          "title": "Ausbildung Koch (m/w/d)",
          "hiringOrganization": {"@type": "Organization", "name": "Hotel Sonne"},
          "datePosted": "2025-03-01",
          "jobStartDate": "2025-08-01",
          "description": "<p>Kochen lernen</p>",
          "jobLocation": {"address": {"addressLocality": "München", "addressRegion": "Bayern"}},
          "baseSalary": {"value": {"value": 1050, "unitText": "MONTH"}},
          "employmentType": ["FULL_TIME", "APPRENTICESHIP"]
        }
        """)
        fields = JSONLDExtractor().extract(soup)

        assert fields['title'] == "Ausbildung Koch (m/w/d)"
        assert fields['company'] == "Hotel Sonne"
        assert fields['date_posted'] == "2025-03-01"
        assert fields['start_date'] == "2025-08-01"
        assert fields['description_html'] == "<p>Kochen lernen</p>"
        assert fields['location'] == "München"
        assert fields['salary'] == 1050
        assert fields['job_type'] == "FULL_TIME, APPRENTICESHIP"

    def test_malformed_block_skipped(self):
        soup = _soup('{"@type": "JobPosting", "title": ', '{"@type": "JobPosting", "title": "Zweiter Block"}')
        assert JSONLDExtractor().extract(soup)['title'] == "Zweiter Block"

    def test_non_job_blocks_ignored(self):
        soup = _soup('{"@type": "BreadcrumbList"}', '{"@type": "Organization", "name": "X"}')
        assert JSONLDExtractor().extract(soup) is None

    def test_no_blocks(self):
        soup = BeautifulSoup("<html><body><h1>Koch</h1></body></html>", 'lxml')
        assert JSONLDExtractor().extract(soup) is None

    def test_type_list(self):
        soup = _soup('{"@type": ["Thing", "JobPosting"], "name": "Per Name"}')
        assert JSONLDExtractor().extract(soup)['title'] == "Per Name"

    def test_array_block(self):
        soup = _soup('[{"@type": "WebPage"}, {"@type": "JobPosting", "title": "Im Array"}]')
        assert JSONLDExtractor().extract(soup)['title'] == "Im Array"

    def test_graph_container(self):
        soup = _soup('{"@context": "https://schema.org", "@graph": [{"@type": "WebSite"}, {"@type": "JobPosting", "title": "Im Graph"}]}')
        assert JSONLDExtractor().extract(soup)['title'] == "Im Graph"

    def test_location_list_and_region_fallback(self):
        soup = _soup('{"@type": "JobPosting", "jobLocation": [{"address": {"addressRegion": "Sachsen"}}, {"address": {"addressLocality": "Leipzig"}}]}')
        assert JSONLDExtractor().extract(soup)['location'] == "Sachsen"

    def test_string_hiring_organization(self):
        soup = _soup('{"@type": "JobPosting", "hiringOrganization": "Bäckerei Korn"}')
        assert JSONLDExtractor().extract(soup)['company'] == "Bäckerei Korn"

    def test_salary_range(self):
        soup = _soup('{"@type": "JobPosting", "baseSalary": {"value": {"minValue": 900, "maxValue": 1200}}}')
        assert JSONLDExtractor().extract(soup)['salary'] == "900-1200"

    def test_start_date_falls_back_to_valid_through(self):
        soup = _soup('{"@type": "JobPosting", "validThrough": "2025-06-30"}')
        assert JSONLDExtractor().extract(soup)['start_date'] == "2025-06-30"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
