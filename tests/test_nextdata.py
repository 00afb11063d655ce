"""
Unit tests for build id discovery and the Next.js data API tier.
"""
import pytest

from ausbildung_jobs.core.net import FetchError
from ausbildung_jobs.core.urls import SEARCH_URL
from ausbildung_jobs.pipeline import nextdata
from ausbildung_jobs.pipeline.discovery import discover_build_id, extract_build_id
from ausbildung_jobs.pipeline.nextdata import (
    api_url,
    fetch_api_page,
    find_job_array,
    map_job,
    parse_api_payload,
)

from conftest import FakeClient


def _jobs(count, prefix='job'):
    return [{'title': f"Ausbildung {i}", 'slug': f"{prefix}-{i}"} for i in range(1, count + 1)]


class TestBuildIdDiscovery:
    """Build id extraction from the landing page."""

    def test_next_data_json(self):
        html = '<script id="__NEXT_DATA__" type="application/json">{"props":{},"buildId":"a1B2-c3_d4"}</script>'
        assert extract_build_id(html) == 'a1B2-c3_d4'

    def test_single_quoted_assignment(self):
        html = "<script>window.__cfg = {'buildId': 'xyz789'};</script>"
        assert extract_build_id(html) == 'xyz789'

    def test_not_found(self):
        assert extract_build_id('<html><body>Keine Daten</body></html>') is None
        assert extract_build_id('') is None

    @pytest.mark.asyncio
    async def test_discover_fetches_landing_page_once(self):
        client = FakeClient(pages={SEARCH_URL: '<script>{"buildId":"build42"}</script>'})
        assert await discover_build_id(client) == 'build42'
        assert client.requested_urls == [SEARCH_URL]

    @pytest.mark.asyncio
    async def test_fetch_failure_means_not_found(self):
        client = FakeClient(pages={SEARCH_URL: FetchError(SEARCH_URL, "Forbidden", 403)})
        assert await discover_build_id(client) is None


class TestShapeProbing:
    """Ranked job array paths."""

    def test_first_ranked_path_wins(self):
        payload = {'pageProps': {
            'results': [{'title': 'Aus results', 'slug': 'r'}],
            'jobs': [{'title': 'Aus jobs', 'slug': 'j'}],
        }}
        outcome = parse_api_payload(payload)
        assert outcome.matched_path == 'jobs'
        assert [job['title'] for job in outcome.jobs] == ['Aus jobs']

    def test_empty_array_is_skipped(self):
        payload = {'pageProps': {'jobs': [], 'data': {'jobs': [{'title': 'Verschachtelt'}]}}}
        name, items = find_job_array(payload['pageProps'])
        assert name == 'data.jobs'
        assert items == [{'title': 'Verschachtelt'}]

    def test_lower_ranked_path_used_when_others_missing(self):
        payload = {'pageProps': {'jobListings': [{'title': 'Letzter'}]}}
        outcome = parse_api_payload(payload)
        assert outcome.matched_path == 'jobListings'
        assert outcome.jobs[0]['title'] == 'Letzter'

    def test_root_used_without_page_props(self):
        outcome = parse_api_payload({'listings': [{'title': 'Ohne pageProps'}]})
        assert outcome.matched_path == 'listings'

    def test_no_array_found(self):
        outcome = parse_api_payload({'pageProps': {'jobs': 'kaputt'}})
        assert not outcome.is_success()
        assert outcome.matched_path is None

    def test_non_dict_payload(self):
        assert not parse_api_payload(['x']).is_success()
        assert not parse_api_payload(None).is_success()

    def test_unmappable_items_give_empty_outcome(self, monkeypatch):
        def broken_map_job(item):
            raise TypeError("unexpected field type")

        monkeypatch.setattr(nextdata, 'map_job', broken_map_job)
        outcome = parse_api_payload({'pageProps': {'jobs': _jobs(3), 'pagination': {'hasNext': True}}})
        assert not outcome.is_success()
        assert outcome.jobs == []
        assert outcome.has_more is False


class TestFieldMapping:
    """Per-field alias tables."""

    def test_first_defined_alias_wins(self):
        job = map_job({'name': 'Name', 'jobTitle': 'JobTitle', 'employer': 'Firma A', 'firma': 'Firma B'})
        assert job['title'] == 'Name'
        assert job['company'] == 'Firma A'

    def test_object_company_collapses_to_name(self):
        job = map_job({'company': {'name': 'Hotel Sonne', 'id': 7}})
        assert job['company'] == 'Hotel Sonne'

    def test_nested_hiring_organization(self):
        job = map_job({'hiringOrganization': {'name': 'Stadtwerke'}})
        assert job['company'] == 'Stadtwerke'

    def test_location_alternatives(self):
        assert map_job({'location': {'city': 'Berlin'}})['location'] == 'Berlin'
        assert map_job({'location': 'Hamburg'})['location'] == 'Hamburg'
        assert map_job({'location': {'zip': '10115'}, 'city': 'Köln'})['location'] == 'Köln'
        assert map_job({'jobLocation': {'address': {'addressLocality': 'Essen'}}})['location'] == 'Essen'

    def test_region_alternatives(self):
        assert map_job({'bundesland': 'Bayern', 'state': 'X'})['administrative_region'] == 'Bayern'
        assert map_job({'location': {'bundesland': 'Hessen'}})['administrative_region'] == 'Hessen'

    def test_training_type_from_flags(self):
        assert map_job({'isDualStudium': True})['training_type'] == 'Duales Studium'
        assert map_job({'isAusbildung': True})['training_type'] == 'Ausbildung'
        assert map_job({'isDualStudium': False, 'isAusbildung': True})['training_type'] == 'Ausbildung'

    def test_direct_training_type_beats_flags(self):
        job = map_job({'ausbildungsart': 'Schulische Ausbildung', 'isDualStudium': True})
        assert job['training_type'] == 'Schulische Ausbildung'

    def test_url_from_slug(self):
        assert map_job({'slug': 'koch-123'})['url'] == 'https://www.ausbildung.de/stellen/koch-123/'

    def test_explicit_url_beats_slug(self):
        assert map_job({'url': '/stellen/direkt/', 'slug': 'koch-123'})['url'] == '/stellen/direkt/'

    def test_description_text_derived(self):
        job = map_job({'description': '<p>Wir   suchen <b>dich</b></p>'})
        assert job['description_html'] == '<p>Wir   suchen <b>dich</b></p>'
        assert job['description_text'] == 'Wir suchen dich'

    def test_non_string_description_left_as_is(self):
        job = map_job({'title': 'Koch', 'slug': 'a', 'description': 123})
        assert job['description_html'] == 123
        assert job['description_text'] is None

    def test_payload_with_numeric_description_parses(self):
        outcome = parse_api_payload({'pageProps': {'jobs': [{'title': 'x', 'slug': 'a', 'description': 123}]}})
        assert outcome.is_success()
        assert outcome.jobs[0]['url'] == 'https://www.ausbildung.de/stellen/a/'

    def test_salary_alternatives(self):
        assert map_job({'gehalt': '950 €'})['salary'] == '950 €'
        assert map_job({'baseSalary': {'value': 1100}})['salary'] == 1100


class TestContinuation:
    """hasMore: explicit signal, else full-page heuristic."""

    def test_full_page_without_explicit_flag(self):
        outcome = parse_api_payload({'pageProps': {'jobs': _jobs(25), 'pagination': {'hasNext': False}}})
        assert outcome.has_more

    def test_short_page_without_flag_stops(self):
        outcome = parse_api_payload({'pageProps': {'jobs': _jobs(5)}})
        assert not outcome.has_more

    def test_explicit_has_next(self):
        outcome = parse_api_payload({'pageProps': {'jobs': _jobs(3), 'pagination': {'hasNext': True}}})
        assert outcome.has_more

    def test_next_page_number(self):
        outcome = parse_api_payload({'pageProps': {'jobs': _jobs(3), 'meta': {'pagination': {'nextPage': 2}}}})
        assert outcome.has_more

    def test_null_next_page(self):
        outcome = parse_api_payload({'pageProps': {'jobs': _jobs(3), 'pagination': {'nextPage': None}}})
        assert not outcome.has_more

    def test_threshold_is_tunable(self):
        payload = {'pageProps': {'jobs': _jobs(10)}}
        assert not parse_api_payload(payload).has_more
        assert parse_api_payload(payload, full_page_threshold=10).has_more

    def test_total_pages_hint(self):
        outcome = parse_api_payload({'pageProps': {'jobs': _jobs(2), 'paging': {'totalPages': '7'}}})
        assert outcome.total_pages == 7


class TestFetchApiPage:
    """Data endpoint requests."""

    @pytest.mark.asyncio
    async def test_query_parameters(self):
        client = FakeClient(api_pages={2: {'pageProps': {'jobs': []}}})
        payload = await fetch_api_page(client, 'build42', 2, keyword='Koch', location='', beruf='Gastro')
        assert payload == {'pageProps': {'jobs': []}}
        url, params = client.requests[0]
        assert url == api_url('build42') == 'https://www.ausbildung.de/_next/data/build42/suche.json'
        assert params == {'page': '2', 'was': 'Koch', 'beruf': 'Gastro'}

    @pytest.mark.asyncio
    async def test_failure_returns_none(self):
        client = FakeClient()
        assert await fetch_api_page(client, 'build42', 1) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
