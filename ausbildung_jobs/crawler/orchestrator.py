"""
Tier orchestrator: discovery, the sequential Tier 1 API loop, and the
Tier 2/3 HTML crawl, sequenced through the phase state machine.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import ScraperConfig
from ..core.net import HTTPClient
from ..core.urls import SEARCH_URL, to_absolute
from ..pipeline.discovery import discover_build_id
from ..pipeline.models import SOURCE_API, JobRecord
from ..pipeline.nextdata import fetch_api_page, parse_api_payload
from .html_crawler import HTMLCrawler
from .phases import Phase, initial_phase, next_phase, tier1_should_continue
from .state import PaginationState

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """What a run produced."""
    saved: int = 0
    saved_by_source: Dict[str, int] = field(default_factory=dict)
    build_id: Optional[str] = None
    phases: List[str] = field(default_factory=list)
    tier1_pages: int = 0

    def __str__(self):
        by_source = ", ".join(f"{k}={v}" for k, v in sorted(self.saved_by_source.items())) or "none"
        return (
            f"saved={self.saved} ({by_source}), build_id={self.build_id or '-'}, "
            f"phases={' -> '.join(self.phases)}"
        )


class TierOrchestrator:
    """Runs one extraction job end to end"""

    def __init__(self, config: ScraperConfig, client: HTTPClient, sink):
        self.config = config
        self.client = client
        self.sink = sink
        self.state = PaginationState(config.results_wanted, config.max_pages)
        self.summary = RunSummary()

    async def run(self) -> RunSummary:
        phase = initial_phase(self.config.has_start_urls)
        if self.config.has_start_urls:
            logger.info(f"Using {len(self.config.start_urls)} explicit start URL(s), skipping the API tier")

        try:
            while phase is not Phase.DONE:
                self.summary.phases.append(phase.value)

                if phase is Phase.DISCOVER:
                    build_id = await self._discover()
                    phase = next_phase(phase, build_id=build_id)
                elif phase is Phase.TIER1_LOOP:
                    await self._run_tier1(self.summary.build_id)
                    phase = next_phase(phase, quota_met=self.state.quota_met())
                elif phase is Phase.TIER2_3_CRAWL:
                    await self._run_crawl()
                    phase = next_phase(phase)
        finally:
            self.summary.saved = self.state.saved
            self.summary.saved_by_source = self.state.saved_by_source
            logger.info(f"=== FINISHED: Saved {self.summary.saved} jobs total ===")

        return self.summary

    async def _discover(self) -> Optional[str]:
        logger.info("=== DISCOVERY: looking for the Next.js build id ===")
        build_id = await discover_build_id(self.client, SEARCH_URL)
        self.summary.build_id = build_id
        if not build_id:
            logger.info("No build id found, falling back to HTML crawling")
        return build_id

    async def _run_tier1(self, build_id: str):
        """Page through the data API until quota, page cap, failures or continuation stop it."""
        config = self.config
        state = self.state
        logger.info("=== TIER 1: Next.js data API ===")

        consecutive_failures = 0
        has_more = True

        while tier1_should_continue(
            state.quota_met(),
            state.current_page,
            state.max_pages,
            consecutive_failures,
            config.max_consecutive_failures,
            has_more,
        ):
            # Throttle every request after the first
            if self.summary.tier1_pages > 0 and config.tier1_page_delay > 0:
                await asyncio.sleep(config.tier1_page_delay)

            page = state.current_page
            payload = await fetch_api_page(
                self.client, build_id, page,
                keyword=config.keyword, location=config.location, beruf=config.beruf,
            )
            self.summary.tier1_pages += 1

            if payload is None:
                consecutive_failures += 1
                logger.warning(f"Next.js API returned no data at page {page} ({consecutive_failures} consecutive)")
                state.current_page += 1
                continue

            outcome = parse_api_payload(payload, full_page_threshold=config.full_page_threshold)
            if not outcome.is_success():
                consecutive_failures += 1
                logger.info(f"No jobs parsed from API response at page {page} ({consecutive_failures} consecutive)")
                state.current_page += 1
                continue

            consecutive_failures = 0
            for job in outcome.jobs:
                if state.quota_met():
                    break
                url = to_absolute(job.get('url'))
                if not url:
                    logger.debug(f"Dropping API job without resolvable url: {job.get('title')!r}")
                    continue
                if not state.should_process(url):
                    continue
                record = JobRecord.from_partial(url, job, source=SOURCE_API)
                state.save(record.to_dict(), self.sink, source=SOURCE_API)

            total_hint = f" (of {outcome.total_pages} pages)" if outcome.total_pages else ""
            logger.info(f"API page {page}{total_hint}: saved {state.saved}/{state.results_wanted} jobs")

            has_more = outcome.has_more
            state.current_page += 1
        if state.quota_met():
            logger.info(f"Quota met via API: {state.saved} jobs")
        elif consecutive_failures >= config.max_consecutive_failures:
            logger.info("Too many consecutive API failures, switching to HTML fallback")
        else:
            logger.info(f"API exhausted with {state.saved}/{state.results_wanted} jobs, switching to HTML fallback")

    async def _run_crawl(self):
        config = self.config
        remaining = self.state.remaining_quota()
        logger.info(f"=== TIER 2/3: HTML crawl (JSON-LD + heuristics), {remaining} job(s) remaining ===")
        # List pagination restarts from the seed page
        self.state.current_page = 1

        crawler = HTMLCrawler(
            self.client,
            self.state,
            self.sink,
            collect_details=config.collect_details,
            max_concurrency=config.max_concurrency,
            max_retries=config.max_request_retries,
            handler_timeout=config.handler_timeout,
        )
        await crawler.run(config.crawl_seeds())
