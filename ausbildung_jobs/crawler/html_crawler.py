"""
Tier 2/3 crawl: a bounded pool of workers over a queue of list and detail pages.

LIST pages yield job cards (and the next list page); DETAIL pages are run
through the JSON-LD extractor and the HTML heuristics, then reconciled with
the card's BasicInfo. New work is only enqueued while quota remains; work
already queued drains normally.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup

from ..core.net import FetchError, HTTPClient
from ..core.urls import to_absolute
from ..pipeline.heuristics import extract_detail, extract_list, find_next_page
from ..pipeline.jsonld import JSONLDExtractor
from ..pipeline.models import SOURCE_DETAIL, SOURCE_LIST, BasicInfo, JobRecord
from ..pipeline.reconciler import reconcile
from .state import PaginationState

logger = logging.getLogger(__name__)

LIST = "LIST"
DETAIL = "DETAIL"


@dataclass
class CrawlRequest:
    """One unit of crawl work."""
    url: str
    label: str = LIST
    page_no: int = 1
    basic_info: Optional[BasicInfo] = None


class HTMLCrawler:
    """
    Worker pool for list and detail pages.

    Shares `state` with Tier 1 so URLs already emitted there are skipped.
    """

    def __init__(
        self,
        client: HTTPClient,
        state: PaginationState,
        sink,
        collect_details: bool = True,
        max_concurrency: int = 10,
        max_retries: int = 3,
        handler_timeout: float = 90.0,
    ):
        self.client = client
        self.state = state
        self.sink = sink
        self.collect_details = collect_details
        self.max_concurrency = max(1, max_concurrency)
        self.max_retries = max_retries
        self.handler_timeout = handler_timeout
        self.jsonld = JSONLDExtractor()
        self.list_pages_processed = 0
        self.requests_failed = 0
        self._queue: Optional[asyncio.Queue] = None
        self._fatal: List[BaseException] = []

    def _enqueue(self, request: CrawlRequest):
        self._queue.put_nowait(request)

    async def run(self, start_urls: List[str]) -> int:
        """
        Crawl from `start_urls` (list pages) until the queue drains.

        Returns the number of records saved by this crawl.
        """
        saved_before = self.state.saved
        self._queue = asyncio.Queue()
        self._fatal = []

        for url in start_urls:
            absolute = to_absolute(url)
            if not absolute:
                logger.warning(f"Skipping unresolvable start URL: {url!r}")
                continue
            if self.state.should_process(absolute):
                self._enqueue(CrawlRequest(url=absolute, label=LIST, page_no=1))

        if self._queue.empty():
            logger.info("HTML crawl: nothing to do")
            return 0

        workers = [
            asyncio.create_task(self._worker(i))
            for i in range(self.max_concurrency)
        ]
        try:
            await self._queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        if self._fatal:
            raise self._fatal[0]

        saved = self.state.saved - saved_before
        logger.info(
            f"HTML crawl finished: {saved} saved, {self.list_pages_processed} list page(s), "
            f"{self.requests_failed} failed request(s)"
        )
        return saved

    async def _worker(self, worker_id: int):
        while True:
            request = await self._queue.get()
            try:
                await asyncio.wait_for(self._handle(request), timeout=self.handler_timeout)
            except asyncio.TimeoutError:
                self.requests_failed += 1
                logger.warning(f"[worker {worker_id}] Handler timed out after {self.handler_timeout}s: {request.url}")
            except FetchError as e:
                self.requests_failed += 1
                logger.warning(f"[worker {worker_id}] Request abandoned: {e}")
            except Exception as e:
                logger.error(f"[worker {worker_id}] Unexpected error on {request.url}: {e}", exc_info=True)
                self._fatal.append(e)
            finally:
                self._queue.task_done()

    async def _handle(self, request: CrawlRequest):
        if request.label == DETAIL:
            await self._handle_detail(request)
        else:
            await self._handle_list(request)

    async def _fetch_soup(self, url: str) -> BeautifulSoup:
        result = await self.client.fetch(url, retries=self.max_retries)
        return BeautifulSoup(result.text, 'lxml')

    async def _handle_list(self, request: CrawlRequest):
        if self.state.quota_met():
            logger.debug(f"Quota met, skipping list page {request.url}")
            return

        soup = await self._fetch_soup(request.url)
        cards = extract_list(soup, request.url)
        self.list_pages_processed += 1
        logger.info(f"LIST page {request.page_no}: {len(cards)} job card(s) at {request.url}")

        for info in cards:
            if self.state.quota_met():
                break
            if not self.state.should_process(info.url):
                continue
            if self.collect_details:
                self._enqueue(CrawlRequest(url=info.url, label=DETAIL, page_no=request.page_no, basic_info=info))
            else:
                record = JobRecord.from_partial(info.url, info.to_dict(), source=SOURCE_LIST)
                if self.state.save(record.to_dict(), self.sink, source=SOURCE_LIST):
                    logger.info(f"Saved list record {self.state.saved}/{self.state.results_wanted}: {info.url}")

        if self.state.quota_met():
            logger.info("Quota met, not following further list pages")
            return
        if request.page_no >= self.state.max_pages:
            logger.info(f"Reached max_pages ({self.state.max_pages}), not following further list pages")
            return

        next_url = find_next_page(soup, request.url)
        if next_url and self.state.should_process(next_url):
            self.state.current_page = max(self.state.current_page, request.page_no + 1)
            logger.debug(f"Following next list page {request.page_no + 1}: {next_url}")
            self._enqueue(CrawlRequest(url=next_url, label=LIST, page_no=request.page_no + 1))

    async def _handle_detail(self, request: CrawlRequest):
        if self.state.quota_met():
            logger.debug(f"Quota met, skipping detail {request.url}")
            return

        soup = await self._fetch_soup(request.url)
        try:
            jsonld = self.jsonld.extract(soup)
            html_data = extract_detail(soup)
            record = reconcile(request.url, jsonld=jsonld, html_data=html_data, basic_info=request.basic_info)
        except Exception as e:
            logger.error(f"DETAIL extraction failed for {request.url}: {e}", exc_info=True)
            return

        if self.state.save(record.to_dict(), self.sink, source=SOURCE_DETAIL):
            logger.info(f"Saved job {self.state.saved}/{self.state.results_wanted}: {record.title or request.url}")
