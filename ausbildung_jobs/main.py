"""
Command-line entry point.

    ausbildung-jobs --keyword Mechatroniker --location Berlin --results-wanted 50
    ausbildung-jobs --input input.json --output output/jobs.jsonl
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config import ConfigError, ScraperConfig, load_config
from .core.net import HTTPClient
from .core.proxy import ProxyRotator
from .crawler import JsonlSink, MemorySink, RunSummary, TierOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ausbildung-jobs',
        description='Extract training job postings from ausbildung.de',
    )
    parser.add_argument('--input', type=str, help='JSON input file (actor-style keys)')
    parser.add_argument('--keyword', type=str, help='Search keyword ("was")')
    parser.add_argument('--location', type=str, help='Location ("wo")')
    parser.add_argument('--beruf', type=str, help='Profession filter')
    parser.add_argument('--results-wanted', type=str, help='Maximum records to save ("inf" for unbounded)')
    parser.add_argument('--max-pages', type=str, help='Page cap for API and list pagination')
    parser.add_argument('--no-details', action='store_true', help='Emit list-page summaries without fetching detail pages')
    parser.add_argument('--start-url', action='append', dest='start_urls', help='Explicit list page to crawl (repeatable)')
    parser.add_argument('--proxy', action='append', dest='proxy_urls', help='Proxy URL (repeatable, rotated per attempt)')
    parser.add_argument('--concurrency', type=int, help='Worker count for the HTML crawl')
    parser.add_argument('--output', type=str, help='JSONL output path')
    parser.add_argument('--log-level', type=str, help='Logging level (DEBUG, INFO, ...)')
    parser.add_argument('--dry-run', action='store_true', help='Keep records in memory instead of writing them')
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Map CLI flags onto input keys; unset flags stay None and are ignored."""
    return {
        'keyword': args.keyword,
        'location': args.location,
        'beruf': args.beruf,
        'results_wanted': args.results_wanted,
        'max_pages': args.max_pages,
        'collectDetails': False if args.no_details else None,
        'startUrls': args.start_urls,
        'proxyUrls': args.proxy_urls,
        'max_concurrency': args.concurrency,
        'output': args.output,
        'log_level': args.log_level,
    }


async def run_scraper(config: ScraperConfig, sink) -> RunSummary:
    client = HTTPClient(
        proxies=ProxyRotator(config.proxy_urls),
        timeout=config.request_timeout,
        max_retries=config.max_request_retries,
    )
    orchestrator = TierOrchestrator(config, client, sink)
    return await orchestrator.run()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        config = load_config(args.input, overrides_from_args(args), use_dotenv=False)
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Invalid configuration: {e}")
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    logger.info(
        f"Starting: keyword={config.keyword!r} location={config.location!r} beruf={config.beruf!r} "
        f"results_wanted={config.results_wanted} max_pages={config.max_pages} "
        f"collect_details={config.collect_details}"
    )

    if args.dry_run:
        sink = MemorySink()
        summary = asyncio.run(run_scraper(config, sink))
    else:
        with JsonlSink(config.output) as sink:
            summary = asyncio.run(run_scraper(config, sink))

    logger.info(f"Run summary: {summary}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
