"""
Run configuration.

Layered, later wins: defaults < AUSBILDUNG_* environment variables (a .env
file is loaded if present) < JSON input file < command-line overrides.
"""
import json
import logging
import math
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv

from .core.urls import build_search_url

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_WANTED = 100
DEFAULT_MAX_PAGES = 50
UNBOUNDED = sys.maxsize

# input key -> environment variable
ENV_VARS = {
    'keyword': 'AUSBILDUNG_KEYWORD',
    'location': 'AUSBILDUNG_LOCATION',
    'beruf': 'AUSBILDUNG_BERUF',
    'results_wanted': 'AUSBILDUNG_RESULTS_WANTED',
    'max_pages': 'AUSBILDUNG_MAX_PAGES',
    'collectDetails': 'AUSBILDUNG_COLLECT_DETAILS',
    'startUrls': 'AUSBILDUNG_START_URLS',
    'proxyUrls': 'AUSBILDUNG_PROXY_URLS',
    'max_concurrency': 'AUSBILDUNG_MAX_CONCURRENCY',
    'max_request_retries': 'AUSBILDUNG_MAX_REQUEST_RETRIES',
    'request_timeout': 'AUSBILDUNG_REQUEST_TIMEOUT',
    'handler_timeout': 'AUSBILDUNG_HANDLER_TIMEOUT',
    'tier1_page_delay': 'AUSBILDUNG_TIER1_PAGE_DELAY',
    'full_page_threshold': 'AUSBILDUNG_FULL_PAGE_THRESHOLD',
    'max_consecutive_failures': 'AUSBILDUNG_MAX_CONSECUTIVE_FAILURES',
    'output': 'AUSBILDUNG_OUTPUT',
    'log_level': 'AUSBILDUNG_LOG_LEVEL',
}

# Environment values that hold comma-separated lists
LIST_ENV_KEYS = ('startUrls', 'proxyUrls')


class ConfigError(ValueError):
    """Input that cannot be turned into a usable configuration."""


def parse_results_wanted(raw: Any) -> int:
    """Finite numbers clamp to >= 1; non-numeric or non-finite means unbounded."""
    if raw is None:
        return DEFAULT_RESULTS_WANTED
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return UNBOUNDED
    if not math.isfinite(value):
        return UNBOUNDED
    return max(1, int(value))


def parse_max_pages(raw: Any) -> int:
    """Finite numbers clamp to >= 1; anything else falls back to the default."""
    if raw is None:
        return DEFAULT_MAX_PAGES
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_MAX_PAGES
    if not math.isfinite(value):
        return DEFAULT_MAX_PAGES
    return max(1, int(value))


def parse_bool(raw: Any, default: bool = True) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ('1', 'true', 'yes', 'on')


def _number(raw: Any, default: float, minimum: float = 0) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric setting {raw!r}, using {default}")
        return default
    if not math.isfinite(value):
        return default
    return max(minimum, value)


def collect_start_urls(data: Dict[str, Any]) -> List[str]:
    """startUrls (strings or {"url": ...}), then startUrl, then url; blanks and repeats dropped."""
    candidates: List[Any] = []
    start_urls = data.get('startUrls')
    if isinstance(start_urls, list):
        candidates.extend(start_urls)
    elif isinstance(start_urls, str):
        candidates.append(start_urls)
    candidates.append(data.get('startUrl'))
    candidates.append(data.get('url'))

    urls: List[str] = []
    for candidate in candidates:
        if isinstance(candidate, dict):
            candidate = candidate.get('url')
        if isinstance(candidate, str) and candidate.strip() and candidate.strip() not in urls:
            urls.append(candidate.strip())
    return urls


def normalize_proxy_input(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fold proxyConfiguration.proxyUrls into proxyUrls so one layer can override another."""
    data = dict(data)
    proxy_conf = data.pop('proxyConfiguration', None)
    if isinstance(proxy_conf, dict) and proxy_conf.get('proxyUrls'):
        data['proxyUrls'] = proxy_conf['proxyUrls']
    return data


def collect_proxy_urls(data: Dict[str, Any]) -> List[str]:
    urls = data.get('proxyUrls') or []
    if isinstance(urls, str):
        urls = [urls]
    return [u.strip() for u in urls if isinstance(u, str) and u.strip()]


@dataclass
class ScraperConfig:
    """Normalized configuration for one run."""
    keyword: str = ''
    location: str = ''
    beruf: str = ''
    results_wanted: int = DEFAULT_RESULTS_WANTED
    max_pages: int = DEFAULT_MAX_PAGES
    collect_details: bool = True
    start_urls: List[str] = field(default_factory=list)
    proxy_urls: List[str] = field(default_factory=list)
    max_concurrency: int = 10
    max_request_retries: int = 3
    request_timeout: float = 30.0
    handler_timeout: float = 90.0
    tier1_page_delay: float = 0.5
    full_page_threshold: int = 20
    max_consecutive_failures: int = 2
    output: str = 'output/jobs.jsonl'
    log_level: str = 'INFO'

    @property
    def has_start_urls(self) -> bool:
        return bool(self.start_urls)

    @property
    def search_url(self) -> str:
        return build_search_url(self.keyword, self.location, self.beruf)

    def crawl_seeds(self) -> List[str]:
        """List pages the HTML crawl starts from."""
        return list(self.start_urls) if self.start_urls else [self.search_url]

    @classmethod
    def from_input(cls, data: Dict[str, Any]) -> 'ScraperConfig':
        """Build a config from an input object using the actor-style keys."""
        if not isinstance(data, dict):
            raise ConfigError(f"Input must be a JSON object, got {type(data).__name__}")
        data = normalize_proxy_input(data)

        return cls(
            keyword=str(data.get('keyword') or '').strip(),
            location=str(data.get('location') or '').strip(),
            beruf=str(data.get('beruf') or '').strip(),
            results_wanted=parse_results_wanted(data.get('results_wanted')),
            max_pages=parse_max_pages(data.get('max_pages')),
            collect_details=parse_bool(data.get('collectDetails'), default=True),
            start_urls=collect_start_urls(data),
            proxy_urls=collect_proxy_urls(data),
            max_concurrency=int(_number(data.get('max_concurrency'), 10, minimum=1)),
            max_request_retries=int(_number(data.get('max_request_retries'), 3)),
            request_timeout=_number(data.get('request_timeout'), 30.0, minimum=1),
            handler_timeout=_number(data.get('handler_timeout'), 90.0, minimum=1),
            tier1_page_delay=_number(data.get('tier1_page_delay'), 0.5),
            full_page_threshold=int(_number(data.get('full_page_threshold'), 20, minimum=1)),
            max_consecutive_failures=int(_number(data.get('max_consecutive_failures'), 2, minimum=1)),
            output=str(data.get('output') or 'output/jobs.jsonl'),
            log_level=str(data.get('log_level') or 'INFO').upper(),
        )


def env_input() -> Dict[str, Any]:
    """Input keys set through AUSBILDUNG_* environment variables."""
    data: Dict[str, Any] = {}
    for input_key, env_var in ENV_VARS.items():
        value = os.getenv(env_var)
        if value is None or value == '':
            continue
        if input_key in LIST_ENV_KEYS:
            data[input_key] = [v.strip() for v in value.split(',') if v.strip()]
        else:
            data[input_key] = value
    return data


def read_input_file(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read input file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Input file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Input file {path} must contain a JSON object")
    return data


def load_config(
    input_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    use_dotenv: bool = True,
) -> ScraperConfig:
    """Merge environment, input file and overrides (None values ignored) into a ScraperConfig."""
    if use_dotenv:
        load_dotenv()

    data = env_input()
    if input_path:
        data.update(normalize_proxy_input(read_input_file(input_path)))
    if overrides:
        data.update(normalize_proxy_input({k: v for k, v in overrides.items() if v is not None}))

    config = ScraperConfig.from_input(data)
    logger.debug(f"Loaded config: {config}")
    return config
