"""
Tier sequencing as an explicit state machine.

    DISCOVER --token--> TIER1_LOOP --quota met--> DONE
        |                   |
        +---no token---> TIER2_3_CRAWL --> DONE
                            ^
            quota unmet ----+

Explicit start URLs skip DISCOVER and TIER1_LOOP entirely.
"""
import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Phase(Enum):
    DISCOVER = "discover"
    TIER1_LOOP = "tier1_loop"
    TIER2_3_CRAWL = "tier2_3_crawl"
    DONE = "done"


def initial_phase(has_start_urls: bool) -> Phase:
    return Phase.TIER2_3_CRAWL if has_start_urls else Phase.DISCOVER


def next_phase(
    phase: Phase,
    build_id: Optional[str] = None,
    quota_met: bool = False,
) -> Phase:
    """Single transition function for the tier state machine."""
    if phase is Phase.DISCOVER:
        return Phase.TIER1_LOOP if build_id else Phase.TIER2_3_CRAWL
    if phase is Phase.TIER1_LOOP:
        return Phase.DONE if quota_met else Phase.TIER2_3_CRAWL
    if phase is Phase.TIER2_3_CRAWL:
        return Phase.DONE
    return Phase.DONE


def tier1_should_continue(
    quota_met: bool,
    page: int,
    max_pages: int,
    consecutive_failures: int,
    max_consecutive_failures: int,
    last_has_more: bool,
) -> bool:
    """Loop guard for Tier 1 pagination."""
    return (
        not quota_met
        and page <= max_pages
        and consecutive_failures < max_consecutive_failures
        and last_has_more
    )
