"""
Run-time machinery: shared run state, phase sequencing, the HTML crawl pool and output sinks.
"""

from .orchestrator import RunSummary, TierOrchestrator
from .state import PaginationState
from .sink import JsonlSink, MemorySink

__all__ = ['TierOrchestrator', 'RunSummary', 'PaginationState', 'JsonlSink', 'MemorySink']
