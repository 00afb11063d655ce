"""
Tiered job-posting extractor for ausbildung.de.

Pulls listings from the Next.js data API when it can be addressed, and falls
back to embedded JSON-LD and heuristic HTML parsing when it cannot.
"""

__version__ = "1.0.0"
