"""
Tiered extraction pipeline for ausbildung.de job postings.

Tier 1: Next.js data API (build token required)
Tier 2: JSON-LD JobPosting blocks on detail pages
Tier 3: heuristic HTML selectors (list cards, detail fields, pagination)
"""
