"""
Transport and shared helpers: HTTP client, proxy rotation, URL and text utilities.
"""
