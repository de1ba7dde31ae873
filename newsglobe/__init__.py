"""
NewsGlobe Aggregation Core

Fetches world news from RSS feeds and NewsAPI, deduplicates and ranks it,
enriches each story with AI-derived location, category, urgency and summary,
resolves locations to coordinates, and serves the result as a batch or a stream.
"""

__version__ = "1.0.0"
__author__ = "NewsGlobe Team"
__description__ = "AI-enriched, geolocated world news aggregation"
