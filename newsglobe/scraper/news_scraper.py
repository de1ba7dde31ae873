"""
News scraping module for collecting raw stories from RSS feeds and NewsAPI.
Fetches all sources concurrently, then deduplicates, sorts and caps the result.
"""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Iterable

import aiohttp
import feedparser
from bs4 import BeautifulSoup

from newsglobe.models import RawStory
from newsglobe.scraper.api_connector import NewsAPIConnector, REMOVED_MARKER
from newsglobe.utils.config import get_scraping_config

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize_title(title: str, length: int = 50) -> str:
    """
    Build the dedup key for a title.

    Lowercases, drops everything but ASCII letters, digits and whitespace,
    trims and keeps the first ``length`` characters.
    """
    return _NON_ALNUM.sub("", title.lower()).strip()[:length]


def deduplicate_stories(stories: Iterable[RawStory], key_length: int = 50) -> List[RawStory]:
    """
    Keep the first story for each normalized title, preserving input order.

    Args:
        stories: Stories to deduplicate
        key_length: Normalized title prefix length used as key

    Returns:
        List of unique stories
    """
    seen_keys = set()
    unique_stories = []

    for story in stories:
        key = normalize_title(story.title, key_length)
        if key in seen_keys:
            continue
        seen_keys.add(key)
        unique_stories.append(story)

    return unique_stories


def sort_by_date(stories: Iterable[RawStory]) -> List[RawStory]:
    """Sort stories newest first. Ties keep their relative order."""
    return sorted(stories, key=lambda story: story.published_at, reverse=True)


class NewsScraper:
    """
    Fetches raw stories from every configured feed plus the optional headline API.
    """

    def __init__(
        self,
        news_api_key: Optional[str] = None,
        feeds: Optional[List[str]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the news scraper.

        Args:
            news_api_key: NewsAPI key; the headline source is skipped without one
            feeds: RSS feed URLs, defaults to the configured list
            session: Shared HTTP session, created per fetch when omitted
            config: Overrides for the scraping configuration
        """
        self.config = get_scraping_config()
        if config:
            self.config.update(config)
        self.news_api_key = news_api_key if news_api_key is not None else self.config["news_api_key"]
        self.feeds = list(feeds) if feeds is not None else list(self.config["feeds"])
        self.session = session

    @asynccontextmanager
    async def _session_scope(self):
        """Yield the shared session, or a short-lived one for this fetch."""
        if self.session is not None:
            yield self.session
            return

        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.config["timeout"]),
            headers={"User-Agent": self.config["user_agent"]}
        )
        try:
            yield session
        finally:
            await session.close()

    async def fetch_news(self) -> List[RawStory]:
        """
        Fetch stories from all sources.

        Returns:
            Deduplicated stories, newest first, capped at the configured maximum
        """
        logger.info("Starting news fetch...")

        async with self._session_scope() as session:
            headline_stories, feed_stories = await asyncio.gather(
                self._fetch_headlines(session),
                self._fetch_all_feeds(session)
            )

        logger.info(f"Fetched {len(headline_stories)} stories from NewsAPI")
        logger.info(f"Fetched {len(feed_stories)} stories from RSS feeds")

        unique_stories = deduplicate_stories(
            headline_stories + feed_stories, self.config["dedup_key_length"]
        )
        sorted_stories = sort_by_date(unique_stories)

        logger.info(f"Final count: {len(sorted_stories)} unique stories")
        return sorted_stories[:self.config["max_stories"]]

    async def fetch_news_by_countries(self, country_codes: List[str]) -> List[RawStory]:
        """
        Fetch top headlines for specific countries.

        Args:
            country_codes: ISO country codes, one request each

        Returns:
            Deduplicated stories in request order
        """
        if not self.news_api_key:
            logger.warning("No NewsAPI key provided, skipping country-specific fetch")
            return []

        async with self._session_scope() as session:
            connector = NewsAPIConnector(
                self.news_api_key, session, base_url=self.config["news_api_base_url"]
            )
            tasks = [
                self._fetch_country(connector, code)
                for code in country_codes
            ]
            results = await asyncio.gather(*tasks, return_exceptions=True)

        stories = []
        for code, result in zip(country_codes, results):
            if isinstance(result, list):
                stories.extend(result)
            elif isinstance(result, Exception):
                logger.error(f"Error fetching news for {code}: {result}")

        return deduplicate_stories(stories, self.config["dedup_key_length"])

    async def _fetch_country(self, connector: NewsAPIConnector, country_code: str) -> List[RawStory]:
        """Fetch headlines for one country."""
        response = await connector.get_top_headlines(
            country=country_code,
            page_size=self.config["country_page_size"]
        )
        if not response.ok:
            logger.error(f"NewsAPI error for {country_code}: {response.error_message}")
            return []
        return response.stories

    async def _fetch_headlines(self, session: aiohttp.ClientSession) -> List[RawStory]:
        """Fetch general top headlines, or nothing when no key is configured."""
        if not self.news_api_key:
            return []

        try:
            connector = NewsAPIConnector(
                self.news_api_key, session, base_url=self.config["news_api_base_url"]
            )
            response = await connector.get_top_headlines(
                category="general",
                page_size=self.config["headlines_page_size"]
            )
            if not response.ok:
                logger.error(f"NewsAPI error: {response.error_message}")
                return []
            return response.stories

        except Exception as e:
            logger.error(f"Error fetching from NewsAPI: {e}")
            return []

    async def _fetch_all_feeds(self, session: aiohttp.ClientSession) -> List[RawStory]:
        """
        Fetch every feed concurrently. Failed feeds contribute nothing.

        Args:
            session: HTTP session

        Returns:
            Stories from all feeds, in feed order
        """
        tasks = [self._fetch_single_feed(session, feed_url) for feed_url in self.feeds]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        all_stories = []
        for feed_url, result in zip(self.feeds, results):
            if isinstance(result, list):
                all_stories.extend(result)
            elif isinstance(result, BaseException):
                logger.warning(f"RSS feed {feed_url} failed: {result!r}")

        return all_stories

    async def _fetch_single_feed(self, session: aiohttp.ClientSession, feed_url: str) -> List[RawStory]:
        """
        Fetch and parse a single RSS feed.

        Args:
            session: HTTP session
            feed_url: Feed URL

        Returns:
            The most recent valid stories of the feed
        """
        try:
            async with session.get(feed_url) as response:
                if response.status != 200:
                    logger.warning(f"RSS feed {feed_url} returned status {response.status}")
                    return []

                content = await response.text()

            feed = feedparser.parse(content)
            if feed.get("bozo") and not feed.entries:
                logger.warning(f"RSS feed {feed_url} could not be parsed: {feed.get('bozo_exception')}")
                return []

            source_name = (feed.feed.get("title") or "").strip() or "RSS Feed"
            fetched_at = datetime.now(timezone.utc)

            stories = []
            for entry in feed.entries:
                story = self._parse_feed_entry(entry, source_name, fetched_at)
                if story:
                    stories.append(story)

            stories = sort_by_date(stories)[:self.config["max_items_per_feed"]]
            logger.info(f"Fetched {len(stories)} stories from {source_name}")
            return stories

        except Exception as e:
            logger.error(f"Error fetching RSS feed {feed_url}: {e!r}")
            return []

    def _parse_feed_entry(
        self,
        entry: Dict[str, Any],
        source_name: str,
        fetched_at: datetime
    ) -> Optional[RawStory]:
        """
        Parse a single RSS entry into a RawStory.

        Args:
            entry: feedparser entry
            source_name: Title of the feed
            fetched_at: Publish time for undated entries

        Returns:
            RawStory or None if the entry lacks a title or link
        """
        try:
            title = (entry.get("title") or "").strip()
            url = (entry.get("link") or "").strip()

            if not title or not url or REMOVED_MARKER in title:
                return None

            description = self._strip_html(entry.get("summary") or "") or title

            return RawStory(
                title=title,
                description=description,
                url=url,
                published_at=self._entry_timestamp(entry, fetched_at),
                source=source_name
            )

        except Exception as e:
            logger.warning(f"Failed to parse RSS entry from {source_name}: {e}")
            return None

    @staticmethod
    def _entry_timestamp(entry: Dict[str, Any], fallback: datetime) -> datetime:
        """Publish time of an entry, or the feed's fetch time when it has none."""
        for field in ("published_parsed", "updated_parsed"):
            parsed = entry.get(field)
            if parsed:
                try:
                    return datetime(*parsed[:6], tzinfo=timezone.utc)
                except (TypeError, ValueError):
                    continue
        return fallback

    @staticmethod
    def _strip_html(text: str) -> str:
        """Plain text of an HTML snippet."""
        if "<" not in text:
            return " ".join(text.split())
        soup = BeautifulSoup(text, "html.parser")
        return soup.get_text(" ", strip=True)

