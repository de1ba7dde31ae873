"""
API connector for the NewsAPI.org headline service.
Parses top-headline responses into raw stories.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

import aiohttp

from newsglobe.models import RawStory, parse_timestamp

logger = logging.getLogger(__name__)

REMOVED_MARKER = "[Removed]"


@dataclass
class APIResponse:
    """
    Represents a response from a news API.
    """
    stories: List[RawStory]
    total_results: int
    status: str
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class NewsAPIConnector:
    """
    Connector for NewsAPI.org service.
    """

    def __init__(
        self,
        api_key: str,
        session: aiohttp.ClientSession,
        base_url: str = "https://newsapi.org/v2"
    ):
        """
        Initialize NewsAPI connector.

        Args:
            api_key: NewsAPI.org API key
            session: HTTP session owned by the caller
            base_url: API root URL
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session

    async def get_top_headlines(
        self,
        country: Optional[str] = None,
        category: Optional[str] = None,
        page_size: int = 20
    ) -> APIResponse:
        """
        Get top headlines using NewsAPI headlines endpoint.

        Args:
            country: Country code (e.g., 'us', 'gb')
            category: Category (business, entertainment, general, health, science, sports, technology)
            page_size: Number of articles per page (max 100)

        Returns:
            APIResponse with stories; status "error" on any failure
        """
        try:
            params = {"pageSize": min(page_size, 100)}

            if country:
                params["country"] = country.lower()

            if category:
                params["category"] = category

            url = f"{self.base_url}/top-headlines"

            async with self.session.get(
                url, params=params, headers={"X-Api-Key": self.api_key}
            ) as response:
                if response.status != 200:
                    return APIResponse(
                        stories=[],
                        total_results=0,
                        status="error",
                        error_message=f"HTTP {response.status}"
                    )

                data = await response.json()

                fetched_at = datetime.now(timezone.utc)
                stories = []
                for article_data in data.get("articles") or []:
                    story = self._parse_newsapi_article(article_data, fetched_at)
                    if story:
                        stories.append(story)

                return APIResponse(
                    stories=stories,
                    total_results=data.get("totalResults", len(stories)),
                    status=data.get("status", "ok")
                )

        except Exception as e:
            logger.error(f"NewsAPI top headlines failed: {e}")
            return APIResponse(
                stories=[],
                total_results=0,
                status="error",
                error_message=str(e)
            )

    def _parse_newsapi_article(self, data: Dict[str, Any], fetched_at: datetime) -> Optional[RawStory]:
        """
        Parse NewsAPI article data into a RawStory.

        Articles without title, description or URL, and articles NewsAPI
        has marked as removed, are rejected.

        Args:
            data: Article data from NewsAPI
            fetched_at: Publish time for undated articles

        Returns:
            RawStory or None if the article is rejected
        """
        try:
            title = (data.get("title") or "").strip()
            url = (data.get("url") or "").strip()
            description = (data.get("description") or "").strip()

            if not title or not url or not description:
                return None

            if REMOVED_MARKER in title:
                return None

            published_at = parse_timestamp(data.get("publishedAt")) or fetched_at

            source_data = data.get("source") or {}
            source_name = source_data.get("name") or "NewsAPI"

            return RawStory(
                title=title,
                description=description,
                url=url,
                published_at=published_at,
                source=source_name
            )

        except Exception as e:
            logger.warning(f"Failed to parse NewsAPI article: {e}")
            return None
