"""
Workflow orchestrator for the news aggregation pipeline.
Manages the complete flow: Cache → Fetch → Enrich → Geocode → Filter → Cache → Respond,
delivered either as a batch or as a stream of stories.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from openai import AsyncOpenAI

from newsglobe.ai.completion import create_client
from newsglobe.ai.enricher import StoryEnricher
from newsglobe.ai.geocoding import GeocodingService
from newsglobe.clustering import StoryCluster, cluster_stories
from newsglobe.models import GeolocatedStory, RawStory
from newsglobe.scraper.news_scraper import NewsScraper
from newsglobe.store.news_cache import GLOBAL_KEY, NewsCache, countries_cache_key, get_news_cache
from newsglobe.utils.config import get_pipeline_config

logger = logging.getLogger(__name__)

OnStory = Callable[[GeolocatedStory], Union[None, Awaitable[None]]]


def drop_unknown(stories: List[GeolocatedStory]) -> List[GeolocatedStory]:
    """Remove stories whose location could not be resolved."""
    return [story for story in stories if not story.coords.is_unknown]


class NewsAggregator:
    """
    Orchestrates scraping, enrichment, geocoding and caching of news stories.
    """

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        news_api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        scraper: Optional[NewsScraper] = None,
        enricher: Optional[StoryEnricher] = None,
        geocoder: Optional[GeocodingService] = None,
        cache: Optional[NewsCache] = None,
        stream_batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        replay_delay: Optional[float] = None
    ):
        """
        Initialize the aggregator.

        Args:
            openai_api_key: OpenAI key, falls back to OPENAI_API_KEY
            news_api_key: NewsAPI key, falls back to NEWS_API_KEY
            client: Shared OpenAI client for enrichment and geocoding
            scraper: Source fetcher
            enricher: Enrichment engine
            geocoder: Coordinate resolver
            cache: Result cache, the process-wide instance by default
            stream_batch_size: Stories per streaming chunk
            batch_delay: Seconds between streaming chunks
            replay_delay: Seconds between stories replayed from cache

        Raises:
            ValueError: If an OpenAI client is needed and no key is available
        """
        config = get_pipeline_config()

        if client is None and (enricher is None or geocoder is None):
            client = create_client(openai_api_key)

        self.scraper = scraper or NewsScraper(news_api_key=news_api_key)
        self.enricher = enricher or StoryEnricher(client)
        self.geocoder = geocoder or GeocodingService(client)
        self.cache = cache if cache is not None else get_news_cache()
        self.stream_batch_size = max(1, stream_batch_size or config["stream_batch_size"])
        self.batch_delay = config["batch_delay"] if batch_delay is None else batch_delay
        self.replay_delay = config["stream_replay_delay"] if replay_delay is None else replay_delay

    async def aggregate_news(self, use_cache: bool = True) -> List[GeolocatedStory]:
        """
        Fetch, enrich, geocode and cache the global news set.

        Args:
            use_cache: Serve a fresh cached result when available

        Returns:
            Geolocated stories with known locations
        """
        try:
            if use_cache:
                cached = self.cache.get(GLOBAL_KEY)
                if cached is not None:
                    return cached

            logger.info("Starting news aggregation pipeline...")

            logger.info("Step 1: Scraping news...")
            raw_stories = await self.scraper.fetch_news()

            if not raw_stories:
                logger.warning("No stories fetched from sources")
                return []

            valid_stories = await self._process(raw_stories)
            logger.info(f"Pipeline complete: {len(valid_stories)} valid stories")

            self.cache.set(GLOBAL_KEY, valid_stories)
            return valid_stories

        except Exception as e:
            logger.error(f"Error in news aggregation pipeline: {e}")
            raise

    async def aggregate_news_streaming(self, on_story: OnStory, use_cache: bool = True) -> None:
        """
        Deliver stories one by one as each chunk finishes processing.

        Enrichment or geocoding failures skip only the affected chunk.
        Fetch failures and exceptions raised by on_story propagate.

        Args:
            on_story: Callback, sync or async, invoked once per story in delivery order
            use_cache: Replay a fresh cached result when available
        """
        try:
            if use_cache:
                cached = self.cache.get(GLOBAL_KEY)
                if cached is not None:
                    for story in cached:
                        await self._emit(on_story, story)
                        if self.replay_delay > 0:
                            await asyncio.sleep(self.replay_delay)
                    return

            logger.info("Starting streaming news aggregation pipeline...")

            logger.info("Step 1: Scraping news...")
            raw_stories = await self.scraper.fetch_news()

            if not raw_stories:
                logger.warning("No stories fetched from sources")
                return

            logger.info("Step 2 & 3: Processing stories incrementally...")
            all_stories: List[GeolocatedStory] = []
            size = self.stream_batch_size

            for i in range(0, len(raw_stories), size):
                if i > 0 and self.batch_delay > 0:
                    await asyncio.sleep(self.batch_delay)

                chunk = raw_stories[i:i + size]
                try:
                    enriched = await self.enricher.enrich_batch(chunk)
                    valid_stories = drop_unknown(await self.geocoder.resolve_all(enriched))
                except Exception as e:
                    logger.error(f"Streaming chunk at offset {i} failed, skipping: {e}")
                    continue

                for story in valid_stories:
                    await self._emit(on_story, story)
                    all_stories.append(story)

            logger.info(f"Streaming complete: {len(all_stories)} valid stories")
            self.cache.set(GLOBAL_KEY, all_stories)

        except Exception as e:
            logger.error(f"Error in streaming news aggregation pipeline: {e}")
            raise

    async def aggregate_news_by_countries(
        self,
        country_codes: List[str],
        use_cache: bool = True
    ) -> List[GeolocatedStory]:
        """
        Fetch, enrich and geocode headlines for specific countries.

        Args:
            country_codes: ISO country codes
            use_cache: Serve a fresh cached result when available

        Returns:
            Geolocated stories with known locations
        """
        cache_key = countries_cache_key(country_codes)

        try:
            if use_cache:
                cached = self.cache.get(cache_key)
                if cached is not None:
                    return cached

            raw_stories = await self.scraper.fetch_news_by_countries(country_codes)
            if not raw_stories:
                logger.warning(f"No stories fetched for {cache_key}")
                return []

            valid_stories = await self._process(raw_stories)

            self.cache.set(cache_key, valid_stories)
            return valid_stories

        except Exception as e:
            logger.error(f"Error aggregating news for {cache_key}: {e}")
            raise

    async def refresh_cache(self) -> List[GeolocatedStory]:
        """
        Clear the cache and rebuild the global news set.

        Returns:
            Freshly aggregated stories
        """
        self.cache.clear()
        return await self.aggregate_news(use_cache=False)

    async def cluster_news(
        self,
        radius_km: Optional[float] = None,
        use_cache: bool = True
    ) -> List[StoryCluster]:
        """
        Aggregate the global news set and group it geographically.

        Args:
            radius_km: Cluster radius, defaults to the configured radius
            use_cache: Serve a fresh cached result when available

        Returns:
            Story clusters, largest first
        """
        stories = await self.aggregate_news(use_cache=use_cache)
        radius = get_pipeline_config()["cluster_radius_km"] if radius_km is None else radius_km
        return cluster_stories(stories, radius_km=radius)

    async def _process(self, raw_stories: List[RawStory]) -> List[GeolocatedStory]:
        """Enrich, geocode and filter a set of raw stories."""
        logger.info("Step 2: Enriching stories with AI...")
        enriched_stories = await self.enricher.enrich(raw_stories)

        logger.info("Step 3: Geocoding locations...")
        geolocated_stories = await self.geocoder.resolve_all(enriched_stories)

        return drop_unknown(geolocated_stories)

    @staticmethod
    async def _emit(on_story: OnStory, story: GeolocatedStory) -> None:
        result = on_story(story)
        if inspect.isawaitable(result):
            await result


# Global aggregator instance
aggregator: Optional[NewsAggregator] = None


def get_aggregator(
    openai_api_key: Optional[str] = None,
    news_api_key: Optional[str] = None
) -> NewsAggregator:
    """
    Get the global aggregator instance, creating it on first use.

    Returns:
        News aggregator
    """
    global aggregator
    if aggregator is None:
        aggregator = NewsAggregator(openai_api_key=openai_api_key, news_api_key=news_api_key)
    return aggregator
