"""
Configuration management for the news aggregation pipeline.
Handles environment variables, source lists, AI model settings and pipeline tuning.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


DEFAULT_RSS_FEEDS = [
    "https://feeds.bbci.co.uk/news/world/rss.xml",
    "https://rss.nytimes.com/services/xml/rss/nyt/World.xml",
    "https://www.aljazeera.com/xml/rss/all.xml",
    "https://www.theguardian.com/world/rss",
    "https://www.reuters.com/rssFeed/worldNews",
    "https://feeds.washingtonpost.com/rss/world",
    "https://www.ft.com/rss/world",
    "https://www.scmp.com/rss/91/feed",
    "https://www.thehindu.com/news/international/feeder/default.rss",
    "https://www.smh.com.au/rss/world.xml",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # AI Model Configuration
    OPENAI_API_KEY: Optional[str] = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="OpenAI model to use")

    # News API Configuration
    NEWS_API_KEY: Optional[str] = Field(default=None, description="NewsAPI.org API key")
    NEWS_API_BASE_URL: str = Field(default="https://newsapi.org/v2", description="NewsAPI base URL")
    HEADLINES_PAGE_SIZE: int = Field(default=50, description="Articles requested from top headlines")
    COUNTRY_PAGE_SIZE: int = Field(default=10, description="Articles requested per country")

    # Feed Configuration
    RSS_FEEDS: List[str] = Field(default_factory=lambda: list(DEFAULT_RSS_FEEDS), description="RSS feed URLs")
    FEED_TIMEOUT: int = Field(default=10, description="Timeout for feed requests in seconds")
    USER_AGENT: str = Field(default="NewsGlobe/1.0", description="User agent for feed requests")
    MAX_ITEMS_PER_FEED: int = Field(default=10, description="Most recent items kept per feed")
    MAX_STORIES: int = Field(default=100, description="Maximum stories returned by a fetch")
    DEDUP_KEY_LENGTH: int = Field(default=50, description="Normalized title prefix used for dedup")

    # Pipeline Configuration
    ENRICH_BATCH_SIZE: int = Field(default=10, description="Stories per enrichment request")
    STREAM_BATCH_SIZE: int = Field(default=5, description="Stories per streaming chunk")
    BATCH_DELAY: float = Field(default=1.0, description="Delay between AI batches in seconds")
    STREAM_REPLAY_DELAY: float = Field(default=0.05, description="Pacing delay for cached replays")
    GEOCODE_BATCH_SIZE: int = Field(default=10, description="Locations per geocoding chunk")
    CLUSTER_RADIUS_KM: float = Field(default=500.0, description="Radius used to group stories")

    # Cache Configuration
    CACHE_TTL_MINUTES: int = Field(default=10, description="Result cache time-to-live in minutes")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def get_openai_config() -> dict:
    """Get OpenAI configuration."""
    return {
        "api_key": settings.OPENAI_API_KEY,
        "model": settings.OPENAI_MODEL,
    }


def get_scraping_config() -> dict:
    """Get feed and headline API configuration."""
    return {
        "feeds": list(settings.RSS_FEEDS),
        "timeout": settings.FEED_TIMEOUT,
        "user_agent": settings.USER_AGENT,
        "news_api_key": settings.NEWS_API_KEY,
        "news_api_base_url": settings.NEWS_API_BASE_URL,
        "headlines_page_size": settings.HEADLINES_PAGE_SIZE,
        "country_page_size": settings.COUNTRY_PAGE_SIZE,
        "max_items_per_feed": settings.MAX_ITEMS_PER_FEED,
        "max_stories": settings.MAX_STORIES,
        "dedup_key_length": settings.DEDUP_KEY_LENGTH,
    }


def get_pipeline_config() -> dict:
    """Get batching, pacing and cache configuration."""
    return {
        "enrich_batch_size": settings.ENRICH_BATCH_SIZE,
        "stream_batch_size": settings.STREAM_BATCH_SIZE,
        "batch_delay": settings.BATCH_DELAY,
        "stream_replay_delay": settings.STREAM_REPLAY_DELAY,
        "geocode_batch_size": settings.GEOCODE_BATCH_SIZE,
        "cache_ttl_minutes": settings.CACHE_TTL_MINUTES,
        "cluster_radius_km": settings.CLUSTER_RADIUS_KM,
    }
