"""
Command-line interface for the news aggregation pipeline.

Prints stories as JSON. Keys are read from options or from the
OPENAI_API_KEY / NEWS_API_KEY environment variables (.env supported).
"""

import asyncio
import json
import logging
from typing import Optional

import typer

from newsglobe.aggregator import NewsAggregator, get_aggregator
from newsglobe.models import GeolocatedStory
from newsglobe.utils.config import settings

app = typer.Typer(add_completion=False, help="Aggregate, enrich and geolocate world news.")

OPENAI_KEY_OPTION = typer.Option(None, "--openai-key", envvar="OPENAI_API_KEY", help="OpenAI API key.")
NEWS_API_KEY_OPTION = typer.Option(None, "--news-api-key", envvar="NEWS_API_KEY", help="NewsAPI key.")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _build(openai_key: Optional[str], news_api_key: Optional[str]) -> NewsAggregator:
    _configure_logging(settings.LOG_LEVEL)
    try:
        return get_aggregator(openai_api_key=openai_key, news_api_key=news_api_key)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)


@app.command()
def aggregate(
    countries: Optional[str] = typer.Option(None, "--countries", help="Comma-separated country codes, e.g. us,gb."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the result cache."),
    openai_key: Optional[str] = OPENAI_KEY_OPTION,
    news_api_key: Optional[str] = NEWS_API_KEY_OPTION,
):
    """Run the batch pipeline and print the stories as a JSON array."""
    aggregator = _build(openai_key, news_api_key)

    if countries:
        codes = [code.strip() for code in countries.split(",") if code.strip()]
        stories = asyncio.run(aggregator.aggregate_news_by_countries(codes, use_cache=not no_cache))
    else:
        stories = asyncio.run(aggregator.aggregate_news(use_cache=not no_cache))

    typer.echo(json.dumps([story.to_dict() for story in stories], indent=2, ensure_ascii=False))


@app.command()
def stream(
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the result cache."),
    openai_key: Optional[str] = OPENAI_KEY_OPTION,
    news_api_key: Optional[str] = NEWS_API_KEY_OPTION,
):
    """Run the streaming pipeline, printing one JSON object per story."""
    aggregator = _build(openai_key, news_api_key)

    def on_story(story: GeolocatedStory) -> None:
        typer.echo(json.dumps(story.to_dict(), ensure_ascii=False))

    asyncio.run(aggregator.aggregate_news_streaming(on_story, use_cache=not no_cache))


@app.command()
def refresh(
    openai_key: Optional[str] = OPENAI_KEY_OPTION,
    news_api_key: Optional[str] = NEWS_API_KEY_OPTION,
):
    """Clear the cache and rebuild the global news set."""
    aggregator = _build(openai_key, news_api_key)
    stories = asyncio.run(aggregator.refresh_cache())
    typer.echo(json.dumps([story.to_dict() for story in stories], indent=2, ensure_ascii=False))


@app.command()
def clusters(
    radius_km: Optional[float] = typer.Option(None, "--radius-km", help="Cluster radius in kilometers."),
    openai_key: Optional[str] = OPENAI_KEY_OPTION,
    news_api_key: Optional[str] = NEWS_API_KEY_OPTION,
):
    """Aggregate news and print geographic story clusters."""
    aggregator = _build(openai_key, news_api_key)
    result = asyncio.run(aggregator.cluster_news(radius_km=radius_km))
    typer.echo(json.dumps([cluster.to_dict() for cluster in result], indent=2, ensure_ascii=False))


if __name__ == "__main__":
    app()
