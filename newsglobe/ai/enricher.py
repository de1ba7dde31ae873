"""
AI enrichment of raw stories using OpenAI GPT models.
Adds location, summary, category and urgency to each story, batch by batch.
"""

import asyncio
import json
import logging
from typing import List, Dict, Any, Optional

from openai import AsyncOpenAI

from newsglobe.ai.completion import complete_json
from newsglobe.models import (
    CATEGORIES,
    URGENCIES,
    DEFAULT_CATEGORY,
    DEFAULT_LOCATION,
    DEFAULT_URGENCY,
    EnrichedStory,
    RawStory,
)
from newsglobe.utils.config import get_openai_config, get_pipeline_config

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a news analysis assistant. "
    "Always respond with valid JSON in the exact format requested."
)

ENRICH_TEMPLATE = """
Analyze these news stories and extract for each:
1. Primary location (specific city and country if mentioned, otherwise country or region)
2. A concise 20-25 word summary of the key facts
3. Category: choose ONE from [{categories}]
4. Urgency: choose ONE from [{urgencies}] based on recency and importance

Return a JSON object with a "results" array containing one object per story,
in the same order as the stories below:
{{
  "results": [
    {{
      "location": "City, Country",
      "summary": "concise summary here",
      "category": "category_name",
      "urgency": "urgency_level"
    }}
  ]
}}

Stories:
{stories}
"""


def fallback_story(story: RawStory) -> EnrichedStory:
    """Enrich a story with the default annotation."""
    return EnrichedStory.from_raw(story)


class StoryEnricher:
    """
    Annotates raw stories through batched structured completions.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: Optional[str] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None
    ):
        """
        Initialize the enricher.

        Args:
            client: Async OpenAI client
            model: Chat model, defaults to the configured model
            batch_size: Stories per completion request
            batch_delay: Seconds to wait between batches
        """
        pipeline_config = get_pipeline_config()
        self.client = client
        self.model = model or get_openai_config()["model"]
        self.batch_size = batch_size or pipeline_config["enrich_batch_size"]
        self.batch_delay = pipeline_config["batch_delay"] if batch_delay is None else batch_delay

    async def enrich(self, stories: List[RawStory], batch_size: Optional[int] = None) -> List[EnrichedStory]:
        """
        Enrich stories in fixed-size batches.

        Args:
            stories: Raw stories
            batch_size: Override for the configured batch size

        Returns:
            One enriched story per input story, in input order
        """
        if not stories:
            return []

        size = max(1, batch_size or self.batch_size)
        logger.info(f"Enriching {len(stories)} stories...")

        enriched_stories: List[EnrichedStory] = []
        for i in range(0, len(stories), size):
            if i > 0 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

            batch = stories[i:i + size]
            enriched_stories.extend(await self.enrich_batch(batch))

        logger.info(f"Successfully enriched {len(enriched_stories)} stories")
        return enriched_stories

    async def enrich_batch(self, stories: List[RawStory]) -> List[EnrichedStory]:
        """
        Enrich one batch with a single completion request.

        Any failure falls back to the default annotation for the whole batch.

        Args:
            stories: Raw stories of the batch

        Returns:
            Enriched stories, positionally aligned with the input
        """
        if not stories:
            return []

        try:
            data = await complete_json(
                self.client,
                self.model,
                SYSTEM_PROMPT,
                self._build_prompt(stories),
                temperature=0.3
            )

            results = data.get("results")
            if not isinstance(results, list):
                raise ValueError("Completion has no results array")

            if len(results) != len(stories):
                logger.warning(
                    f"Enrichment returned {len(results)} results for {len(stories)} stories"
                )

            return [
                self._merge(story, results[index] if index < len(results) else None)
                for index, story in enumerate(stories)
            ]

        except Exception as e:
            logger.error(f"Error enriching batch of {len(stories)} stories: {e}")
            return [fallback_story(story) for story in stories]

    def _build_prompt(self, stories: List[RawStory]) -> str:
        """Format the enrichment prompt for a batch."""
        payload = [
            {
                "title": story.title,
                "description": story.description,
                "publishedAt": story.published_at.isoformat(),
            }
            for story in stories
        ]
        return ENRICH_TEMPLATE.format(
            categories=", ".join(CATEGORIES),
            urgencies=", ".join(URGENCIES),
            stories=json.dumps(payload, ensure_ascii=False)
        )

    @staticmethod
    def _merge(story: RawStory, result: Any) -> EnrichedStory:
        """
        Merge one model result into its story, defaulting field by field.

        Args:
            story: Raw story at this position
            result: Model result at the same position, possibly malformed

        Returns:
            Enriched story
        """
        if not isinstance(result, dict):
            return fallback_story(story)

        location = _text_field(result, "location") or DEFAULT_LOCATION
        summary = _text_field(result, "summary") or story.description

        category = (_text_field(result, "category") or "").lower()
        if category not in CATEGORIES:
            category = DEFAULT_CATEGORY

        urgency = (_text_field(result, "urgency") or "").lower()
        if urgency not in URGENCIES:
            urgency = DEFAULT_URGENCY

        return EnrichedStory.from_raw(
            story,
            location=location,
            summary=summary,
            category=category,
            urgency=urgency
        )


def _text_field(result: Dict[str, Any], name: str) -> Optional[str]:
    value = result.get(name)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
