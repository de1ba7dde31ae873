"""
Structured JSON completions against the OpenAI chat API.
"""

import json
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from newsglobe.utils.config import get_openai_config


def create_client(api_key: Optional[str] = None) -> AsyncOpenAI:
    """
    Build an async OpenAI client.

    Args:
        api_key: Explicit key; falls back to the configured OPENAI_API_KEY

    Raises:
        ValueError: If no key is available
    """
    key = api_key or get_openai_config()["api_key"]
    if not key:
        raise ValueError("OpenAI API key is required")
    return AsyncOpenAI(api_key=key)


async def complete_json(
    client: AsyncOpenAI,
    model: str,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.3
) -> Dict[str, Any]:
    """
    Request a JSON object completion and decode it.

    Raises:
        ValueError: If the reply is empty, not JSON, or not a JSON object.
        Transport errors from the client propagate unchanged.
    """
    response = await client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        response_format={"type": "json_object"},
        temperature=temperature,
    )

    content = (response.choices[0].message.content or "").strip()
    if not content:
        raise ValueError("Empty completion")

    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
