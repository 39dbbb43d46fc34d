"""Thin wrapper around the hosted model.

One call per request, no retries: a failed or throttled upstream call is
surfaced to the caller as-is.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from anthropic import Anthropic, APIError
from fastapi import HTTPException

from letterlab import config

logger = logging.getLogger(__name__)

client: Optional[Anthropic] = None
_client_key: Optional[str] = None


class ModelError(Exception):
    """The upstream model call failed."""


@dataclass
class Generation:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def get_client() -> Anthropic:
    global client, _client_key
    api_key = config.anthropic_api_key()
    if not api_key:
        raise HTTPException(status_code=500, detail="ANTHROPIC_API_KEY not configured")
    if client is None or api_key != _client_key:
        client = Anthropic(api_key=api_key)
        _client_key = api_key
    return client


def generate(system: str, messages: list[dict], max_tokens: Optional[int] = None) -> Generation:
    """Run one completion and return its concatenated text."""
    ai_client = get_client()
    try:
        response = ai_client.messages.create(
            model=config.LLM_MODEL,
            max_tokens=max_tokens or config.LLM_MAX_TOKENS,
            system=system,
            messages=messages,
        )
    except APIError as e:
        raise ModelError(str(e)) from e

    text = "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )
    usage = getattr(response, "usage", None)
    return Generation(
        text=text,
        input_tokens=getattr(usage, "input_tokens", 0) or 0,
        output_tokens=getattr(usage, "output_tokens", 0) or 0,
    )
