"""
Chat-completion collaborator.

Forwards the conversation to an OpenAI-compatible `/chat/completions`
endpoint with a system prompt tailored to the city currently on the globe,
and returns the assistant's text. Every way the call can fail (HTTP error,
transport error after retries, unparseable body, missing content) surfaces
as MalformedReplyError so callers have exactly one thing to recover from.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Sequence

import httpx

from travio_geo.config import ChatConfig, get_settings
from travio_geo.models import ChatMessage, Role

logger = logging.getLogger(__name__)


class MalformedReplyError(Exception):
    """The chat collaborator failed or returned no usable content."""


class ChatCollaborator(Protocol):
    async def complete(
        self,
        messages: Sequence[ChatMessage],
        active_city: Optional[str] = None,
    ) -> str:
        ...


# ── System prompts ────────────────────────────────────────────────────

_CITY_PROMPT = """\
You are a knowledgeable travel assistant for the city of {city}. You have deep knowledge about this city's history, culture, attractions, food, transportation, and travel tips. When users ask questions, provide detailed, helpful information about {city}.

When users ask about booking a trip or travel planning to {city}, provide comprehensive suggestions including:
- Flight options and airlines that serve {city}
- Best times to book flights for better prices
- Recommended airports and transportation from airports
- Accommodation suggestions (hotels, hostels, vacation rentals)
- Local transportation options (public transit, car rentals, rideshare)
- Travel insurance recommendations
- Visa/documentation requirements if applicable
- Currency and payment methods
- Weather considerations for trip timing
- Essential items to pack
- Estimated budget ranges for different travel styles

If they ask about other places, politely redirect them to ask about {city} or suggest they click on a different city on the globe. Be enthusiastic and informative about {city}."""

_GENERAL_PROMPT = """\
You are a helpful travel assistant. You can provide information about cities, countries, landmarks, and travel tips. When users ask about specific places, give them detailed, helpful information.

When users ask about booking a trip or travel planning, provide comprehensive suggestions including:
- Flight search recommendations and major airlines
- Best booking platforms and apps
- Tips for finding better flight deals
- Airport and transportation information
- Accommodation options and booking platforms
- Local transportation suggestions
- Travel insurance advice
- Documentation and visa requirements
- Currency exchange and payment methods
- Weather and seasonal considerations
- Packing recommendations
- Budget planning for different travel styles
- Travel safety tips

Always provide practical, actionable advice to help users plan their trips effectively."""


def build_system_prompt(active_city: Optional[str]) -> str:
    if active_city:
        return _CITY_PROMPT.format(city=active_city)
    return _GENERAL_PROMPT


def build_payload(
    messages: Sequence[ChatMessage],
    active_city: Optional[str],
    config: ChatConfig,
) -> dict:
    """Request body: system prompt first, then the prior messages in order."""
    convo = [{"role": Role.SYSTEM.value, "content": build_system_prompt(active_city)}]
    convo.extend(m.model_dump(mode="json") for m in messages)
    return {
        "model": config.model,
        "messages": convo,
        "temperature": config.temperature,
    }


def extract_content(data: object) -> str:
    """Pull choices[0].message.content out of a completion body."""
    try:
        content = data["choices"][0]["message"]["content"]  # type: ignore[index]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedReplyError(f"Completion body has no message content: {e!r}") from e
    if not isinstance(content, str) or not content.strip():
        raise MalformedReplyError("Completion returned empty content")
    return content


# ── Client ────────────────────────────────────────────────────────────

class ChatClient:
    """Async client for an OpenAI-compatible chat-completions API."""

    def __init__(
        self,
        config: Optional[ChatConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = config or get_settings().chat
        self._transport = transport

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        active_city: Optional[str] = None,
    ) -> str:
        """
        Send the conversation and return the assistant's reply text.
        Retries with exponential backoff on 429 and transport errors.
        """
        payload = build_payload(messages, active_city, self.settings)
        headers = {}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"

        for attempt in range(self.settings.max_retries):
            try:
                async with httpx.AsyncClient(transport=self._transport) as client:
                    resp = await client.post(
                        f"{self.settings.api_url}/chat/completions",
                        json=payload,
                        headers=headers,
                        timeout=self.settings.request_timeout,
                    )
                    resp.raise_for_status()
                    try:
                        data = resp.json()
                    except ValueError as e:
                        raise MalformedReplyError("Completion body is not JSON") from e
                    return extract_content(data)

            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429:
                    wait = self.settings.backoff_base ** (attempt + 1)
                    logger.warning("Chat API rate limited, backing off %.1fs", wait)
                    await asyncio.sleep(wait)
                    continue
                logger.error("Chat API HTTP error: %s", e)
                raise MalformedReplyError(
                    f"Chat API returned HTTP {e.response.status_code}"
                ) from e

            except httpx.RequestError as e:
                wait = self.settings.backoff_base ** (attempt + 1)
                logger.warning("Chat API request error (attempt %d/%d): %s, backing off %.1fs",
                               attempt + 1, self.settings.max_retries, e, wait)
                await asyncio.sleep(wait)
                continue

        logger.error("Chat API: all %d retries exhausted", self.settings.max_retries)
        raise MalformedReplyError(f"Chat API unavailable after {self.settings.max_retries} attempts")


# Singleton client instance
_client: Optional[ChatClient] = None


def get_chat_client() -> ChatClient:
    global _client
    if _client is None:
        _client = ChatClient()
    return _client
