"""OpenAI-compatible chat completion client with key/model fallback."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from flowgraph.domain.errors import LLMUnavailableError

logger = logging.getLogger(__name__)


class ChatCompletionClient:
    """
    Sends a conversation to a chat completion endpoint.

    Models are tried in order and, for each model, every API key in order;
    the first 2xx response with non-empty content wins. Non-2xx responses
    and transport errors just move on to the next attempt.
    """

    def __init__(
        self,
        api_url: str,
        api_keys: Sequence[str],
        models: Sequence[str],
        max_tokens: int = 4096,
        temperature: float = 0.3,
        referer: Optional[str] = None,
        app_title: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_url = api_url
        self.api_keys = [key for key in api_keys if key]
        self.models = list(models)
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.referer = referer
        self.app_title = app_title
        self._transport = transport
        self._timeout = timeout

    def _headers(self, api_key: str) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if self.app_title:
            headers["X-Title"] = self.app_title
        return headers

    @staticmethod
    def _content(payload: Any) -> Optional[str]:
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        return content if isinstance(content, str) and content.strip() else None

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        if not self.api_keys:
            raise LLMUnavailableError("No API keys configured")

        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            for model in self.models:
                for index, api_key in enumerate(self.api_keys):
                    body = {
                        "model": model,
                        "messages": messages,
                        "max_tokens": self.max_tokens,
                        "temperature": self.temperature,
                    }
                    try:
                        response = await client.post(self.api_url, json=body, headers=self._headers(api_key))
                    except httpx.HTTPError as exc:
                        logger.warning(f"LLM request failed for {model} (key #{index + 1}): {exc}")
                        continue
                    if not response.is_success:
                        logger.warning(f"LLM {model} (key #{index + 1}) answered {response.status_code}")
                        continue
                    try:
                        content = self._content(response.json())
                    except ValueError:
                        content = None
                    if content:
                        logger.info(f"LLM completion served by {model}")
                        return content
                    logger.warning(f"LLM {model} (key #{index + 1}) returned no content")

        raise LLMUnavailableError("All AI models failed. Please try again.")
