"""
Completion capability — text in, structured JSON out.

Talks to an OpenAI-compatible ``/chat/completions`` endpoint (Groq by
default) in JSON-object response mode.
"""

import json
from typing import Any, Optional, Protocol

import httpx

from data_agent.errors import CapabilityError

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"


class CompletionCapability(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 1000,
    ) -> dict[str, Any]:
        ...


class CompletionClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._model = model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "User-Agent": "data-agent/0.1.0",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 1000,
    ) -> dict[str, Any]:
        """One chat completion parsed as a JSON object. Raises CapabilityError."""
        body = {
            "model": model or self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        try:
            resp = await self._client.post("/chat/completions", json=body)
        except httpx.HTTPError as e:
            raise CapabilityError(f"Completion request failed: {e}") from e
        if resp.status_code >= 400:
            raise CapabilityError(f"HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            content = resp.json()["choices"][0]["message"]["content"] or "{}"
            result = json.loads(content)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise CapabilityError(f"Malformed completion response: {e}") from e
        if not isinstance(result, dict):
            raise CapabilityError("Completion response is not a JSON object")
        return result

    async def close(self) -> None:
        await self._client.aclose()
