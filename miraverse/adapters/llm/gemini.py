"""Gemini text generation over the REST ``generateContent`` endpoint."""

from __future__ import annotations

import logging

import httpx

from miraverse.core.config import settings
from miraverse.core.errors import EmptyResponseError, MissingCredentialsError, ProviderError
from miraverse.adapters.llm.base import LLM

logger = logging.getLogger(__name__)


def require_api_key(api_key: str | None = None) -> str:
    key = (api_key or settings.GOOGLE_API_KEY or "").strip()
    if not key:
        raise MissingCredentialsError("GOOGLE_API_KEY не задан")
    return key


def candidate_parts(data: dict) -> list[dict]:
    """Parts of the first candidate, or EmptyResponseError."""
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason")
        raise EmptyResponseError(f"No candidates returned{f' ({reason})' if reason else ''}")
    content = candidates[0].get("content") or {}
    return content.get("parts") or []


def raise_for_status(r: httpx.Response, what: str) -> None:
    if r.is_success:
        return
    raise ProviderError(f"{what} API Error: {r.status_code} {r.text[:500]}", status_code=502)


class GeminiLLM(LLM):
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or settings.GEMINI_MODEL
        self.transport = transport

    def _payload(self, prompt: str, system: str | None) -> dict:
        payload: dict = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": settings.GEMINI_TEMPERATURE,
                "topP": settings.GEMINI_TOP_P,
                "topK": settings.GEMINI_TOP_K,
                "maxOutputTokens": settings.GEMINI_MAX_OUTPUT_TOKENS,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return payload

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=settings.GEMINI_BASE_URL,
            timeout=timeout,
            transport=self.transport,
        )

    async def generate(self, prompt: str, system: str | None = None) -> str:
        key = require_api_key(self.api_key)
        try:
            async with self._client(settings.GEMINI_TIMEOUT) as client:
                r = await client.post(
                    f"/models/{self.model}:generateContent",
                    params={"key": key},
                    json=self._payload(prompt, system),
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini request failed: {e}") from e
        raise_for_status(r, "Gemini")

        parts = candidate_parts(r.json())
        text = "".join(p.get("text", "") for p in parts if not p.get("thought"))
        logger.debug("gemini %s returned %d chars", self.model, len(text))
        return text
