from __future__ import annotations

import logging

import httpx

from miraverse.core.config import settings
from miraverse.core.errors import EmptyResponseError, ProviderError
from miraverse.adapters.llm.gemini import candidate_parts, raise_for_status, require_api_key

logger = logging.getLogger(__name__)


class GeminiImageGenerator:
    """Renders a prompt into a base64 image with the Gemini image model."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or settings.GEMINI_IMAGE_MODEL
        self.transport = transport

    async def generate(self, prompt: str) -> str:
        key = require_api_key(self.api_key)
        payload = {
            "contents": [{"role": "user", "parts": [{"text": "Generate an image: " + prompt}]}],
        }
        try:
            async with httpx.AsyncClient(
                base_url=settings.GEMINI_BASE_URL,
                timeout=settings.GEMINI_TIMEOUT,
                transport=self.transport,
            ) as client:
                r = await client.post(
                    f"/models/{self.model}:generateContent",
                    params={"key": key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini Image Gen Failed: {e}") from e
        raise_for_status(r, "Gemini Image")

        parts = candidate_parts(r.json())
        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data") or {}
            if inline.get("data"):
                return inline["data"]
        # the model sometimes answers with a refusal instead of an image
        text = " ".join(p.get("text", "") for p in parts).strip()
        if text:
            raise EmptyResponseError(f"Model returned text instead of image: {text[:300]}")
        raise EmptyResponseError("No image data in response")
