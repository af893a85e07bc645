import httpx

from miraverse.core.config import settings
from miraverse.core.errors import ProviderError
from miraverse.adapters.llm.base import LLM

class OllamaLLM(LLM):
    def _payload(self, prompt: str, system: str | None) -> dict:
        payload = {
            "model": settings.OLLAMA_MODEL,
            "prompt": prompt,
            "stream": False,
            "keep_alive": settings.OLLAMA_KEEP_ALIVE,
            "options": {
                "num_predict": settings.OLLAMA_NUM_PREDICT,
                "temperature": settings.OLLAMA_TEMPERATURE,
                "top_p": settings.OLLAMA_TOP_P,
            },
        }
        if system:
            payload["system"] = system
        return payload

    async def generate(self, prompt: str, system: str | None = None) -> str:
        try:
            async with httpx.AsyncClient(timeout=180) as client:
                r = await client.post(
                    f"{settings.OLLAMA_BASE_URL}/api/generate",
                    json=self._payload(prompt, system),
                )
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama request failed: {e}") from e
        return r.json().get("response", "")
