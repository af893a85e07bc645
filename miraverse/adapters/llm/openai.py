from openai import AsyncOpenAI, OpenAIError

from miraverse.core.config import settings
from miraverse.core.errors import MissingCredentialsError, ProviderError
from miraverse.adapters.llm.base import LLM

DEFAULT_SYSTEM = "You are a helpful assistant."

class OpenAILLM(LLM):
    def _client(self) -> AsyncOpenAI:
        if not settings.OPENAI_API_KEY:
            raise MissingCredentialsError("OPENAI_API_KEY не задан")
        return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    def _messages(self, prompt: str, system: str | None) -> list[dict]:
        return [
            {"role": "system", "content": system or DEFAULT_SYSTEM},
            {"role": "user", "content": prompt},
        ]

    async def generate(self, prompt: str, system: str | None = None) -> str:
        try:
            resp = await self._client().chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=self._messages(prompt, system),
                temperature=settings.GEMINI_TEMPERATURE,
            )
        except OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e
        return resp.choices[0].message.content or ""
