import logging

from miraverse.core.config import settings
from miraverse.adapters.llm.base import LLM
from miraverse.services.prompt_service import BASE_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

SUMMARY_INSTRUCTION = (
    "Сделай краткое резюме источника на русском: 2–3 предложения о чём он, "
    "затем 3–5 ключевых тезисов списком. Без приветствий."
)


async def summarize(text: str, llm: LLM | None = None) -> str:
    if llm is None:
        from miraverse.services.llm_factory import get_llm
        llm = get_llm()
    prompt = f"{SUMMARY_INSTRUCTION}\n\nИсточник:\n{text[: settings.SUMMARY_INPUT_LIMIT]}"
    summary = await llm.generate(prompt, system=BASE_SYSTEM_PROMPT)
    return summary.strip()


async def generate_summary(text: str, llm: LLM | None = None) -> str | None:
    """Summary shown in chat when a source is added; None when unavailable."""
    if not (text or "").strip():
        return None
    try:
        return await summarize(text, llm) or None
    except Exception as e:
        # a source is still usable without its summary
        logger.warning("summary generation failed: %s", e)
        return None
