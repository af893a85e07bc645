"""The generate endpoint's dispatch on studio mode."""

from __future__ import annotations

import logging

from miraverse.core.config import settings
from miraverse.core.models import (
    AudioProject,
    GenerateRequest,
    GenerateResponse,
    StudioMode,
)
from miraverse.services import extract_service, media_service
from miraverse.services.audio_service import assemble_dialogue, is_empty_wav, to_data_uri
from miraverse.services.prompt_service import BASE_SYSTEM_PROMPT, build_prompt

logger = logging.getLogger(__name__)

INFOGRAPHIC_READY = "Инфографика сгенерирована"
VIDEO_READY = "Видео готово к просмотру."
PODCAST_READY = "Подкаст готов к прослушиванию."
SLIDES_READY = "Презентация готова."
PODCAST_FAILED = "Не удалось сгенерировать подкаст, попробуйте снова."

INFOGRAPHIC_VISUAL_PROMPT = """Create a detailed visual description for an infographic based on the provided sources.
Focus on layout, colors, key data points, and visual elements.
The description should be suitable for an image generation model.
Keep it under 100 words.
Context: {context}"""


class Generator:
    """Runs one generation request against the configured providers."""

    def __init__(self, llm, imager=None, speech=None) -> None:
        self.llm = llm
        self.imager = imager
        self.speech = speech

    async def _text(self, req: GenerateRequest, mode: StudioMode | None = None, prompt: str | None = None,
                    with_history: bool = True) -> str:
        full = build_prompt(
            mode or req.mode,
            req.prompt if prompt is None else prompt,
            req.sources,
            req.history if with_history else [],
        )
        return await self.llm.generate(full, system=BASE_SYSTEM_PROMPT)

    async def run(self, req: GenerateRequest) -> GenerateResponse:
        logger.info("generate mode=%s sources=%d history=%d", req.mode.value, len(req.sources), len(req.history))
        if req.mode == StudioMode.INFOGRAPHIC and settings.INFOGRAPHIC_AS_IMAGE:
            return await self.infographic(req)
        if req.mode == StudioMode.VIDEO:
            return await self.video(req)
        if req.mode == StudioMode.AUDIO:
            return await self.podcast(req)
        if req.mode == StudioMode.SLIDES:
            return await self.slides(req)
        return GenerateResponse(text=await self._text(req))

    async def infographic(self, req: GenerateRequest) -> GenerateResponse:
        visual = await self._text(
            req,
            mode=StudioMode.CHAT,
            prompt=INFOGRAPHIC_VISUAL_PROMPT.format(context=req.prompt),
            with_history=False,
        )
        image = await self.imager.generate(visual)
        return GenerateResponse(image=image, text=INFOGRAPHIC_READY)

    async def video(self, req: GenerateRequest) -> GenerateResponse:
        raw = await self._text(req)
        spec = extract_service.parse_video_script(raw)
        if spec is None:
            logger.warning("video script is not usable JSON, returning raw text")
            return GenerateResponse(text=raw)
        video = await media_service.render_video(spec, self.imager, self.speech)
        return GenerateResponse(video=video, text=VIDEO_READY)

    async def podcast(self, req: GenerateRequest) -> GenerateResponse:
        raw = await self._text(req)
        script = extract_service.parse_podcast_script(raw)
        if script is None:
            logger.warning("podcast script is not usable JSON, returning raw text")
            return GenerateResponse(text=raw)
        title, lines = script
        wav = await assemble_dialogue(lines, self.speech.speak_dialogue, settings.AUDIO_CHUNK_LINES)
        if is_empty_wav(wav):
            return GenerateResponse(error=PODCAST_FAILED)
        return GenerateResponse(
            audio_project=AudioProject(title=title, audio_url=to_data_uri(wav)),
            text=PODCAST_READY,
        )

    async def slides(self, req: GenerateRequest) -> GenerateResponse:
        raw = await self._text(req)
        spec = extract_service.parse_slides(raw)
        if spec is None:
            return GenerateResponse(text=raw)
        if settings.SLIDES_WITH_IMAGES and self.imager is not None:
            spec = await media_service.illustrate_slides(spec, self.imager)
        return GenerateResponse(slides=spec, text=SLIDES_READY)


async def generate(req: GenerateRequest, llm=None, imager=None, speech=None) -> GenerateResponse:
    from miraverse.services.llm_factory import get_image_generator, get_llm, get_speech_synthesizer

    return await Generator(
        llm or get_llm(),
        imager or get_image_generator(),
        speech or get_speech_synthesizer(),
    ).run(req)
