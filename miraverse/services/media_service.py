"""Per-scene and per-slide media fan-out.

Every scene's image and narration are requested at once and awaited together.
A failed request leaves ``None`` in its slot; siblings are unaffected.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from miraverse.core.models import Slide, SlidesSpec, VideoScene, VideoSpec
from miraverse.services.audio_service import to_data_uri

logger = logging.getLogger(__name__)

T = TypeVar("T")


def scene_image_prompt(scene: VideoScene) -> str:
    return (
        "Create a presentation slide.\n"
        "Visual style: Modern, minimalist, educational, clean vector graphics, white background.\n"
        f"Content: {scene.visual}\n"
        "IMPORTANT: The slide MUST clearly display the following text in Russian Cyrillic: "
        f'"{(scene.headline or scene.text[:50])}..."\n'
        "Render the text legibly as the slide title or main element."
    )


def slide_image_prompt(slide: Slide) -> str:
    return (
        "Create a clean illustration for a presentation slide, no text, flat vector style, white background. "
        f"Topic: {slide.title}. Key points: {'; '.join(slide.bullets)}"
    )


async def _or_none(what: str, job: Awaitable[T]) -> T | None:
    try:
        return await job
    except Exception as e:
        logger.error("%s failed: %s", what, e)
        return None


async def _render_scene(index: int, scene: VideoScene, imager, speech) -> VideoScene:
    image, wav = await asyncio.gather(
        _or_none(f"scene {index} image", imager.generate(scene_image_prompt(scene))),
        _or_none(f"scene {index} audio", speech.speak(scene.text)),
    )
    return scene.model_copy(update={"image": image, "audio": to_data_uri(wav) if wav else None})


async def render_video(spec: VideoSpec, imager, speech) -> VideoSpec:
    scenes = await asyncio.gather(
        *(_render_scene(i, scene, imager, speech) for i, scene in enumerate(spec.scenes, 1))
    )
    rendered = sum(1 for s in scenes if s.image or s.audio)
    logger.info("video '%s': %d/%d scenes got media", spec.title, rendered, len(scenes))
    return VideoSpec(title=spec.title, scenes=list(scenes))


async def illustrate_slides(spec: SlidesSpec, imager) -> SlidesSpec:
    images = await asyncio.gather(
        *(_or_none(f"slide {i} image", imager.generate(slide_image_prompt(s))) for i, s in enumerate(spec.slides, 1))
    )
    slides = [s.model_copy(update={"image": img}) for s, img in zip(spec.slides, images)]
    return SlidesSpec(title=spec.title, slides=slides)
