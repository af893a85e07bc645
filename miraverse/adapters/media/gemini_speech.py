"""Gemini text-to-speech.

The TTS model answers with base64 raw PCM (24 kHz, mono, 16-bit). Every
call here returns that PCM already wrapped in a WAV header, so callers always
receive a playable file.
"""

from __future__ import annotations

import base64
import binascii
import logging

import httpx

from miraverse.core.config import settings
from miraverse.core.errors import EmptyResponseError, ProviderError
from miraverse.core.models import DialogueLine
from miraverse.adapters.llm.gemini import candidate_parts, raise_for_status, require_api_key
from miraverse.services.audio_service import WavFormat, wrap_pcm

logger = logging.getLogger(__name__)

READ_ALOUD_PREFIX = "Read this text naturally in Russian: "


def format_script(lines: list[DialogueLine]) -> str:
    return "\n".join(f"{line.speaker}: {line.text}" for line in lines)


class GeminiSpeechSynthesizer:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        voices: dict[str, str] | None = None,
        fmt: WavFormat | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or settings.GEMINI_TTS_MODEL
        self.voices = voices or {
            "Host A": settings.TTS_HOST_A_VOICE,
            "Host B": settings.TTS_HOST_B_VOICE,
        }
        self.fmt = fmt or WavFormat.from_settings()
        self.transport = transport

    async def _request(self, text: str, speech_config: dict) -> bytes:
        key = require_api_key(self.api_key)
        payload = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "response_modalities": ["AUDIO"],
                "speechConfig": speech_config,
            },
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
            raise ProviderError(f"Gemini TTS request failed: {e}") from e
        raise_for_status(r, "Gemini TTS")

        for part in candidate_parts(r.json()):
            inline = part.get("inlineData") or part.get("inline_data") or {}
            if inline.get("data"):
                try:
                    pcm = base64.b64decode(inline["data"])
                except (binascii.Error, ValueError) as e:
                    raise ProviderError(f"Gemini TTS returned undecodable audio: {e}") from e
                return wrap_pcm(pcm, self.fmt)
        raise EmptyResponseError("No audio data in response")

    async def speak(self, text: str, voice: str | None = None) -> bytes:
        """Single-voice narration as a WAV buffer."""
        config = {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice or settings.TTS_VOICE}}}
        return await self._request(READ_ALOUD_PREFIX + text, config)

    async def speak_dialogue(self, lines: list[DialogueLine]) -> bytes:
        """Multi-speaker rendering of a script chunk as a WAV buffer."""
        speakers = []
        for line in lines:
            if line.speaker not in speakers:
                speakers.append(line.speaker)
        if len(speakers) == 1:
            # multi-speaker config is rejected upstream for a single voice
            config = {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice_for(speakers[0])}}}
            return await self._request(format_script(lines), config)
        config = {
            "multiSpeakerVoiceConfig": {
                "speakerVoiceConfigs": [
                    {
                        "speaker": name,
                        "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice_for(name)}},
                    }
                    for name in speakers
                ]
            }
        }
        return await self._request(format_script(lines), config)

    def voice_for(self, speaker: str) -> str:
        return self.voices.get(speaker, settings.TTS_VOICE)
