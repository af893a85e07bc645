import base64
import json

import httpx
import pytest

from miraverse.adapters.llm.gemini import GeminiLLM, candidate_parts
from miraverse.adapters.media.gemini_image import GeminiImageGenerator
from miraverse.adapters.media.gemini_speech import GeminiSpeechSynthesizer, format_script
from miraverse.core.errors import EmptyResponseError, MissingCredentialsError, ProviderError
from miraverse.core.models import DialogueLine
from miraverse.services.audio_service import WAV_HEADER_SIZE, read_declared_length, strip_header


def _transport(body: dict, status: int = 200, seen: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


def _parts(*parts: dict) -> dict:
    return {"candidates": [{"content": {"parts": list(parts)}}]}


@pytest.mark.asyncio
async def test_generate_joins_text_parts_and_skips_thoughts():
    seen = []
    llm = GeminiLLM(
        api_key="k",
        model="gemini-test",
        transport=_transport(_parts({"text": "thinking", "thought": True}, {"text": "При"}, {"text": "вет"}), seen=seen),
    )
    assert await llm.generate("hi", system="be brief") == "Привет"

    request = seen[0]
    assert request.url.path.endswith("/models/gemini-test:generateContent")
    assert request.url.params["key"] == "k"
    payload = json.loads(request.content)
    assert payload["contents"][0]["parts"][0]["text"] == "hi"
    assert payload["systemInstruction"]["parts"][0]["text"] == "be brief"
    assert "temperature" in payload["generationConfig"]


@pytest.mark.asyncio
async def test_generate_maps_http_errors():
    llm = GeminiLLM(api_key="k", transport=_transport({"error": {"message": "quota"}}, status=429))
    with pytest.raises(ProviderError) as exc:
        await llm.generate("hi")
    assert exc.value.status_code == 502
    assert "429" in exc.value.message


@pytest.mark.asyncio
async def test_generate_transport_failure():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    llm = GeminiLLM(api_key="k", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError):
        await llm.generate("hi")


@pytest.mark.asyncio
async def test_missing_key(monkeypatch):
    from miraverse.core.config import settings

    monkeypatch.setattr(settings, "GOOGLE_API_KEY", None)
    with pytest.raises(MissingCredentialsError) as exc:
        await GeminiLLM(transport=_transport({})).generate("hi")
    assert exc.value.status_code == 500


def test_candidate_parts_reports_block_reason():
    with pytest.raises(EmptyResponseError, match="SAFETY"):
        candidate_parts({"promptFeedback": {"blockReason": "SAFETY"}})
    assert candidate_parts({"candidates": [{}]}) == []


@pytest.mark.asyncio
async def test_image_returns_inline_base64():
    imager = GeminiImageGenerator(
        api_key="k",
        transport=_transport(_parts({"text": "here"}, {"inlineData": {"mimeType": "image/png", "data": "UE5H"}})),
    )
    assert await imager.generate("a cat") == "UE5H"


@pytest.mark.asyncio
async def test_image_refusal_is_empty_response():
    imager = GeminiImageGenerator(api_key="k", transport=_transport(_parts({"text": "I cannot draw that"})))
    with pytest.raises(EmptyResponseError, match="instead of image"):
        await imager.generate("x")


@pytest.mark.asyncio
async def test_speech_wraps_pcm_in_wav():
    pcm = b"\x10\x00" * 50
    seen = []
    speech = GeminiSpeechSynthesizer(
        api_key="k",
        transport=_transport(_parts({"inlineData": {"data": base64.b64encode(pcm).decode()}}), seen=seen),
    )
    wav = await speech.speak("Привет", voice="Puck")

    assert wav[:4] == b"RIFF"
    assert read_declared_length(wav) == len(pcm)
    assert strip_header(wav) == pcm
    assert len(wav) == WAV_HEADER_SIZE + len(pcm)
    config = json.loads(seen[0].content)["generationConfig"]["speechConfig"]
    assert config["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"] == "Puck"


@pytest.mark.asyncio
async def test_dialogue_uses_multi_speaker_config():
    seen = []
    speech = GeminiSpeechSynthesizer(
        api_key="k",
        voices={"Host A": "Charon", "Host B": "Kore"},
        transport=_transport(_parts({"inlineData": {"data": base64.b64encode(b"\x00\x00").decode()}}), seen=seen),
    )
    lines = [DialogueLine(speaker="Host A", text="Привет"), DialogueLine(speaker="Host B", text="Здравствуй")]
    await speech.speak_dialogue(lines)

    payload = json.loads(seen[0].content)
    assert payload["contents"][0]["parts"][0]["text"] == format_script(lines)
    configs = payload["generationConfig"]["speechConfig"]["multiSpeakerVoiceConfig"]["speakerVoiceConfigs"]
    assert [(c["speaker"], c["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"]) for c in configs] == [
        ("Host A", "Charon"),
        ("Host B", "Kore"),
    ]


@pytest.mark.asyncio
async def test_dialogue_single_speaker_uses_voice_config():
    seen = []
    speech = GeminiSpeechSynthesizer(
        api_key="k",
        voices={"Host A": "Charon"},
        transport=_transport(_parts({"inlineData": {"data": base64.b64encode(b"\x00\x00").decode()}}), seen=seen),
    )
    await speech.speak_dialogue([DialogueLine(speaker="Host A", text="Монолог")])
    config = json.loads(seen[0].content)["generationConfig"]["speechConfig"]
    assert config == {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": "Charon"}}}


@pytest.mark.asyncio
async def test_speech_without_audio_part():
    speech = GeminiSpeechSynthesizer(api_key="k", transport=_transport(_parts({"text": "no audio"})))
    with pytest.raises(EmptyResponseError):
        await speech.speak("x")
