from fastapi import APIRouter, Response
from pydantic import BaseModel

from miraverse.api.errors import bad_request, error_response
from miraverse.services import llm_factory
from miraverse.services.summary_service import summarize

router = APIRouter(prefix="/api", tags=["media"])


class SummaryRequest(BaseModel):
    text: str


class TTSRequest(BaseModel):
    text: str
    voice: str | None = None


@router.post("/summary")
async def summary(req: SummaryRequest):
    if not req.text.strip():
        return bad_request("text обязателен")
    try:
        return {"summary": await summarize(req.text)}
    except Exception as e:
        return error_response("/api/summary", e)


@router.post("/tts")
async def tts(req: TTSRequest):
    if not req.text.strip():
        return bad_request("text обязателен")
    try:
        wav = await llm_factory.get_speech_synthesizer().speak(req.text, voice=req.voice)
    except Exception as e:
        return error_response("/api/tts", e)
    return Response(content=wav, media_type="audio/wav")
