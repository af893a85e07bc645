from fastapi import APIRouter, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from miraverse.api.errors import bad_request, error_response
from miraverse.core.models import Source
from miraverse.services.ingest_service import ingest_link, ingest_text, ingest_upload, ingest_youtube
from miraverse.services.summary_service import generate_summary

router = APIRouter(prefix="/api", tags=["ingest"])


class LinkRequest(BaseModel):
    url: str


class TextRequest(BaseModel):
    title: str | None = None
    text: str


async def with_summary(source: Source) -> Source:
    summary = await generate_summary(source.content)
    return source.model_copy(update={"summary": summary}) if summary else source


def source_out(source: Source) -> dict:
    return source.model_dump(mode="json", exclude_none=True)


@router.post("/upload")
async def upload(files: list[UploadFile] = File(...)):
    out = []
    try:
        for f in files:
            data = await f.read()
            source = await run_in_threadpool(ingest_upload, f.filename or "upload", data, f.content_type)
            out.append(source_out(await with_summary(source)))
    except Exception as e:
        return error_response("/api/upload", e)
    return {"sources": out}


@router.post("/link")
async def link(req: LinkRequest):
    if not req.url.strip():
        return bad_request("url обязателен")
    try:
        source = await run_in_threadpool(ingest_link, req.url.strip())
        return {"source": source_out(await with_summary(source))}
    except Exception as e:
        return error_response("/api/link", e)


@router.post("/youtube")
async def youtube(req: LinkRequest):
    if not req.url.strip():
        return bad_request("url обязателен")
    try:
        source = await run_in_threadpool(ingest_youtube, req.url.strip())
        return {"source": source_out(await with_summary(source))}
    except Exception as e:
        return error_response("/api/youtube", e)


@router.post("/text")
async def text(req: TextRequest):
    try:
        source = ingest_text(req.title, req.text)
        return {"source": source_out(await with_summary(source))}
    except Exception as e:
        return error_response("/api/text", e)
