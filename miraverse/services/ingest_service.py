import io
import logging
import re
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from miraverse.core.config import settings
from miraverse.core.errors import IngestError
from miraverse.core.models import Source, SourceKind
from miraverse.services.title_service import text_source_title

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def extract_pdf_text(data: bytes, max_pages: int | None = None) -> str:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(data))
    limit = min(len(reader.pages), max_pages or settings.PDF_MAX_PAGES)
    parts = []
    for page in reader.pages[:limit]:
        parts.append(_collapse(page.extract_text() or ""))
    return "\n\n".join(parts)


def extract_docx_text(data: bytes) -> str:
    from docx import Document as Docx

    d = Docx(io.BytesIO(data))
    return "\n".join(p.text for p in d.paragraphs if p.text.strip())


def ingest_upload(filename: str, data: bytes, content_type: str | None = None) -> Source:
    name = Path(filename or "upload").name
    lower = name.lower()
    try:
        if content_type == "application/pdf" or lower.endswith(".pdf"):
            content = extract_pdf_text(data)
        elif lower.endswith(".docx"):
            content = extract_docx_text(data)
        else:
            content = data.decode("utf-8", errors="replace")
    except Exception as e:
        raise IngestError(f"Не удалось прочитать файл {name}: {e}") from e
    logger.info("ingested upload %s (%d chars)", name, len(content))
    return Source(title=name, type=SourceKind.FILE, content=content)


def html_to_text(html: str) -> tuple[str | None, str]:
    from bs4 import BeautifulSoup

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()
    title = soup.title.string.strip() if soup.title and soup.title.string else None
    body = soup.body or soup
    return title, _collapse(body.get_text(" "))


def ingest_link(url: str) -> Source:
    import httpx

    try:
        r = httpx.get(url, timeout=40, follow_redirects=True)
        r.raise_for_status()
    except httpx.HTTPError as e:
        raise IngestError(f"Не удалось получить ссылку: {e}") from e
    title, text = html_to_text(r.text)
    logger.info("ingested link %s (%d chars)", url, len(text))
    return Source(
        title=title or url,
        type=SourceKind.LINK,
        url=url,
        content=text[: settings.SOURCE_CONTENT_LIMIT],
    )


def youtube_video_id(url: str) -> str | None:
    u = urlparse(url)
    host = (u.hostname or "").lower()
    if host in ("www.youtube.com", "youtube.com", "m.youtube.com", "music.youtube.com"):
        if u.path.startswith(("/shorts/", "/embed/", "/live/")):
            return u.path.split("/")[2] or None
        return parse_qs(u.query).get("v", [None])[0]
    if host == "youtu.be":
        return u.path.lstrip("/").split("/")[0] or None
    return None


def fetch_transcript(video_id: str, languages: list[str] | None = None) -> str:
    from youtube_transcript_api import YouTubeTranscriptApi

    languages = languages or ["ru", "en"]
    # youtube-transcript-api changed API in v1.x:
    # - older versions: YouTubeTranscriptApi.get_transcript(video_id, ...)
    # - newer versions: YouTubeTranscriptApi().fetch(video_id, ...)
    if hasattr(YouTubeTranscriptApi, "get_transcript"):
        transcript = YouTubeTranscriptApi.get_transcript(video_id, languages=languages)
        return " ".join(t.get("text", "") for t in transcript if t.get("text"))
    fetched = YouTubeTranscriptApi().fetch(video_id, languages=languages)
    if hasattr(fetched, "to_raw_data"):
        return " ".join(t.get("text", "") for t in fetched.to_raw_data() if t.get("text"))
    return " ".join(getattr(t, "text", str(t)) for t in fetched)


def youtube_title(url: str) -> str | None:
    """Best-effort title via oEmbed (no API key)."""
    import httpx

    try:
        o = httpx.get(
            "https://www.youtube.com/oembed",
            params={"url": url, "format": "json"},
            timeout=20,
            follow_redirects=True,
        )
    except httpx.HTTPError as e:
        logger.debug("oEmbed lookup failed for %s: %s", url, e)
        return None
    if o.status_code != 200:
        return None
    try:
        data = o.json()
    except ValueError:
        logger.debug("oEmbed returned non-JSON for %s", url)
        return None
    if not isinstance(data, dict):
        return None
    title = data.get("title")
    return title.strip() if isinstance(title, str) and title.strip() else None


def ingest_youtube(url: str) -> Source:
    vid = youtube_video_id(url)
    if not vid:
        raise IngestError("Cannot parse YouTube video id from URL")
    try:
        content = fetch_transcript(vid)
    except Exception as e:
        raise IngestError(f"Не удалось получить расшифровку: {e}") from e
    logger.info("ingested youtube %s (%d chars)", vid, len(content))
    return Source(
        title=youtube_title(url) or "YouTube",
        type=SourceKind.YOUTUBE,
        url=url,
        content=content[: settings.SOURCE_CONTENT_LIMIT],
    )


def ingest_text(title: str | None, text: str) -> Source:
    if not (text or "").strip():
        raise IngestError("Текст пуст")
    return Source(title=text_source_title(title, text), type=SourceKind.TEXT, content=text)
