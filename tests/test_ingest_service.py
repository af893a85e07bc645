import io

import httpx
import pytest

from miraverse.core.errors import IngestError
from miraverse.core.models import SourceKind
from miraverse.services import ingest_service
from miraverse.services.ingest_service import (
    html_to_text,
    ingest_link,
    ingest_text,
    ingest_upload,
    ingest_youtube,
    youtube_title,
    youtube_video_id,
)
from miraverse.services.title_service import (
    DEFAULT_TEXT_TITLE,
    MAX_TITLE_LENGTH,
    extract_title_from_text,
    is_generic_title,
)


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://youtube.com/watch?v=abc123&t=42s", "abc123"),
        ("https://youtu.be/xyz789?si=share", "xyz789"),
        ("https://www.youtube.com/shorts/short01", "short01"),
        ("https://m.youtube.com/embed/emb42", "emb42"),
        ("https://example.com/watch?v=nope", None),
        ("https://www.youtube.com/feed/trending", None),
    ],
)
def test_youtube_video_id(url, expected):
    assert youtube_video_id(url) == expected


def test_html_to_text_drops_scripts():
    html = """<html><head><title> Статья о клетке </title><style>p{}</style></head>
    <body><script>var x = 1;</script><h1>Клетка</h1>
    <p>Клетка —   единица   жизни.</p><noscript>включите JS</noscript></body></html>"""
    title, text = html_to_text(html)
    assert title == "Статья о клетке"
    assert text == "Клетка Клетка — единица жизни."


def test_ingest_text_uses_given_title():
    src = ingest_text("Мои заметки", "Содержимое")
    assert src.type == SourceKind.TEXT
    assert src.title == "Мои заметки"
    assert src.content == "Содержимое"
    assert src.id


def test_ingest_text_derives_title():
    src = ingest_text("", "# Фотосинтез\nСвет превращается в энергию")
    assert src.title == "Фотосинтез"
    assert ingest_text(None, "abc").title == "abc"


def test_ingest_text_rejects_empty():
    with pytest.raises(IngestError):
        ingest_text("t", "   ")


def test_title_helpers():
    assert is_generic_title(None)
    assert is_generic_title(DEFAULT_TEXT_TITLE)
    assert is_generic_title("  Текст ")
    assert is_generic_title("Untitled")
    assert not is_generic_title("Лекция 3")
    assert extract_title_from_text("\n\n- Введение в генетику\nтекст") == "Введение в генетику"
    assert extract_title_from_text("") is None


def test_ingest_upload_plain_text():
    src = ingest_upload("notes.md", "Привет, мир".encode("utf-8"), "text/markdown")
    assert src.type == SourceKind.FILE
    assert src.title == "notes.md"
    assert src.content == "Привет, мир"


def test_ingest_upload_bad_bytes_are_replaced():
    src = ingest_upload("raw.txt", b"ok \xff end")
    assert src.content.startswith("ok ") and src.content.endswith(" end")


def test_ingest_upload_docx():
    from docx import Document

    buf = io.BytesIO()
    doc = Document()
    doc.add_paragraph("Первый абзац")
    doc.add_paragraph("")
    doc.add_paragraph("Второй абзац")
    doc.save(buf)

    src = ingest_upload("lecture.docx", buf.getvalue())
    assert src.content == "Первый абзац\nВторой абзац"


def test_ingest_upload_broken_pdf():
    with pytest.raises(IngestError, match="broken.pdf"):
        ingest_upload("broken.pdf", b"not a pdf", "application/pdf")


def test_ingest_link(monkeypatch):
    def fake_get(url, **kwargs):
        request = httpx.Request("GET", url)
        return httpx.Response(200, text="<title>Страница</title><body><p>Текст  статьи</p></body>", request=request)

    monkeypatch.setattr(httpx, "get", fake_get)
    src = ingest_link("https://example.com/a")
    assert src.type == SourceKind.LINK
    assert src.title == "Страница"
    assert src.url == "https://example.com/a"
    assert src.content == "Текст статьи"


def test_ingest_link_failure(monkeypatch):
    def fake_get(url, **kwargs):
        request = httpx.Request("GET", url)
        return httpx.Response(404, text="nope", request=request)

    monkeypatch.setattr(httpx, "get", fake_get)
    with pytest.raises(IngestError):
        ingest_link("https://example.com/missing")


def test_ingest_youtube(monkeypatch):
    monkeypatch.setattr(ingest_service, "fetch_transcript", lambda vid, languages=None: f"transcript of {vid}")
    monkeypatch.setattr(ingest_service, "youtube_title", lambda url: None)
    src = ingest_youtube("https://youtu.be/abc")
    assert src.type == SourceKind.YOUTUBE
    assert src.title == "YouTube"
    assert src.content == "transcript of abc"


def test_ingest_youtube_bad_url():
    with pytest.raises(IngestError):
        ingest_youtube("https://example.com/video")


def test_ingest_youtube_transcript_unavailable(monkeypatch):
    def boom(vid, languages=None):
        raise RuntimeError("TranscriptsDisabled")

    monkeypatch.setattr(ingest_service, "fetch_transcript", boom)
    with pytest.raises(IngestError, match="TranscriptsDisabled"):
        ingest_youtube("https://www.youtube.com/watch?v=abc")


@pytest.mark.parametrize(
    "body",
    ["<html>consent page</html>", '["not", "an", "object"]', '{"title": 42}', "null"],
)
def test_youtube_title_ignores_unusable_oembed_bodies(monkeypatch, body):
    def fake_get(url, **kwargs):
        return httpx.Response(200, text=body, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx, "get", fake_get)
    assert youtube_title("https://youtu.be/abc") is None


def test_youtube_title_from_oembed(monkeypatch):
    def fake_get(url, **kwargs):
        return httpx.Response(200, json={"title": "  Лекция по генетике "}, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx, "get", fake_get)
    assert youtube_title("https://youtu.be/abc") == "Лекция по генетике"


def test_ingest_youtube_survives_html_oembed(monkeypatch):
    def fake_get(url, **kwargs):
        return httpx.Response(200, text="<html></html>", request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx, "get", fake_get)
    monkeypatch.setattr(ingest_service, "fetch_transcript", lambda vid, languages=None: "текст")
    src = ingest_youtube("https://youtu.be/abc")
    assert src.title == "YouTube"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Вступление\n\n## **Клеточное дыхание** ##\nтекст", "Клеточное дыхание"),
        ("Митоз и мейоз\n============\nФазы деления", "Митоз и мейоз"),
        ("---\n1. `Гликолиз`:\nдалее", "Гликолиз"),
        ("> [Конспект лекции](https://example.com/l1)\nтело", "Конспект лекции"),
        ("***\n\n!!!\n\n", None),
    ],
)
def test_extract_title_from_pasted_markdown(text, expected):
    assert extract_title_from_text(text) == expected


def test_long_first_line_is_cut_at_a_word():
    line = "Очень длинная первая строка вставленного конспекта " * 4
    title = extract_title_from_text(line)
    assert title.endswith("…")
    assert len(title) <= MAX_TITLE_LENGTH + 1
    assert not title[:-1].endswith(" ")
    assert line.startswith(title[:-1])


def test_placeholder_title_is_replaced_by_text_heading():
    assert ingest_text("Текст", "# Эволюция\nДарвин").title == "Эволюция"
    assert ingest_text("Текст", "!!!").title == DEFAULT_TEXT_TITLE
