"""Turn loosely structured model output into typed study payloads.

The model is asked for JSON but is not bound by it: answers arrive wrapped in
prose or code fences, with trailing commas, or as plain markdown. Every public
function here is pure and never raises; a ``None`` (or a message-only
``ParsedQuiz``) tells the caller to show the raw text instead.
"""

from __future__ import annotations

import json
import math
import logging
import re
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Callable, Iterable

from pydantic import BaseModel, ValidationError

from miraverse.core.models import (
    QUIZ_OPTION_COUNT,
    DialogueLine,
    Flashcard,
    FlashcardsSpec,
    InfographicBlock,
    InfographicSpec,
    QuizQuestion,
    Slide,
    SlidesSpec,
    StudyPlanModule,
    StudyResource,
    StudyTopic,
    VideoScene,
    VideoSpec,
)

logger = logging.getLogger(__name__)

QUIZ_READY_MESSAGE = "Тест готов. Нажмите, чтобы пройти."
DEFAULT_FLASHCARDS_TITLE = "Карточки"
DEFAULT_VIDEO_TITLE = "Видеопересказ"
DEFAULT_PODCAST_TITLE = "Подкаст"

_FENCED_JSON_RE = re.compile(r"```json([\s\S]*?)```", re.IGNORECASE)
_FENCE_RE = re.compile(r"```json|```", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_QUESTIONS_FRAGMENT_RES = (
    re.compile(r'"questions"\s*:\s*(\[[\s\S]*?\])'),
    re.compile(r'"questions"\s*:\s*(\[[\s\S]*\])'),
)

_QUESTION_LINE_RE = re.compile(r"^\d+[).]\s+(.+)")
_OPTION_LINE_RE = re.compile(r"^[-*]?\s*[A-DА-Г][).]\s*(.+)$", re.IGNORECASE)
# best effort: covers the phrasings the tutor prompt tends to produce, nothing more
_CORRECT_MARK_RE = re.compile(r"верн|правил|correct|✔|✅", re.IGNORECASE)


class ShapeError(ValueError):
    """Parsed JSON does not have the shape a payload needs."""


class ParsedQuiz(BaseModel):
    questions: list[QuizQuestion] | None = None
    message: str


# --- text helpers ---


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def normalize_json_text(text: str) -> str:
    """Collapse the usual LLM noise: fences, newlines, trailing commas, runs of spaces."""
    text = _FENCE_RE.sub("", text)
    text = re.sub(r"\r?\n", " ", text)
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def brace_slice(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return text[start : end + 1]
    return None


def _try_json(candidate: str) -> Any:
    # ValueError also covers integer literals past the int digit limit
    try:
        return json.loads(candidate)
    except (ValueError, TypeError, RecursionError):
        return None


def _first_success(candidates: Iterable[str], convert: Callable[[Any], Any]) -> Any:
    """Apply ``convert`` to each parseable candidate, return the first non-None result."""
    for candidate in candidates:
        parsed = _try_json(candidate)
        if parsed is None:
            continue
        try:
            result = convert(parsed)
        except (ShapeError, ValidationError) as exc:
            logger.debug("candidate rejected: %s", exc)
            continue
        if result is not None:
            return result
    return None


# --- validators (raise ShapeError) ---


def _require_dict(obj: Any, what: str) -> dict:
    if not isinstance(obj, dict):
        raise ShapeError(f"{what} is not an object")
    return obj


def _require_list(obj: dict, key: str) -> list:
    value = obj.get(key)
    if not isinstance(value, list):
        raise ShapeError(f"'{key}' is missing or not an array")
    return value


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _coerce_answer(value: Any) -> int:
    """Answer index as an int; anything unusable falls back to the first option."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if 0 <= value < QUIZ_OPTION_COUNT else 0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not number.is_integer():
        return 0
    index = int(number)
    return index if 0 <= index < QUIZ_OPTION_COUNT else 0


def _valid_question(item: Any) -> QuizQuestion | None:
    if not isinstance(item, dict):
        return None
    question = item.get("question")
    options = item.get("options")
    if not _is_str(question) or not isinstance(options, list):
        return None
    if len(options) != QUIZ_OPTION_COUNT or not all(_is_str(o) for o in options):
        return None
    explanation = item.get("explanation")
    return QuizQuestion(
        question=question,
        options=list(options),
        answer=_coerce_answer(item.get("answer")),
        explanation=explanation if _is_str(explanation) else None,
    )


def validate_questions(items: list) -> list[QuizQuestion]:
    questions = [q for q in map(_valid_question, items) if q is not None]
    if not questions:
        raise ShapeError("no question with a string prompt and four string options")
    return questions


def _questions_from_object(parsed: Any) -> list[QuizQuestion]:
    return validate_questions(_require_list(_require_dict(parsed, "quiz"), "questions"))


def validate_infographic(parsed: Any) -> InfographicSpec:
    obj = _require_dict(parsed, "infographic")
    title = obj.get("title")
    if not _is_str(title) or not title:
        raise ShapeError("infographic title is missing")
    blocks = [
        InfographicBlock(title=b["title"], content=b["content"])
        for b in _require_list(obj, "blocks")
        if isinstance(b, dict) and _is_str(b.get("title")) and _is_str(b.get("content"))
    ]
    if not blocks:
        raise ShapeError("infographic has no valid blocks")
    takeaway = obj.get("takeaway")
    return InfographicSpec(title=title, blocks=blocks, takeaway=takeaway if _is_str(takeaway) else None)


def validate_slides(parsed: Any) -> SlidesSpec:
    obj = _require_dict(parsed, "slides")
    title = obj.get("title")
    if not _is_str(title) or not title:
        raise ShapeError("deck title is missing")
    slides = []
    for s in _require_list(obj, "slides"):
        if not isinstance(s, dict) or not _is_str(s.get("title")) or not isinstance(s.get("bullets"), list):
            continue
        bullets = [b for b in s["bullets"] if _is_str(b)]
        if bullets:
            slides.append(Slide(title=s["title"], bullets=bullets))
    if not slides:
        raise ShapeError("deck has no slide with bullets")
    return SlidesSpec(title=title, slides=slides)


def validate_flashcards(parsed: Any) -> FlashcardsSpec:
    obj = _require_dict(parsed, "flashcards")
    cards = [
        Flashcard(front=c["front"], back=c["back"])
        for c in _require_list(obj, "cards")
        if isinstance(c, dict) and _is_str(c.get("front")) and _is_str(c.get("back"))
    ]
    if not cards:
        raise ShapeError("no card with string front and back")
    title = obj.get("title")
    return FlashcardsSpec(title=title if _is_str(title) else DEFAULT_FLASHCARDS_TITLE, cards=cards)


def validate_video(parsed: Any) -> VideoSpec:
    obj = _require_dict(parsed, "video script")
    scenes = []
    for s in _require_list(obj, "scenes"):
        if not isinstance(s, dict) or not _is_str(s.get("text")):
            continue
        scenes.append(
            VideoScene(
                headline=s["headline"] if _is_str(s.get("headline")) else None,
                text=s["text"],
                visual=s["visual"] if _is_str(s.get("visual")) else "",
            )
        )
    if not scenes:
        raise ShapeError("script has no narrated scenes")
    title = obj.get("title")
    return VideoSpec(title=title if _is_str(title) and title else DEFAULT_VIDEO_TITLE, scenes=scenes)


def validate_dialogue(parsed: Any) -> tuple[str, list[DialogueLine]]:
    obj = _require_dict(parsed, "podcast script")
    lines = [
        DialogueLine(speaker=d["speaker"], text=d["text"])
        for d in _require_list(obj, "dialogue")
        if isinstance(d, dict) and _is_str(d.get("speaker")) and _is_str(d.get("text")) and d["text"].strip()
    ]
    if not lines:
        raise ShapeError("podcast has no dialogue lines")
    title = obj.get("title")
    return (title if _is_str(title) and title else DEFAULT_PODCAST_TITLE), lines


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_hours(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    try:
        hours = float(value)
    except OverflowError:
        return 0
    return hours if math.isfinite(hours) and hours >= 0 else 0


def _valid_module(index: int, item: Any) -> StudyPlanModule | None:
    if not isinstance(item, dict) or not _is_str(item.get("title")):
        return None
    topics = []
    for t in _as_list(item.get("topics")):
        if _is_str(t):
            topics.append(StudyTopic(name=t))
        elif isinstance(t, dict) and _is_str(t.get("name")):
            resources = [
                StudyResource(
                    title=r["title"],
                    url=r["url"] if _is_str(r.get("url")) else "",
                    type=r["type"] if _is_str(r.get("type")) else "article",
                )
                for r in _as_list(t.get("resources"))
                if isinstance(r, dict) and _is_str(r.get("title"))
            ]
            topics.append(StudyTopic(name=t["name"], resources=resources))
    week = item.get("week")
    hours = item.get("estimatedHours", item.get("estimated_hours"))
    return StudyPlanModule(
        week=week if isinstance(week, int) and not isinstance(week, bool) else index + 1,
        title=item["title"],
        description=item["description"] if _is_str(item.get("description")) else "",
        topics=topics,
        estimated_hours=_as_hours(hours),
    )


def validate_study_plan(parsed: Any) -> list[StudyPlanModule]:
    if isinstance(parsed, dict):
        parsed = parsed.get("modules", parsed.get("plan"))
    if not isinstance(parsed, list):
        raise ShapeError("study plan is not a list of modules")
    modules = [m for m in (_valid_module(i, item) for i, item in enumerate(parsed)) if m is not None]
    if not modules:
        raise ShapeError("study plan has no titled modules")
    return modules


def validate_job_quiz(parsed: Any) -> list[QuizQuestion]:
    if isinstance(parsed, dict):
        parsed = parsed.get("questions")
    if not isinstance(parsed, list):
        raise ShapeError("job quiz is not a list of questions")
    return validate_questions(parsed)


# --- quiz extraction ---


def quiz_json_candidates(raw: str) -> list[str]:
    """Candidate JSON texts for a quiz, strictest first."""
    fenced = _FENCED_JSON_RE.search(raw)
    if fenced:
        primary = fenced.group(1)
    else:
        primary = brace_slice(raw) or raw
    candidates = [primary, normalize_json_text(primary)]
    for pattern in _QUESTIONS_FRAGMENT_RES:
        match = pattern.search(raw)
        if match:
            wrapped = '{"questions":' + match.group(1) + "}"
            candidates.extend([wrapped, normalize_json_text(wrapped)])
    return candidates


def quiz_from_json(raw: str) -> list[QuizQuestion] | None:
    return _first_success(quiz_json_candidates(raw), _questions_from_object)


@dataclass
class _Draft:
    question: str
    options: list[str] = field(default_factory=list)
    answer: int = 0

    def complete(self) -> bool:
        return len(self.options) == QUIZ_OPTION_COUNT

    def to_question(self) -> QuizQuestion:
        return QuizQuestion(question=self.question, options=self.options, answer=self.answer)


@dataclass
class _Fold:
    finished: list[QuizQuestion] = field(default_factory=list)
    pending: _Draft | None = None

    def flushed(self) -> list[QuizQuestion]:
        if self.pending is not None and self.pending.complete():
            return [*self.finished, self.pending.to_question()]
        return list(self.finished)


def _quiz_step(acc: _Fold, line: str) -> _Fold:
    q = _QUESTION_LINE_RE.match(line)
    if q:
        return _Fold(finished=acc.flushed(), pending=_Draft(question=q.group(1).strip()))
    draft = acc.pending
    if draft is None or len(draft.options) >= QUIZ_OPTION_COUNT:
        return acc
    o = _OPTION_LINE_RE.match(line)
    if not o:
        return acc
    text = o.group(1).strip()
    options = [*draft.options, text]
    answer = len(options) - 1 if _CORRECT_MARK_RE.search(text) else draft.answer
    return _Fold(finished=acc.finished, pending=_Draft(draft.question, options, answer))


def quiz_from_markdown(raw: str) -> list[QuizQuestion] | None:
    """Scan numbered questions followed by lettered options."""
    text = raw.replace("**", "")
    text = re.sub(r"^#+", "", text, flags=re.MULTILINE)
    lines = [line.strip() for line in re.split(r"\r?\n", text)]
    questions = reduce(_quiz_step, (line for line in lines if line), _Fold()).flushed()
    return questions or None


def extract_quiz(raw: str) -> ParsedQuiz:
    questions = quiz_from_json(raw) or quiz_from_markdown(raw)
    if questions:
        return ParsedQuiz(questions=questions, message=QUIZ_READY_MESSAGE)
    logger.info("quiz extraction recovered nothing from %d chars", len(raw))
    return ParsedQuiz(message=raw)


# --- fence-stripped single-shot parsers ---


def _parse_stripped(raw: str, convert: Callable[[Any], Any], what: str):
    parsed = _try_json(strip_fences(raw))
    if parsed is None:
        logger.debug("%s: response is not JSON", what)
        return None
    try:
        return convert(parsed)
    except (ShapeError, ValidationError) as exc:
        logger.debug("%s rejected: %s", what, exc)
        return None


def parse_infographic(raw: str) -> InfographicSpec | None:
    return _parse_stripped(raw, validate_infographic, "infographic")


def parse_slides(raw: str) -> SlidesSpec | None:
    return _parse_stripped(raw, validate_slides, "slides")


def parse_flashcards(raw: str) -> FlashcardsSpec | None:
    return _parse_stripped(raw, validate_flashcards, "flashcards")


def parse_study_plan(raw: str) -> list[StudyPlanModule] | None:
    return _parse_stripped(raw, validate_study_plan, "study plan")


def parse_job_quiz(raw: str) -> list[QuizQuestion] | None:
    return _parse_stripped(raw, validate_job_quiz, "job quiz")


# --- scripts for the media modes ---


def _script_candidates(raw: str) -> list[str]:
    primary = brace_slice(raw) or strip_fences(raw)
    return [_TRAILING_COMMA_RE.sub(r"\1", primary), normalize_json_text(primary)]


def parse_video_script(raw: str) -> VideoSpec | None:
    return _first_success(_script_candidates(raw), validate_video)


def parse_podcast_script(raw: str) -> tuple[str, list[DialogueLine]] | None:
    return _first_success(_script_candidates(raw), validate_dialogue)
