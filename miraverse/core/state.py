"""Per-user workspace state held by the front-end.

Sources are immutable and only leave through ``remove_source``; chat history
is append-only; each artifact goes from loading to ready or error exactly
once, keyed by its id so concurrent generations never touch each other.
"""

from __future__ import annotations

import logging

from miraverse.core.models import (
    ArtifactStatus,
    ChatMessage,
    GeneratedArtifact,
    GenerateResponse,
    QuizQuestion,
    Role,
    Source,
    StudioMode,
)
from miraverse.services import extract_service
from miraverse.services.prompt_service import STUDIO_TITLES

logger = logging.getLogger(__name__)

NO_RESPONSE = "Нет ответа"
QUIZ_UNPARSED = "Не удалось разобрать тест. Попробуйте снова."

READY_MESSAGES: dict[str, str] = {
    "quiz": extract_service.QUIZ_READY_MESSAGE,
    "infographic": "Инфографика готова. Нажмите, чтобы посмотреть.",
    "image": "Инфографика готова. Нажмите, чтобы посмотреть.",
    "slides": "Презентация готова. Нажмите, чтобы посмотреть.",
    "flashcards": "Карточки готовы. Нажмите, чтобы посмотреть.",
    "video": "Видео готово. Нажмите, чтобы посмотреть.",
    "audio_project": "Подкаст готов. Нажмите, чтобы слушать.",
    "study_plan": "Учебный план готов. Нажмите, чтобы посмотреть.",
}


class ArtifactStateError(RuntimeError):
    """An artifact was resolved twice or does not exist."""


class Workspace:
    def __init__(self) -> None:
        self.sources: list[Source] = []
        self.selected: list[str] = []
        self._history: list[ChatMessage] = []
        self._artifacts: dict[str, GeneratedArtifact] = {}
        self.loading_mode: StudioMode | None = None

    # --- sources ---

    def add_source(self, source: Source, select: bool = True) -> None:
        self.sources.append(source)
        if select:
            self.selected.append(source.id)
        if source.summary:
            self.add_message(Role.ASSISTANT, source.summary)

    def remove_source(self, source_id: str) -> None:
        self.sources = [s for s in self.sources if s.id != source_id]
        self.selected = [sid for sid in self.selected if sid != source_id]

    def toggle_source(self, source_id: str) -> None:
        if source_id in self.selected:
            self.selected = [sid for sid in self.selected if sid != source_id]
        else:
            self.selected.append(source_id)

    def available_sources(self) -> list[Source]:
        """Selected sources; an empty selection means all of them."""
        if not self.selected:
            return list(self.sources)
        return [s for s in self.sources if s.id in self.selected]

    # --- chat ---

    @property
    def history(self) -> tuple[ChatMessage, ...]:
        return tuple(self._history)

    def add_message(self, role: Role, content: str) -> ChatMessage:
        msg = ChatMessage(role=role, content=content)
        self._history.append(msg)
        return msg

    # --- studio loading tag ---

    def begin(self, mode: StudioMode) -> bool:
        """Claim the loading tag; False when this mode is already running."""
        if self.loading_mode == mode:
            return False
        self.loading_mode = mode
        return True

    def finish(self, mode: StudioMode) -> None:
        if self.loading_mode == mode:
            self.loading_mode = None

    # --- artifacts ---

    @property
    def artifacts(self) -> list[GeneratedArtifact]:
        """Newest first."""
        return list(reversed(self._artifacts.values()))

    def get_artifact(self, artifact_id: str) -> GeneratedArtifact:
        try:
            return self._artifacts[artifact_id]
        except KeyError:
            raise ArtifactStateError(f"unknown artifact {artifact_id}") from None

    def start_artifact(self, mode: StudioMode, title: str | None = None) -> GeneratedArtifact:
        artifact = GeneratedArtifact(mode=mode, title=title or STUDIO_TITLES.get(mode, mode.value))
        self._artifacts[artifact.id] = artifact
        return artifact

    def _resolve(self, artifact_id: str, **update) -> GeneratedArtifact:
        current = self.get_artifact(artifact_id)
        if current.status != ArtifactStatus.LOADING:
            raise ArtifactStateError(f"artifact {artifact_id} is already {current.status.value}")
        resolved = current.model_copy(update=update)
        self._artifacts[artifact_id] = resolved
        return resolved

    def complete_artifact(self, artifact_id: str, response: GenerateResponse) -> GeneratedArtifact:
        current = self.get_artifact(artifact_id)
        if response.error and not response.text:
            return self.fail_artifact(artifact_id, response.error)
        fields = apply_generation(current, response)
        return self._resolve(artifact_id, status=ArtifactStatus.READY, **fields)

    def fail_artifact(self, artifact_id: str, message: str) -> GeneratedArtifact:
        return self._resolve(artifact_id, status=ArtifactStatus.ERROR, content=f"Ошибка: {message}")

    def open_artifact(self, artifact_id: str) -> GeneratedArtifact:
        """Artifact for display, re-deriving a payload from its text if none was kept."""
        artifact = ensure_payload(self.get_artifact(artifact_id))
        self._artifacts[artifact_id] = artifact
        return artifact


def apply_generation(artifact: GeneratedArtifact, response: GenerateResponse) -> dict:
    """Fields a ready artifact gets from a generate response."""
    content = response.text or response.error or NO_RESPONSE
    payload: dict = {}
    if response.image:
        payload["image"] = response.image
    elif response.video:
        payload["video"] = response.video
    elif response.audio_project:
        payload["audio_project"] = response.audio_project
    elif response.slides:
        payload["slides"] = response.slides
    else:
        payload = derive_payload(artifact.mode, content)
        if artifact.mode in (StudioMode.QUIZ, StudioMode.JOB_QUIZ) and not payload and content == NO_RESPONSE:
            content = QUIZ_UNPARSED

    if payload:
        (name,) = payload
        content = READY_MESSAGES.get(name, content)
    return {"content": content, **payload}


def derive_payload(mode: StudioMode, text: str) -> dict:
    """Client-side extraction of a typed payload from raw model text."""
    if mode == StudioMode.QUIZ:
        parsed = extract_service.extract_quiz(text)
        return {"quiz": parsed.questions} if parsed.questions else {}
    if mode == StudioMode.INFOGRAPHIC:
        spec = extract_service.parse_infographic(text)
        return {"infographic": spec} if spec else {}
    if mode == StudioMode.SLIDES:
        spec = extract_service.parse_slides(text)
        return {"slides": spec} if spec else {}
    if mode == StudioMode.FLASHCARDS:
        spec = extract_service.parse_flashcards(text)
        return {"flashcards": spec} if spec else {}
    if mode == StudioMode.JOB_PLAN:
        modules = extract_service.parse_study_plan(text)
        return {"study_plan": modules} if modules else {}
    if mode == StudioMode.JOB_QUIZ:
        questions = extract_service.parse_job_quiz(text)
        return {"quiz": questions} if questions else {}
    return {}


def ensure_payload(artifact: GeneratedArtifact) -> GeneratedArtifact:
    if artifact.status != ArtifactStatus.READY or artifact.payload_name() is not None:
        return artifact
    payload = derive_payload(artifact.mode, artifact.content)
    if not payload:
        return artifact
    logger.debug("re-derived %s payload for artifact %s", next(iter(payload)), artifact.id)
    return artifact.model_copy(update=payload)


class QuizSession:
    """Answers for one quiz; the first answer to a question is final."""

    def __init__(self, questions: list[QuizQuestion]) -> None:
        self.questions = [q.model_copy() for q in questions]

    def answer(self, index: int, option: int) -> bool:
        """Record an answer; returns False when the question was already answered."""
        question = self.questions[index]
        if question.user_answer is not None:
            return False
        if not 0 <= option < len(question.options):
            raise ValueError(f"option index out of range: {option}")
        self.questions[index] = question.model_copy(update={"user_answer": option})
        return True

    def answered(self) -> int:
        return sum(1 for q in self.questions if q.user_answer is not None)

    def score(self) -> int:
        return sum(1 for q in self.questions if q.user_answer == q.answer)

    def finished(self) -> bool:
        return self.answered() == len(self.questions)
