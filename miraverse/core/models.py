import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SourceKind(str, Enum):
    FILE = "file"
    LINK = "link"
    YOUTUBE = "youtube"
    TEXT = "text"


class Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    type: SourceKind
    content: str
    url: str | None = None
    summary: str | None = None


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    role: Role
    content: str


class StudioMode(str, Enum):
    CHAT = "chat"
    AUDIO = "audio"
    VIDEO = "video"
    MINDMAP = "mindmap"
    REPORT = "report"
    FLASHCARDS = "flashcards"
    QUIZ = "quiz"
    INFOGRAPHIC = "infographic"
    SLIDES = "slides"
    JOB_PLAN = "job_plan"
    JOB_QUIZ = "job_quiz"


QUIZ_OPTION_COUNT = 4


class QuizQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    options: list[str]
    answer: int = 0
    user_answer: int | None = Field(default=None, alias="userAnswer")
    explanation: str | None = None

    @model_validator(mode="after")
    def _check_indices(self):
        if len(self.options) != QUIZ_OPTION_COUNT:
            raise ValueError(f"a question needs exactly {QUIZ_OPTION_COUNT} options")
        for idx in (self.answer, self.user_answer):
            if idx is not None and not 0 <= idx < QUIZ_OPTION_COUNT:
                raise ValueError(f"option index out of range: {idx}")
        return self


class InfographicBlock(BaseModel):
    title: str
    content: str


class InfographicSpec(BaseModel):
    title: str
    blocks: list[InfographicBlock]
    takeaway: str | None = None


class Slide(BaseModel):
    title: str
    bullets: list[str]
    image: str | None = None


class SlidesSpec(BaseModel):
    title: str
    slides: list[Slide]


class Flashcard(BaseModel):
    front: str
    back: str


class FlashcardsSpec(BaseModel):
    title: str
    cards: list[Flashcard]


class VideoScene(BaseModel):
    headline: str | None = None
    text: str
    visual: str = ""
    image: str | None = None
    audio: str | None = None


class VideoSpec(BaseModel):
    title: str
    scenes: list[VideoScene]


class DialogueLine(BaseModel):
    speaker: str
    text: str


class AudioProject(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    audio_url: str = Field(alias="audioUrl")


class StudyResource(BaseModel):
    title: str
    url: str = ""
    type: str = "article"  # video|book|article|course


class StudyTopic(BaseModel):
    name: str
    resources: list[StudyResource] = Field(default_factory=list)


class StudyPlanModule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    week: int
    title: str
    description: str = ""
    topics: list[StudyTopic] = Field(default_factory=list)
    estimated_hours: float = Field(default=0, alias="estimatedHours")


class JobDetails(BaseModel):
    """Vacancy the career tab prepares a plan and a test for."""

    title: str
    description: str = ""
    requirements: str = ""


class ArtifactStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


PAYLOAD_FIELDS = ("quiz", "infographic", "slides", "flashcards", "video", "audio_project", "image", "study_plan")


class GeneratedArtifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    mode: StudioMode
    title: str
    status: ArtifactStatus = ArtifactStatus.LOADING
    # raw model text while unparsed, display message once a payload is attached
    content: str = ""
    quiz: list[QuizQuestion] | None = None
    infographic: InfographicSpec | None = None
    slides: SlidesSpec | None = None
    flashcards: FlashcardsSpec | None = None
    video: VideoSpec | None = None
    audio_project: AudioProject | None = Field(default=None, alias="audioProject")
    image: str | None = None
    study_plan: list[StudyPlanModule] | None = Field(default=None, alias="studyPlan")

    @model_validator(mode="after")
    def _single_payload(self):
        attached = [name for name in PAYLOAD_FIELDS if getattr(self, name) is not None]
        if len(attached) > 1:
            raise ValueError(f"an artifact carries at most one payload, got {attached}")
        return self

    def payload_name(self) -> str | None:
        for name in PAYLOAD_FIELDS:
            if getattr(self, name) is not None:
                return name
        return None


class GenerateRequest(BaseModel):
    mode: StudioMode
    prompt: str
    sources: list[Source] = Field(default_factory=list)
    history: list[ChatMessage] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str | None = None
    image: str | None = None
    video: VideoSpec | None = None
    audio_project: AudioProject | None = Field(default=None, alias="audioProject")
    slides: SlidesSpec | None = None
    error: str | None = None

    def to_wire(self) -> dict:
        # only top-level absences are dropped; per-scene null placeholders stay on the wire
        return {k: v for k, v in self.model_dump(mode="json", by_alias=True).items() if v is not None}
