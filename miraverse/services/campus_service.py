"""Campus research labs: clustering and research-direction prompts.

Labs are grouped by specialization into clusters; each cluster's topics are
the normalized activities of its labs. The direction prompts ask the model to
synthesize a new interdisciplinary research direction from selected topics.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from miraverse.core.config import settings
from miraverse.core.models import Source, SourceKind

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "campus_labs.json"

SPEC_KEY = "Специализация"
OTHER_SPEC = "Другие направления"
NO_SPEC = "Без специализации"
SAMPLE_LAB_COUNT = 6
TOPIC_SAMPLE_LABS = 3

ANSWER_FORMAT = """Важно: не добавляй приветствий, обращений по имени или фраз вроде "Привет, я Miraverse". Сразу дай ответ по структуре.

Формат ответа:
1. Название направления.
2. Краткое описание (2-3 предложения).
3. Ключевые научные вопросы и гипотезы.
4. Сферы применения и потенциальный эффект.
5. Необходимые компетенции и инфраструктура.
6. Какие лаборатории кампуса ближе всего (по смыслу) — добавь руководителя каждой лаборатории.
7. Риски, этика и ограничения.
8. Первые 3 шага для старта проекта.
9. Какие компании в России могут купить результаты исследования (1–3 крупных компании)."""


class LabProgram(BaseModel):
    university: str | None = None
    program: str


class Lab(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    url: str = ""
    name: str | None = None
    activity: str | None = None
    attributes: dict[str, str | list[str]] = Field(default_factory=dict)
    research_topics: list[str] = Field(default_factory=list, alias="researchTopics")
    educational_programs: list[LabProgram] = Field(default_factory=list, alias="educationalPrograms")
    network_programs: list[str] = Field(default_factory=list, alias="networkPrograms")
    partners: dict[str, list[str]] = Field(default_factory=dict)
    strategic_projects: list[str] = Field(default_factory=list, alias="strategicProjects")
    supervisor: str | None = None

    def specializations(self) -> list[str]:
        value = self.attributes.get(SPEC_KEY)
        if isinstance(value, list):
            return value or [NO_SPEC]
        return [value] if value else [NO_SPEC]


class TopicMeta(BaseModel):
    count: int = 0
    labs: list[str] = Field(default_factory=list)


class LabCluster(BaseModel):
    name: str
    topics: list[str]
    topic_meta: dict[str, TopicMeta] = Field(default_factory=dict)
    labs: list[Lab] = Field(default_factory=list)


class Profile(BaseModel):
    name: str = ""
    background: str = ""
    skills: str = ""
    goals: str = ""
    constraints: str = ""

    def render(self) -> str:
        rows = [
            ("Имя", self.name),
            ("Бэкграунд", self.background),
            ("Навыки", self.skills),
            ("Цели", self.goals),
            ("Ограничения", self.constraints),
        ]
        return "\n".join(f"{label}: {value}" for label, value in rows if value.strip())


def load_labs(path: str | Path | None = None) -> list[Lab]:
    """Labs from the JSON dataset (``{"labs": [...]}``), unnamed ones skipped."""
    path = Path(path or settings.CAMPUS_DATA_PATH or DEFAULT_DATA_PATH)
    data = json.loads(path.read_text(encoding="utf-8"))
    labs = [Lab.model_validate(item) for item in data.get("labs", [])]
    named = [lab for lab in labs if lab.name]
    logger.info("loaded %d labs from %s", len(named), path)
    return named


@lru_cache(maxsize=1)
def default_labs() -> tuple[Lab, ...]:
    return tuple(load_labs())


def normalize_spec(value: str) -> str:
    cleaned = re.sub(r"\s+", " ", re.sub(r"[.…]+$", "", value)).strip()
    if not cleaned or cleaned in ("-", "—"):
        return OTHER_SPEC
    if cleaned == "Гуманитарные науки, культура народов Евразии":
        return "Гуманитарные науки"
    return cleaned


def normalize_activity(value: str | None) -> str:
    if not value:
        return ""
    cleaned = re.sub(r"\s+", " ", value).strip()
    cleaned = re.sub(r"(?:,?\s*(Университет|Специализация))+$", "", cleaned, flags=re.IGNORECASE)
    return re.sub(r"[,\-–—:;]+$", "", cleaned).strip()


def cluster_labs(labs: list[Lab]) -> list[LabCluster]:
    clusters: dict[str, LabCluster] = {}
    for lab in labs:
        activity = normalize_activity(lab.activity)
        for spec in lab.specializations():
            name = normalize_spec(spec)
            cluster = clusters.setdefault(name, LabCluster(name=name, topics=[]))
            cluster.labs.append(lab)
            if not activity:
                continue
            meta = cluster.topic_meta.setdefault(activity, TopicMeta())
            meta.count += 1
            if lab.name and len(meta.labs) < TOPIC_SAMPLE_LABS and lab.name not in meta.labs:
                meta.labs.append(lab.name)
    out = []
    for cluster in clusters.values():
        cluster.topics = sorted(cluster.topic_meta)
        if cluster.topics:
            out.append(cluster)
    return sorted(out, key=lambda c: c.name)


def all_topics(clusters: list[LabCluster]) -> list[str]:
    return sorted({topic for cluster in clusters for topic in cluster.topics})


def labs_for_topics(labs: list[Lab], topics: list[str]) -> list[Lab]:
    wanted = set(topics)
    return [lab for lab in labs if normalize_activity(lab.activity) in wanted]


def _lab_card(lab: Lab) -> str:
    spec = lab.attributes.get(SPEC_KEY) or "—"
    if isinstance(spec, list):
        spec = ", ".join(spec)
    return (
        f"Лаборатория: {lab.name}\n"
        f"Руководитель лаборатории: {(lab.supervisor or '').strip() or '—'}\n"
        f"Специализация: {spec}\n"
        f"Направления деятельности: {normalize_activity(lab.activity) or '—'}\n"
        f"Тематики: {'; '.join(lab.research_topics) or '—'}"
    )


def build_lab_sources(labs: list[Lab]) -> list[Source]:
    """The whole lab selection as a single text source."""
    return [
        Source(
            id="campus-data",
            title="Данные кампуса (лаборатории и направления деятельности)",
            type=SourceKind.TEXT,
            content="\n\n".join(_lab_card(lab) for lab in labs),
        )
    ]


def build_direction_prompt(topics: list[str], profile: Profile) -> str:
    topics_text = ", ".join(topics) if topics else "(темы не выбраны)"
    return (
        "Сгенерируй новое междисциплинарное научное направление на основе выбранных тем.\n\n"
        f"Выбранные темы: {topics_text}.\n\n"
        f"Профиль пользователя:\n{profile.render() or '(профиль не заполнен)'}\n\n"
        f"{ANSWER_FORMAT}"
    )


def build_profile_prompt(profile: Profile, topics_catalog: list[str]) -> str:
    catalog = "; ".join(topics_catalog) if topics_catalog else "(темы отсутствуют)"
    return (
        "На основе профиля пользователя подбери 3–5 наиболее подходящих тем из списка тем кампуса ниже "
        "и сгенерируй новое междисциплинарное научное направление. Не выводи весь список тем. "
        "Кратко перечисли выбранные темы внутри пункта 1 или 2.\n\n"
        f"Профиль пользователя:\n{profile.render() or '(профиль не заполнен)'}\n\n"
        f"Темы кампуса:\n{catalog}\n\n"
        f"{ANSWER_FORMAT}"
    )


def direction_request(
    labs: list[Lab],
    topics: list[str],
    profile: Profile,
    cluster: str | None = None,
) -> tuple[str, list[Source]]:
    """Prompt and lab context for a direction request.

    With topics, the labs working on them form the context. Without topics
    the model picks them from the profile and sees every lab.
    """
    if not topics:
        return build_profile_prompt(profile, all_topics(cluster_labs(labs))), build_lab_sources(labs)

    selected = labs_for_topics(labs, topics)
    if not selected:
        clusters = {c.name: c for c in cluster_labs(labs)}
        pool = clusters[cluster].labs if cluster in clusters else labs
        selected = pool[:SAMPLE_LAB_COUNT]
    return build_direction_prompt(topics, profile), build_lab_sources(selected)
