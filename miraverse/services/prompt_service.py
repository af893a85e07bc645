from miraverse.core.config import settings
from miraverse.core.models import ChatMessage, JobDetails, Role, Source, StudioMode

BASE_SYSTEM_PROMPT = """Ты — Miraverse, русскоязычный тьютор и исследователь.
- Отвечай лаконично, но содержательно.
- Всегда опирайся только на предоставленные источники, цитируй их смыслами, а не ссылками.
- Стиль: дружелюбный, уверенный, без излишней формальности.
- Показывай структурированные списки и подзаголовки, где это повышает читаемость."""

MODE_GUIDES: dict[StudioMode, str] = {
    StudioMode.CHAT: "Кратко ответь на вопрос, если нужно предложи дальнейшие шаги обучения.",
    StudioMode.AUDIO: (
        "Role: You are an expert podcast producer and scriptwriter. Task: Create a 'Deep Dive' audio script "
        "strictly based on source documents. Characters: Host A (Guide, knowledgeable) and Host B (Color, curious). "
        "Guidelines: 1. LANGUAGE: STRICTLY RUSSIAN (Русский). 2. LENGTH: Generate a 10-MINUTE SCRIPT "
        "(approx 2000 words). Do not summarize; go deep. 3. Style: Natural conversation, contractions, "
        "interjections. 4. Structure: Hook -> Deep Dive Body (explore nuances, give examples, debate points) -> "
        "Conclusion. IMPORTANT: RETURN ONLY JSON. Format: "
        '{"title":"Podcast Title","dialogue":[{"speaker":"Host A","text":"..."},{"speaker":"Host B","text":"..."}]}. '
        "Use only the speakers Host A and Host B. Generate at least 60-80 detailed exchanges."
    ),
    StudioMode.VIDEO: (
        "Role: You are an expert Instructional Designer and Virtual Lecturer. Task: Create a script for a "
        "'Video Learning Guide' (slides + voiceover). Audience: Students/professionals. Guidelines: "
        "1. Structure: Title -> Agenda -> Body (1 concept/slide) -> Summary. 2. Visual Instructions: Explicitly "
        "design the slide. Format: 'HEADER: [Text] | BULLETS: [3-4 points] | GRAPHIC: [Chart/Diagram description]'. "
        "Keep text minimal. 3. Audio: Clear, professional. Do NOT just read bullets; explain context. "
        "Fidelity: Only use source concepts. IMPORTANT: RETURN ONLY JSON. Format: "
        '{"title":"...","scenes":[{"headline":"Slide Title (Russian, concise, max 7 words)",'
        '"text":"Narration text (Russian)...","visual":"Slide description (Russian) using HEADER | BULLETS | '
        'GRAPHIC format..."}]}. Generate 8-12 scenes.'
    ),
    StudioMode.MINDMAP: (
        "Верни ментальную карту в виде вложенного списка: главные узлы, подузлы, примеры. "
        "Не более 3 уровней вложенности."
    ),
    StudioMode.REPORT: (
        "Сформируй аналитический отчёт: цель, ключевые выводы, аргументы, риски/ограничения, "
        "рекомендации, список действий."
    ),
    StudioMode.FLASHCARDS: (
        "Верни ТОЛЬКО JSON без пояснений. Формат: "
        '{"title":"...","cards":[{"front":"Вопрос","back":"Ответ"}]}. '
        "8–12 карточек, коротко, по одному факту на карточку."
    ),
    StudioMode.QUIZ: (
        "Сделай мини-тест из 8–10 вопросов с выбором одного из четырёх вариантов. "
        "Отметь правильный вариант каждого вопроса."
    ),
    StudioMode.INFOGRAPHIC: (
        'Верни ТОЛЬКО JSON без пояснений. Формат: {"title":"...","blocks":[{"title":"...","content":"..."}],'
        '"takeaway":"..."}. 3-5 блоков. Без markdown, без текста вне JSON.'
    ),
    StudioMode.SLIDES: (
        'Верни ТОЛЬКО JSON без пояснений. Формат: {"title":"...","slides":[{"title":"...","bullets":["..."]}]}. '
        "8-12 слайдов, 3-5 bullets каждый. Без markdown, без текста вне JSON."
    ),
    StudioMode.JOB_PLAN: (
        "Ты — карьерный наставник. По описанию вакансии составь учебный план подготовки. "
        "Верни ТОЛЬКО JSON-массив без пояснений. Формат: "
        '[{"week":1,"title":"...","description":"...","estimatedHours":6,'
        '"topics":[{"name":"...","resources":[{"title":"...","url":"...","type":"video|book|article|course"}]}]}]. '
        "4-8 недель."
    ),
    StudioMode.JOB_QUIZ: (
        "Ты — технический интервьюер. Составь тест по требованиям вакансии. "
        "Верни ТОЛЬКО JSON-массив без пояснений. Формат: "
        '[{"question":"...","options":["...","...","...","..."],"answer":0,"explanation":"..."}]. '
        "Ровно 4 варианта, answer — индекс правильного (0-3). Количество вопросов указано в запросе."
    ),
}

# Default user prompts the studio panel sends for each mode.
STUDIO_PROMPTS: dict[StudioMode, str] = {
    StudioMode.CHAT: "",
    StudioMode.AUDIO: "Создай аудиопересказ 3–5 минут по источникам.",
    StudioMode.VIDEO: "Сделай видеосценарий с подсказками визуала.",
    StudioMode.MINDMAP: "Построй ментальную карту: 2–3 уровня вложенности.",
    StudioMode.REPORT: "Сформируй аналитический отчёт с выводами и рекомендациями.",
    StudioMode.FLASHCARDS: "Сделай 10 карточек Вопрос/Ответ.",
    StudioMode.QUIZ: (
        'Верни ТОЛЬКО JSON без пояснений и текста. Формат: {"questions":[{"question":"...",'
        '"options":["вариант1","вариант2","вариант3","вариант4"],"answer":0}]}. 5-10 вопросов, options ровно 4, '
        "answer — индекс правильного (0-3). Без маркдауна, без троеточий, без текста вокруг."
    ),
    StudioMode.INFOGRAPHIC: "Опиши структуру инфографики и данные для неё.",
    StudioMode.SLIDES: "Составь план презентации на 10 слайдов с заметками спикера.",
    StudioMode.JOB_PLAN: "Создай учебный план.",
    StudioMode.JOB_QUIZ: "Создай тест.",
}

STUDIO_TITLES: dict[StudioMode, str] = {
    StudioMode.AUDIO: "Подкаст",
    StudioMode.VIDEO: "Видеопересказ",
    StudioMode.MINDMAP: "Ментальная карта",
    StudioMode.REPORT: "Отчеты",
    StudioMode.FLASHCARDS: "Карточки",
    StudioMode.QUIZ: "Тест",
    StudioMode.INFOGRAPHIC: "Инфографика",
    StudioMode.SLIDES: "Презентация",
    StudioMode.JOB_PLAN: "Учебный план",
    StudioMode.JOB_QUIZ: "Тест по вакансии",
}

NO_SOURCES = "(источники не заданы)"


def source_header(src: Source) -> str:
    origin = f": {src.url}" if src.url else ""
    return f"# {src.title} ({src.type.value}{origin})"


def trim_sources(sources: list[Source], limit: int | None = None) -> str:
    """Concatenate sources under a character budget, truncating the last one that fits."""
    limit = settings.SOURCE_CONTEXT_LIMIT if limit is None else limit
    blocks = []
    total = 0
    for src in sources:
        header = source_header(src)
        remaining = max(0, limit - total - len(header))
        if remaining <= 0:
            break
        block = f"{header}\n{src.content[:remaining]}"
        total += len(block)
        blocks.append(block)
    return "\n\n".join(blocks)


def render_history(history: list[ChatMessage]) -> str:
    return "\n".join(
        f"{'Пользователь' if m.role == Role.USER else 'ИИ'}: {m.content}" for m in history
    )


def build_prompt(
    mode: StudioMode,
    prompt: str,
    sources: list[Source],
    history: list[ChatMessage] | None = None,
) -> str:
    context = trim_sources(sources)
    return (
        f"Режим: {mode.value}.\n{MODE_GUIDES[mode]}\n\n"
        f"Источники:\n{context or NO_SOURCES}\n\n"
        f"Ход диалога:\n{render_history(history or [])}\n\n"
        f"Запрос пользователя:\n{prompt}"
    )


# --- career tab ---

JOB_QUIZ_DEFAULT_COUNT = 10


def job_plan_prompt(job: JobDetails) -> str:
    """The vacancy itself, as JSON, is the whole request for a study plan."""
    return job.model_dump_json()


def job_quiz_prompt(job: JobDetails, count: int = JOB_QUIZ_DEFAULT_COUNT) -> str:
    if count < 1:
        raise ValueError("question count must be positive")
    requirements = job.requirements.strip() or job.description.strip() or "не указаны"
    return f"Вакансия: {job.title.strip()}. Требования: {requirements}. Количество вопросов: {count}"


def job_artifact_title(mode: StudioMode, job: JobDetails) -> str:
    return f"{STUDIO_TITLES[mode]}: {job.title.strip()}" if job.title.strip() else STUDIO_TITLES[mode]
