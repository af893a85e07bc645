import os
import base64
from typing import Any, Dict, List

import requests
import streamlit as st

from miraverse.core.models import GenerateResponse, JobDetails, Role, Source, StudioMode
from miraverse.core.state import QuizSession, Workspace
from miraverse.services.prompt_service import (
    JOB_QUIZ_DEFAULT_COUNT,
    STUDIO_PROMPTS,
    STUDIO_TITLES,
    job_artifact_title,
    job_plan_prompt,
    job_quiz_prompt,
)


API_URL = os.getenv("MIRAVERSE_API_URL", "http://api:8000").rstrip("/")

STUDIO_BUTTONS = [
    StudioMode.AUDIO,
    StudioMode.VIDEO,
    StudioMode.MINDMAP,
    StudioMode.REPORT,
    StudioMode.FLASHCARDS,
    StudioMode.QUIZ,
    StudioMode.INFOGRAPHIC,
    StudioMode.SLIDES,
]

CAREER_MODES = (StudioMode.JOB_PLAN, StudioMode.JOB_QUIZ)


def api_get(path: str, **kwargs):
    return requests.get(f"{API_URL}{path}", timeout=30, **kwargs)


def api_post(path: str, **kwargs):
    return requests.post(f"{API_URL}{path}", timeout=600, **kwargs)


def _json_or_raise(r: requests.Response) -> Dict[str, Any]:
    try:
        data = r.json()
    except ValueError:
        r.raise_for_status()
        raise
    if isinstance(data, dict) and data.get("error") and r.status_code >= 400:
        raise RuntimeError(data["error"])
    r.raise_for_status()
    return data


def upload_files(uploaded) -> List[Source]:
    files = [("files", (u.name, u.getvalue(), u.type or "application/octet-stream")) for u in uploaded]
    data = _json_or_raise(api_post("/api/upload", files=files))
    return [Source.model_validate(s) for s in data.get("sources", [])]


def add_by_url(kind: str, url: str) -> Source:
    data = _json_or_raise(api_post(f"/api/{kind}", json={"url": url}))
    return Source.model_validate(data["source"])


def add_text(title: str, text: str) -> Source:
    data = _json_or_raise(api_post("/api/text", json={"title": title, "text": text}))
    return Source.model_validate(data["source"])


def generate_api(ws: Workspace, mode: StudioMode, prompt: str, with_context: bool = True) -> GenerateResponse:
    # career requests go out without the notebook's sources and chat
    payload = {
        "mode": mode.value,
        "prompt": prompt,
        "sources": [s.model_dump(mode="json") for s in ws.available_sources()] if with_context else [],
        "history": [m.model_dump(mode="json") for m in ws.history] if with_context else [],
    }
    r = api_post("/api/generate", json=payload)
    try:
        data = r.json()
    except ValueError:
        r.raise_for_status()
        raise
    # {error} bodies still resolve the artifact; only transport failures raise
    return GenerateResponse.model_validate(data)


def decode_data(value: str) -> bytes:
    """Bytes from a bare base64 string or a ``data:`` URI."""
    if value.startswith("data:"):
        value = value.split(",", 1)[1]
    return base64.b64decode(value)


def run_studio(ws: Workspace, mode: StudioMode, prompt: str | None = None, title: str | None = None, with_context: bool = True):
    if not ws.begin(mode):
        st.warning(f"{STUDIO_TITLES.get(mode, mode.value)} уже генерируется")
        return None
    artifact = ws.start_artifact(mode, title)
    try:
        with st.spinner(f"{artifact.title}: генерация..."):
            resp = generate_api(ws, mode, prompt or STUDIO_PROMPTS.get(mode) or artifact.title, with_context)
        ws.complete_artifact(artifact.id, resp)
    except Exception as e:
        ws.fail_artifact(artifact.id, str(e))
    finally:
        ws.finish(mode)
    return artifact.id


def show_quiz(artifact_id: str, questions) -> None:
    sessions = st.session_state.quiz_sessions
    if artifact_id not in sessions:
        sessions[artifact_id] = QuizSession(questions)
    quiz: QuizSession = sessions[artifact_id]

    for qi, q in enumerate(quiz.questions):
        st.markdown(f"**{qi + 1}. {q.question}**")
        if q.user_answer is None:
            cols = st.columns(2)
            for oi, option in enumerate(q.options):
                if cols[oi % 2].button(option, key=f"quiz-{artifact_id}-{qi}-{oi}"):
                    quiz.answer(qi, oi)
                    st.rerun()
        else:
            for oi, option in enumerate(q.options):
                mark = "✅" if oi == q.answer else ("❌" if oi == q.user_answer else "▫️")
                st.write(f"{mark} {option}")
            if q.explanation:
                st.caption(q.explanation)
    if quiz.finished():
        st.success(f"Результат: {quiz.score()} из {len(quiz.questions)}")


def show_study_plan(modules) -> None:
    total = sum(m.estimated_hours for m in modules)
    st.caption(f"Недель: {len(modules)} · часов: {total:g}")
    for m in modules:
        st.markdown(f"**Неделя {m.week}. {m.title}**")
        if m.description:
            st.write(m.description)
        for topic in m.topics:
            links = ", ".join(f"[{r.title}]({r.url})" if r.url else r.title for r in topic.resources)
            st.markdown(f"- {topic.name}" + (f" ({links})" if links else ""))


def show_artifact(ws: Workspace, artifact_id: str) -> None:
    a = ws.open_artifact(artifact_id)
    if a.quiz:
        show_quiz(a.id, a.quiz)
    elif a.flashcards:
        st.markdown(f"### {a.flashcards.title}")
        for card in a.flashcards.cards:
            with st.expander(card.front):
                st.write(card.back)
    elif a.slides:
        st.markdown(f"### {a.slides.title}")
        for i, slide in enumerate(a.slides.slides, 1):
            st.markdown(f"**{i}. {slide.title}**")
            if slide.image:
                st.image(decode_data(slide.image))
            st.markdown("\n".join(f"- {b}" for b in slide.bullets))
    elif a.infographic:
        st.markdown(f"### {a.infographic.title}")
        for block in a.infographic.blocks:
            st.markdown(f"**{block.title}**\n\n{block.content}")
        if a.infographic.takeaway:
            st.info(a.infographic.takeaway)
    elif a.image:
        st.image(decode_data(a.image))
    elif a.video:
        st.markdown(f"### {a.video.title}")
        for scene in a.video.scenes:
            if scene.headline:
                st.markdown(f"**{scene.headline}**")
            if scene.image:
                st.image(decode_data(scene.image))
            st.write(scene.text)
            if scene.audio:
                st.audio(decode_data(scene.audio), format="audio/wav")
    elif a.audio_project:
        st.markdown(f"### {a.audio_project.title}")
        st.audio(decode_data(a.audio_project.audio_url), format="audio/wav")
    elif a.study_plan:
        show_study_plan(a.study_plan)
    else:
        st.markdown(a.content)


def career_page(ws: Workspace) -> None:
    job = JobDetails(
        title=st.text_input("Вакансия", key="job-title"),
        description=st.text_area("Описание", key="job-description"),
        requirements=st.text_area("Требования", key="job-requirements"),
    )
    count = st.number_input("Вопросов в тесте", min_value=1, max_value=30, value=JOB_QUIZ_DEFAULT_COUNT)
    ready = bool(job.title.strip())

    job_prompts = {
        StudioMode.JOB_PLAN: lambda: job_plan_prompt(job),
        StudioMode.JOB_QUIZ: lambda: job_quiz_prompt(job, int(count)),
    }
    latest = st.session_state.career_artifacts
    for col, (mode, make_prompt) in zip(st.columns(2), job_prompts.items()):
        if col.button(STUDIO_TITLES[mode], key=f"career-{mode.value}", disabled=not ready, use_container_width=True):
            artifact_id = run_studio(ws, mode, make_prompt(), job_artifact_title(mode, job), with_context=False)
            if artifact_id:
                latest[mode] = artifact_id

    for mode in CAREER_MODES:
        artifact_id = latest.get(mode)
        if not artifact_id:
            continue
        artifact = ws.open_artifact(artifact_id)
        st.markdown(f"### {artifact.title}")
        if artifact.study_plan or artifact.quiz:
            show_artifact(ws, artifact_id)
        else:
            st.warning(artifact.content)


def science_page() -> None:
    try:
        data = _json_or_raise(api_get("/api/science/labs"))
    except Exception as e:
        st.error(f"Не удалось загрузить лаборатории: {e}")
        return
    clusters = data.get("clusters", [])
    st.caption(f"Лабораторий: {data.get('labs', 0)}")

    names = [c["name"] for c in clusters]
    cluster = st.selectbox("Кластер", names) if names else None
    topics_pool = next((c["topics"] for c in clusters if c["name"] == cluster), [])
    topics = st.multiselect("Темы", topics_pool)

    with st.expander("Профиль"):
        profile = {
            "name": st.text_input("Имя"),
            "background": st.text_area("Бэкграунд"),
            "skills": st.text_input("Навыки"),
            "goals": st.text_input("Цели"),
            "constraints": st.text_input("Ограничения"),
        }

    if st.button("Сгенерировать направление", use_container_width=True):
        with st.spinner("Синтез направления..."):
            try:
                r = api_post("/api/science/direction", json={"topics": topics, "profile": profile, "cluster": cluster})
                out = r.json()
            except Exception as e:
                out = {"error": str(e)}
        if out.get("error"):
            st.error(out["error"])
        else:
            st.session_state.direction = out.get("text", "")
    if st.session_state.get("direction"):
        st.markdown(st.session_state.direction)


st.set_page_config(page_title="Miraverse", page_icon="🪐", layout="wide")

if "workspace" not in st.session_state:
    st.session_state.workspace = Workspace()
if "quiz_sessions" not in st.session_state:
    st.session_state.quiz_sessions = {}
if "career_artifacts" not in st.session_state:
    st.session_state.career_artifacts = {}
ws: Workspace = st.session_state.workspace

st.markdown("# 🪐 Miraverse")
notebook_tab, career_tab, science_tab = st.tabs(["Блокнот", "Карьера", "Наука кампуса"])

# Sidebar: sources
with st.sidebar:
    st.markdown("## 📚 Источники")
    uploaded = st.file_uploader(
        "Файлы",
        type=["pdf", "txt", "md", "docx"],
        accept_multiple_files=True,
    )
    if st.button("➕ Загрузить", use_container_width=True, disabled=not uploaded):
        with st.spinner("Чтение и резюме..."):
            try:
                for src in upload_files(uploaded):
                    ws.add_source(src)
                st.rerun()
            except Exception as e:
                st.error(f"Загрузка не удалась: {e}")

    link = st.text_input("Ссылка или YouTube")
    if st.button("🔗 Добавить ссылку", use_container_width=True, disabled=not link):
        kind = "youtube" if ("youtube.com" in link or "youtu.be" in link) else "link"
        with st.spinner("Получение..."):
            try:
                ws.add_source(add_by_url(kind, link))
                st.rerun()
            except Exception as e:
                st.error(str(e))

    with st.expander("Вставить текст"):
        text_title = st.text_input("Заголовок")
        text_body = st.text_area("Текст")
        if st.button("Добавить текст", disabled=not text_body.strip()):
            try:
                ws.add_source(add_text(text_title, text_body))
                st.rerun()
            except Exception as e:
                st.error(str(e))

    st.divider()
    if not ws.sources:
        st.caption("Источников пока нет.")
    for src in ws.sources:
        c1, c2 = st.columns([6, 2])
        with c1:
            checked = st.checkbox(src.title, value=src.id in ws.selected, key=f"sel-{src.id}")
            if checked != (src.id in ws.selected):
                ws.toggle_source(src.id)
        with c2:
            if st.button("🗑️", key=f"del-{src.id}"):
                ws.remove_source(src.id)
                st.rerun()


with notebook_tab:
    chat_col, studio_col = st.columns([3, 2])

    with chat_col:
        for msg in ws.history:
            with st.chat_message(msg.role.value):
                st.markdown(msg.content)

        user_text = st.chat_input("Спросите об источниках…")
        if user_text:
            with st.chat_message("user"):
                st.markdown(user_text)
            with st.chat_message("assistant"):
                with st.spinner("Думаю..."):
                    try:
                        resp = generate_api(ws, StudioMode.CHAT, user_text)
                        answer = resp.text or f"Ошибка: {resp.error or 'нет ответа'}"
                    except Exception as e:
                        answer = f"Ошибка: {e}"
                st.markdown(answer)
            # the question goes into history only after it was sent as the prompt
            ws.add_message(Role.USER, user_text)
            ws.add_message(Role.ASSISTANT, answer)

    with studio_col:
        st.markdown("### Студия")
        cols = st.columns(2)
        for i, mode in enumerate(STUDIO_BUTTONS):
            if cols[i % 2].button(STUDIO_TITLES[mode], key=f"studio-{mode.value}", use_container_width=True):
                run_studio(ws, mode)

        st.divider()
        for artifact in ws.artifacts:
            if artifact.mode in CAREER_MODES:
                continue
            label = f"{artifact.title} · {artifact.status.value}"
            with st.expander(label):
                show_artifact(ws, artifact.id)

with career_tab:
    career_page(ws)

with science_tab:
    science_page()
