import json

import pytest

from miraverse.services.campus_service import (
    DEFAULT_DATA_PATH,
    OTHER_SPEC,
    Profile,
    all_topics,
    build_direction_prompt,
    build_lab_sources,
    cluster_labs,
    direction_request,
    labs_for_topics,
    load_labs,
    normalize_activity,
    normalize_spec,
)


@pytest.fixture(scope="module")
def labs():
    return load_labs(DEFAULT_DATA_PATH)


def test_unnamed_labs_are_skipped(labs):
    assert len(labs) == 5
    assert all(lab.name for lab in labs)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Геномные технологии в медицине, Университет", "Геномные технологии в медицине"),
        ("Катализ и нефтехимия;", "Катализ и нефтехимия"),
        ("Языки  и культура, Специализация", "Языки и культура"),
        (None, ""),
    ],
)
def test_normalize_activity(raw, expected):
    assert normalize_activity(raw) == expected


def test_normalize_spec():
    assert normalize_spec("Цифровые технологии.") == "Цифровые технологии"
    assert normalize_spec("Гуманитарные науки, культура народов Евразии") == "Гуманитарные науки"
    assert normalize_spec(" - ") == OTHER_SPEC


def test_cluster_labs(labs):
    clusters = cluster_labs(labs)
    assert [c.name for c in clusters] == [
        "Гуманитарные науки",
        "Науки о Земле",
        "Науки о жизни",
        "Химия и новые материалы",
        "Цифровые технологии",
    ]
    digital = clusters[-1]
    assert [lab.id for lab in digital.labs] == [3, 4]
    assert digital.topics == ["Искусственный интеллект и анализ данных", "Экология и устойчивое развитие"]
    meta = digital.topic_meta["Экология и устойчивое развитие"]
    assert meta.count == 1
    assert meta.labs == ["Лаборатория климатического мониторинга"]
    assert len(all_topics(clusters)) == 5


def test_labs_for_topics(labs):
    picked = labs_for_topics(labs, ["Экология и устойчивое развитие"])
    assert [lab.id for lab in picked] == [4]


def test_lab_sources_are_one_text_source(labs):
    (source,) = build_lab_sources(labs[3:4])
    assert source.id == "campus-data"
    assert "Руководитель лаборатории: —" in source.content
    assert "Специализация: Науки о Земле, Цифровые технологии" in source.content
    assert "Тематики: Углеродные полигоны; Дистанционное зондирование" in source.content


def test_direction_prompt_includes_topics_and_profile():
    prompt = build_direction_prompt(["Катализ"], Profile(name="Аня", skills="Python"))
    assert "Выбранные темы: Катализ." in prompt
    assert "Имя: Аня\nНавыки: Python" in prompt
    assert "Бэкграунд" not in prompt


def test_direction_request_with_topics(labs):
    prompt, sources = direction_request(labs, ["Катализ и нефтехимия"], Profile())
    assert "(профиль не заполнен)" in prompt
    assert "Лаборатория каталитических процессов" in sources[0].content
    assert "Лаборатория биоинформатики" not in sources[0].content


def test_direction_request_unknown_topic_falls_back_to_cluster(labs):
    _, sources = direction_request(labs, ["Космос"], Profile(), cluster="Науки о жизни")
    assert "Лаборатория биоинформатики и геномики" in sources[0].content
    assert "Лаборатория каталитических процессов" not in sources[0].content


def test_direction_request_profile_only(labs):
    prompt, sources = direction_request(labs, [], Profile(goals="исследовать климат"))
    assert "Темы кампуса:" in prompt
    assert "Экология и устойчивое развитие" in prompt
    assert "Цели: исследовать климат" in prompt
    assert sources[0].content.count("Лаборатория:") == 5


def test_load_labs_from_custom_path(tmp_path):
    path = tmp_path / "labs.json"
    path.write_text(json.dumps({"labs": [{"id": 1, "name": "Лаб", "activity": "Тема"}]}), encoding="utf-8")
    (lab,) = load_labs(path)
    assert lab.specializations() == ["Без специализации"]
