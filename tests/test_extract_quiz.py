import json

from miraverse.services.extract_service import (
    QUIZ_READY_MESSAGE,
    extract_quiz,
    normalize_json_text,
    quiz_from_json,
    quiz_from_markdown,
    quiz_json_candidates,
)


def _quiz(*questions):
    return json.dumps({"questions": list(questions)}, ensure_ascii=False)


def test_fenced_json_block_is_parsed():
    raw = '```json\n{"questions":[{"question":"2+2?","options":["3","4","5","6"],"answer":1}]}\n```'
    parsed = extract_quiz(raw)
    assert parsed.message == QUIZ_READY_MESSAGE
    assert len(parsed.questions) == 1
    q = parsed.questions[0]
    assert q.question == "2+2?"
    assert q.options == ["3", "4", "5", "6"]
    assert q.answer == 1
    assert q.user_answer is None


def test_plain_prose_returns_raw_message():
    parsed = extract_quiz("Вот ответ без JSON")
    assert parsed.questions is None
    assert parsed.message == "Вот ответ без JSON"


def test_json_surrounded_by_prose_uses_brace_slice():
    raw = "Конечно! Вот тест:\n" + _quiz({"question": "Q?", "options": ["a", "b", "c", "d"], "answer": 2}) + "\nУдачи!"
    questions = quiz_from_json(raw)
    assert [q.answer for q in questions] == [2]


def test_trailing_comma_inside_fence_matches_clean_input():
    clean = _quiz(
        {"question": "Q1", "options": ["a", "b", "c", "d"], "answer": 3},
        {"question": "Q2", "options": ["e", "f", "g", "h"], "answer": 0},
    )
    noisy = '```json\n{"questions": [\n {"question": "Q1", "options": ["a","b","c","d",], "answer": 3},\n' \
            ' {"question": "Q2", "options": ["e","f","g","h"], "answer": 0},\n]}\n```'
    assert extract_quiz(noisy).questions == extract_quiz(clean).questions


def test_answer_is_coerced():
    raw = _quiz(
        {"question": "missing", "options": ["a", "b", "c", "d"]},
        {"question": "string", "options": ["a", "b", "c", "d"], "answer": "2"},
        {"question": "word", "options": ["a", "b", "c", "d"], "answer": "B"},
        {"question": "float", "options": ["a", "b", "c", "d"], "answer": 3.0},
        {"question": "range", "options": ["a", "b", "c", "d"], "answer": 9},
    )
    answers = [q.answer for q in extract_quiz(raw).questions]
    assert answers == [0, 2, 0, 3, 0]


def test_invalid_questions_are_dropped():
    raw = _quiz(
        {"question": "three options", "options": ["a", "b", "c"], "answer": 0},
        {"question": 42, "options": ["a", "b", "c", "d"]},
        {"question": "numbers", "options": [1, 2, 3, 4]},
        {"question": "ok", "options": ["a", "b", "c", "d"], "answer": 1, "explanation": "because"},
    )
    questions = extract_quiz(raw).questions
    assert len(questions) == 1
    assert questions[0].question == "ok"
    assert questions[0].explanation == "because"


def test_all_invalid_json_falls_back_to_raw():
    raw = _quiz({"question": "bad", "options": ["a", "b"]})
    parsed = extract_quiz(raw)
    assert parsed.questions is None
    assert parsed.message == raw


def test_questions_fragment_is_recovered_from_broken_object():
    raw = 'Ответ: {"meta": oops, "questions": [{"question": "Q", "options": ["1","2","3","4"], "answer": 1}] и ещё текст'
    questions = quiz_from_json(raw)
    assert questions is not None
    assert questions[0].answer == 1


def test_candidates_are_ordered_strictest_first():
    raw = 'x {"questions": []} y'
    candidates = quiz_json_candidates(raw)
    assert candidates[0] == '{"questions": []}'
    assert candidates[1] == normalize_json_text('{"questions": []}')


def test_normalize_json_text():
    assert normalize_json_text('```json\n{"a": [1, 2,\n ],\n}\n```') == '{"a": [1, 2]}'


def test_markdown_quiz_marks_correct_option():
    raw = """**1) Столица Франции?**
A) Берлин
B) Париж ✅
C) Рим
D) Мадрид
"""
    parsed = extract_quiz(raw)
    assert parsed.message == QUIZ_READY_MESSAGE
    assert len(parsed.questions) == 1
    q = parsed.questions[0]
    assert q.question == "Столица Франции?"
    assert q.options[1] == "Париж ✅"
    assert q.answer == 1


def test_markdown_quiz_cyrillic_letters_and_keywords():
    raw = """## Тест
1. Сколько будет 2+2?
а) 3
б) 4 (верно)
в) 5
г) 6
2) Цвет неба?
- А) Синий — правильный ответ
- Б) Зелёный
- В) Красный
- Г) Жёлтый
"""
    questions = quiz_from_markdown(raw)
    assert [q.answer for q in questions] == [1, 0]
    assert questions[1].options[1] == "Зелёный"


def test_markdown_incomplete_question_is_not_flushed():
    raw = """1) First?
A) a
B) b
C) c
D) d
2) Second with two options?
A) a
B) b
3) Third?
A) w
B) x
C) y
D) z correct
"""
    questions = quiz_from_markdown(raw)
    assert [q.question for q in questions] == ["First?", "Third?"]
    assert questions[1].answer == 3


def test_markdown_ignores_options_beyond_four():
    raw = "1) Q?\nA) a\nB) b\nC) c\nD) d\nA) extra ✅\n"
    questions = quiz_from_markdown(raw)
    assert questions[0].options == ["a", "b", "c", "d"]
    assert questions[0].answer == 0


def test_markdown_without_questions_is_none():
    assert quiz_from_markdown("A) orphan option\nпросто текст") is None


def test_oversized_answer_falls_back_to_first_option():
    raw = _quiz(
        {"question": "huge", "options": ["a", "b", "c", "d"], "answer": 10**400},
        {"question": "negative", "options": ["a", "b", "c", "d"], "answer": -(10**400)},
        {"question": "inf", "options": ["a", "b", "c", "d"], "answer": "1e400"},
    )
    answers = [q.answer for q in extract_quiz(raw).questions]
    assert answers == [0, 0, 0]


def test_integer_past_digit_limit_does_not_raise():
    raw = '{"questions": [{"question": "q", "options": ["a", "b", "c", "d"], "answer": ' + "7" * 5000 + "}]}"
    parsed = extract_quiz(raw)
    assert parsed.questions is None or parsed.questions[0].answer == 0
