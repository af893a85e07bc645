import json

import pytest


@pytest.fixture
def podcast_json():
    def make(n: int) -> str:
        dialogue = [{"speaker": "Host A" if i % 2 == 0 else "Host B", "text": f"Реплика {i}"} for i in range(n)]
        return json.dumps({"title": "Погружение", "dialogue": dialogue}, ensure_ascii=False)

    return make
