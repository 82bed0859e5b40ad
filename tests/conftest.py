import base64
from types import SimpleNamespace
from typing import List, Optional, Sequence

import pytest

from credentials import API_KEY_VAR

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake image body"
PNG_BASE64 = base64.b64encode(PNG_BYTES).decode("ascii")


class FakeMenu:
    """Scripted stand-in for RichMenu that records what it was asked."""

    def __init__(self, choices: Sequence[str] = (), texts: Sequence[str] = (), confirms: Sequence[bool] = ()):
        self.choices = list(choices)
        self.texts = list(texts)
        self.confirms = list(confirms)
        self.menus: List[List[str]] = []
        self.text_prompts: List[str] = []
        self.rejections: List[str] = []

    def choose_one(self, message, options):
        self.menus.append(list(options))
        answer = self.choices.pop(0)
        assert answer in options, f"{answer!r} not offered in {options!r}"
        return answer

    def read_text(self, message, validator=None, default=None, password=False):
        self.text_prompts.append(message)
        while True:
            answer = self.texts.pop(0)
            problem = validator(answer) if validator else None
            if problem is None:
                return answer
            self.rejections.append(problem)

    def confirm(self, message, default=True):
        return self.confirms.pop(0)


def image_call(result: Optional[str] = PNG_BASE64, call_id: str = "abc123"):
    return SimpleNamespace(type="image_generation_call", result=result, id=call_id)


def responses_payload(*items):
    return SimpleNamespace(output=list(items))


def images_payload(*b64_values):
    return SimpleNamespace(data=[SimpleNamespace(b64_json=value) for value in b64_values])


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def no_api_key(monkeypatch):
    # setenv first so the key written during the test is removed afterwards
    monkeypatch.setenv(API_KEY_VAR, "placeholder")
    monkeypatch.delenv(API_KEY_VAR)


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv(API_KEY_VAR, "sk-test")
