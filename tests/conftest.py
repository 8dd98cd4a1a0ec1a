"""shared fakes: a controllable clock, a scripted http session and a scripted llm backend"""

from typing import Any, Dict, List, Optional

import pytest
import requests

from chainsage.utils.llm_backend.base import LLMBackend, LLMResponse


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._body = body
        self._text = text

    def json(self):
        if self._text is not None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._body


class FakeSession:
    """maps a url path to a response (or an exception) and records every call"""

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        path = url.split("://", 1)[-1]
        path = path[path.index("/"):] if "/" in path else "/"
        self.calls.append({"path": path, "params": dict(params or {}), "timeout": timeout})
        route = self.routes.get(path)
        if route is None:
            return FakeResponse(404, {"message": "Not found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(200, route)

    def count(self, path: str) -> int:
        return sum(1 for call in self.calls if call["path"] == path)

    def close(self):
        self.closed = True


class FakeBackend(LLMBackend):
    """returns scripted replies in order; an exception in the script is raised"""

    provider = "fake"

    def __init__(self, replies=None, model: str = "fake-model"):
        super().__init__(model, max_retries=0)
        self.replies = list(replies or [])
        self.prompts: List[str] = []
        self.system_prompts: List[Optional[str]] = []

    def generate(self, prompt, system_prompt=None, max_tokens=4096, temperature=0.7, **kwargs):
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(text=reply, prompt_tokens=10, output_tokens=5, model=self.model)

    def is_available(self) -> bool:
        return True


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def make_backend():
    return FakeBackend
