"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Settings are cached on first import, so the environment is fixed up front
os.environ["OPENAI_API_KEY"] = "sk-test-0123456789abcdefghijklmnop"
os.environ["APP_ENV"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["STORAGE_OBFUSCATE"] = "false"
os.environ.pop("STORAGE_MAX_AGE_SECONDS", None)
os.environ["OPENAI_MAX_RETRIES"] = "2"

import httpx
from openai.types.chat import ChatCompletion

from routers import openai_router
from services import openai_service, session_service
from services.storage_service import MemoryStore, SecureStorage
from utils.logging_config import ErrorLogger


def make_completion(content):
    return ChatCompletion.model_validate({
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    })


def make_status_error(error_cls, status_code):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return error_cls(f"status {status_code}", response=response, body=None)


class FakeCompletions:
    def __init__(self):
        self.results = []
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if not self.results:
            raise AssertionError("Unexpected completion request")
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeClient:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = self

    def queue(self, *results):
        """Queue completion contents (str) or exceptions to be returned in order"""
        for result in results:
            self.completions.results.append(make_completion(result) if isinstance(result, str) else result)

    @property
    def calls(self):
        return self.completions.calls


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    openai_service.rate_limiter.reset()
    openai_router.ip_rate_limiter.reset()
    ErrorLogger.get_instance().reset()
    session_service._positions.clear()
    session_service._reports.clear()
    monkeypatch.setattr(session_service, "storage", SecureStorage(MemoryStore()))
    yield


@pytest.fixture
def fake_openai(monkeypatch):
    client = FakeClient()
    delays = []

    async def no_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(openai_service, "get_client", lambda: client)
    monkeypatch.setattr(openai_service, "backoff_sleep", no_sleep)
    client.delays = delays
    return client


@pytest.fixture
def api_client():
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
