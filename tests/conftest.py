"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from openai.types.chat import ChatCompletion  # noqa: E402


def _completion(content: Optional[str] = None, tool_calls: Optional[List[Dict[str, Any]]] = None) -> ChatCompletion:
    message: Dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": call["id"],
                "type": "function",
                "function": {"name": call["name"], "arguments": call.get("arguments", "{}")},
            }
            for call in tool_calls
        ]
    return ChatCompletion.model_validate(
        {
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "created": 0,
            "model": "test-model",
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "tool_calls" if tool_calls else "stop",
                    "message": message,
                }
            ],
        }
    )


class FakeClient:
    """Stands in for ``openai.OpenAI``: records request kwargs, replays scripted replies."""

    def __init__(self, replies: List[Any]):
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def completion():
    """Factory for ChatCompletion responses: completion(content=..., tool_calls=[{id, name, arguments}])."""
    return _completion


@pytest.fixture
def fake_client():
    """Factory for FakeClient instances: fake_client([completion(...), ...])."""
    return FakeClient


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def store_path(tmp_path: Path) -> Path:
    """Path of a not-yet-existing message store inside a temp dir."""
    return tmp_path / "data" / "db.json"


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in list(os.environ):
        if var == "CHAT_AGENT_CONFIG" or var.startswith("CHAT_AGENT__") or var == "OPENAI_API_KEY":
            monkeypatch.delenv(var, raising=False)
    yield
