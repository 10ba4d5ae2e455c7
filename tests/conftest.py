"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from eldercare.care.devices import PermissionDeniedError
from eldercare.llm.models import ModelManager


class FakeGenerator:
    """Records every call and returns a canned reply (or raises it)."""

    def __init__(self, reply: Any = "That's wonderful! Did you take your medicine?") -> None:
        self.reply = reply
        self.calls: list[tuple[str, Any, list]] = []

    async def __call__(self, prompt_text, role, history) -> str:
        self.calls.append((prompt_text, role, list(history)))
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply


class FakeSession:
    def __init__(self, audio: bytes) -> None:
        self.audio = audio
        self.stopped = False

    async def stop(self) -> bytes:
        self.stopped = True
        return self.audio


class FakeMicrophone:
    def __init__(self, audio: bytes = b"RIFFfake-audio", *, deny: bool = False) -> None:
        self.audio = audio
        self.deny = deny
        self.sessions: list[FakeSession] = []

    async def open(self) -> FakeSession:
        if self.deny:
            raise PermissionDeniedError("microphone permission denied")
        session = FakeSession(self.audio)
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_generate() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def alerts() -> list[str]:
    return []


@pytest.fixture(autouse=True)
def _reset_model_manager():
    """Keep the ModelManager singleton from leaking between tests."""
    ModelManager._instance = None
    yield
    ModelManager._instance = None


@pytest.fixture
def make_generator():
    """Factory for generators with a custom reply or exception."""
    return FakeGenerator


@pytest.fixture
def make_microphone():
    return FakeMicrophone
