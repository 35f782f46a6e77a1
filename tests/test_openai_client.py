"""Tests for the OpenAI client helper."""
from __future__ import annotations

import importlib
import sys
from types import ModuleType, SimpleNamespace

import pytest

# Module under test – will be imported lazily inside tests after env setup


class DummyCompletions:  # pragma: no cover – simple stub
    """Records the arguments of ``chat.completions.create``."""

    def __init__(self, content="Hello back"):
        self.calls = []
        self._content = content

    def create(self, **kwargs):  # noqa: D401 – simple stub
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class DummyOpenAI:  # pragma: no cover – simple stub
    """Minimal stand-in for ``openai.OpenAI``."""

    instances: list = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.chat = SimpleNamespace(completions=DummyCompletions())
        DummyOpenAI.instances.append(self)


def _install_openai_stub(monkeypatch):
    """Insert a fake ``openai`` module into ``sys.modules``."""

    fake_openai = ModuleType("openai")
    fake_openai.OpenAI = DummyOpenAI  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "openai", fake_openai)
    DummyOpenAI.instances = []
    return fake_openai


def reload_client_module(monkeypatch):
    """Ensure a fresh import state for openai_client module."""

    monkeypatch.delitem(sys.modules, "portal_analytics.openai_client", raising=False)
    return importlib.import_module("portal_analytics.openai_client")


def test_missing_api_key_raises(monkeypatch):
    """get_openai_client should raise if OPENAI_API_KEY is not set."""

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    _install_openai_stub(monkeypatch)

    oc = reload_client_module(monkeypatch)

    with pytest.raises(oc.OpenAIClientError):
        oc.get_openai_client()


def test_successful_client(monkeypatch):
    """get_openai_client builds one cached client with the configured key."""

    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("OPENAI_ORG", "org-1")
    _install_openai_stub(monkeypatch)

    oc = reload_client_module(monkeypatch)
    client = oc.get_openai_client()

    assert isinstance(client, DummyOpenAI)
    assert client.kwargs == {"api_key": "test-key", "organization": "org-1"}
    assert oc.get_openai_client() is client

    oc.reset_client()
    assert oc.get_openai_client() is not client


def test_complete_chat_wrapper(monkeypatch):
    """complete_chat forwards to chat.completions.create and returns the text."""

    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    _install_openai_stub(monkeypatch)

    oc = reload_client_module(monkeypatch)

    result = oc.complete_chat(
        [{"role": "user", "content": "Hello"}],
        temperature=0,
    )

    assert result == "Hello back"
    call = DummyOpenAI.instances[0].chat.completions.calls[0]
    assert call["model"] == "gpt-4.1"
    assert call["messages"][0]["content"] == "Hello"
    assert call["temperature"] == 0


def test_complete_chat_model_override(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o-mini")
    _install_openai_stub(monkeypatch)

    oc = reload_client_module(monkeypatch)
    oc.complete_chat([{"role": "user", "content": "Hi"}])
    oc.complete_chat([{"role": "user", "content": "Hi"}], model="other")

    calls = DummyOpenAI.instances[0].chat.completions.calls
    assert [c["model"] for c in calls] == ["gpt-4o-mini", "other"]


def test_complete_chat_missing_choices(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    _install_openai_stub(monkeypatch)

    oc = reload_client_module(monkeypatch)
    client = oc.get_openai_client()
    client.chat.completions.create = lambda **_: SimpleNamespace(choices=[])

    with pytest.raises(ValueError):
        oc.complete_chat([{"role": "user", "content": "Hi"}])
