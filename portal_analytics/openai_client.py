"""Lightweight OpenAI client helper.

Centralises credential handling so the insight generators can simply do:

    from portal_analytics.openai_client import complete_chat

and receive the assistant's reply text.
"""
from __future__ import annotations

import os
import types
from typing import Any, Dict, List, Optional


class OpenAIClientError(RuntimeError):
    """Raised when client configuration is invalid (e.g., missing API key)."""


_DEFAULT_MODEL = "gpt-4.1"

_client: Optional[Any] = None


def _load_openai() -> types.ModuleType:
    """Import ``openai`` lazily.

    Loading is deferred so that unit tests can inject a stub into
    ``sys.modules`` before this function runs.
    """

    import importlib

    return importlib.import_module("openai")


def _ensure_api_key_present() -> str:
    """Return the ``OPENAI_API_KEY`` env var or raise.

    Raises
    ------
    OpenAIClientError
        If the env var is missing or empty.
    """

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise OpenAIClientError("OPENAI_API_KEY environment variable is not set.")
    return api_key


def get_openai_client() -> Any:
    """Return a shared ``openai.OpenAI`` client, creating it on first use."""

    global _client
    if _client is not None:
        return _client

    openai = _load_openai()
    kwargs: Dict[str, Any] = {"api_key": _ensure_api_key_present()}
    org = os.getenv("OPENAI_ORG")
    if org:
        kwargs["organization"] = org

    _client = openai.OpenAI(**kwargs)
    return _client


def reset_client() -> None:
    """Forget the cached client (used after credentials change)."""
    global _client
    _client = None


def complete_chat(
    messages: List[Dict[str, str]],
    *,
    model: Optional[str] = None,
    **kwargs: Any,
) -> str:
    """Send *messages* to the chat completions API and return the reply text.

    Parameters
    ----------
    messages
        Chat messages in OpenAI format.
    model
        Model id; defaults to ``OPENAI_MODEL`` or ``gpt-4.1``.
    kwargs
        Additional parameters forwarded to ``chat.completions.create``.
    """

    client = get_openai_client()
    completion = client.chat.completions.create(
        model=model or os.getenv("OPENAI_MODEL", _DEFAULT_MODEL),
        messages=messages,
        **kwargs,
    )
    try:
        content = completion.choices[0].message.content
    except (AttributeError, IndexError) as exc:
        raise ValueError("Model response missing expected fields") from exc
    return content or ""
