"""LLM client for OpenAI API communication.

Single Responsibility: Handle all LLM API calls (sync and streaming).
No prompt construction, no JSON parsing, no business logic.

Each call is attempted exactly once: the pipeline recovers from failures with
stage fallbacks, so the client is built with max_retries=0 by default and a
bounded timeout. A timeout surfaces as LLMCallError like any other failure.

The client is lazily initialized as a singleton (connection pooling).
Use reset_clients() in test teardown to clear it.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Iterator

import httpx
from openai import OpenAI

from .types import LLMCallError

logger = logging.getLogger(__name__)


__all__ = [
    "get_sync_client",
    "reset_clients",
    "call_llm",
    "call_llm_stream",
]

# ---------------------------------------------------------------------------
# Singleton state
# ---------------------------------------------------------------------------
_sync_client: OpenAI | None = None
_sync_lock = threading.Lock()

_DEFAULT_TIMEOUT_SECS = 60.0
_DEFAULT_MAX_RETRIES = 0
_DEFAULT_MAX_TOKENS = 4096


def _client_options(settings: dict) -> tuple[float, int]:
    openai_settings = settings.get("openai", {}) or {}
    timeout_secs = float(
        os.getenv("LINGUA_OPENAI_TIMEOUT_SECS")
        or openai_settings.get("timeout_secs", _DEFAULT_TIMEOUT_SECS)
    )
    max_retries = int(
        os.getenv("LINGUA_OPENAI_MAX_RETRIES")
        or openai_settings.get("max_retries", _DEFAULT_MAX_RETRIES)
    )
    return timeout_secs, max_retries


def _build_sync_client() -> OpenAI:
    """Create an OpenAI client with timeout, retries and pool limits from config.

    Falls back to OpenAI() when running under test fakes that don't accept kwargs.
    """
    from ..common.config_loader import get_settings_yaml

    settings = get_settings_yaml()
    timeout_secs, max_retries = _client_options(settings)
    perf = settings.get("performance", {}) or {}

    try:
        return OpenAI(
            timeout=timeout_secs,
            max_retries=max_retries,
            http_client=httpx.Client(
                timeout=timeout_secs,
                limits=httpx.Limits(
                    max_connections=int(perf.get("connection_pool_size", 20)),
                    max_keepalive_connections=int(perf.get("keepalive_connections", 10)),
                ),
            ),
        )
    except TypeError:
        return OpenAI()


def get_sync_client() -> OpenAI:
    """Return the singleton OpenAI client (lazy, thread-safe)."""
    global _sync_client  # noqa: PLW0603
    if _sync_client is None:
        with _sync_lock:
            if _sync_client is None:
                _sync_client = _build_sync_client()
    return _sync_client


def reset_clients() -> None:
    """Close and clear the singleton. Call in test teardown."""
    global _sync_client  # noqa: PLW0603
    with _sync_lock:
        if _sync_client is not None:
            close_fn = getattr(_sync_client, "close", None)
            if callable(close_fn):
                close_fn()
            _sync_client = None


def _get_model_capabilities(settings: dict) -> tuple[list[str], list[str], str]:
    """Get model capability lists from config/settings.yaml.

    Returns:
        Tuple of (reasoning_models, no_temperature_models, reasoning_effort)
    """
    caps = settings.get("model_capabilities", {}) or {}
    reasoning_models = caps.get("reasoning_models") or []
    no_temp_models = caps.get("no_temperature_models") or []
    reasoning_effort = caps.get("reasoning_effort") or "low"
    return reasoning_models, no_temp_models, reasoning_effort


def _model_uses_reasoning(model: str | None, reasoning_models: list[str] | None) -> bool:
    """Check if model takes a reasoning_effort parameter based on config."""
    if not model or not reasoning_models:
        return False
    return any(model.startswith(prefix) for prefix in reasoning_models)


def _model_skips_temperature(model: str | None, no_temp_models: list[str] | None) -> bool:
    """Check if model doesn't support temperature based on config."""
    if not model or not no_temp_models:
        return False
    return any(model.startswith(prefix) for prefix in no_temp_models)


def _build_request(
    system_prompt: str,
    user_prompt: str,
    *,
    temperature: float | None,
    max_tokens: int | None,
    json_mode: bool,
    model: str | None,
) -> dict:
    """Assemble chat.completions kwargs according to model capabilities."""
    from ..common.config_loader import get_settings_yaml

    settings = get_settings_yaml()
    openai_settings = settings.get("openai", {}) or {}

    eff_model = model or os.getenv("OPENAI_CHAT_MODEL") or openai_settings.get("chat_model")
    eff_max_tokens = int(max_tokens or openai_settings.get("max_tokens") or _DEFAULT_MAX_TOKENS)

    reasoning_models, no_temp_models, reasoning_effort = _get_model_capabilities(settings)

    request: dict = {
        "model": eff_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_completion_tokens": eff_max_tokens,
    }
    if _model_uses_reasoning(eff_model, reasoning_models):
        request["reasoning_effort"] = reasoning_effort
    elif not _model_skips_temperature(eff_model, no_temp_models) and temperature is not None:
        request["temperature"] = temperature
    if json_mode:
        request["response_format"] = {"type": "json_object"}
    return request


def call_llm(
    system_prompt: str,
    user_prompt: str,
    *,
    temperature: float | None = None,
    max_tokens: int | None = None,
    json_mode: bool = False,
    model: str | None = None,
) -> str:
    """Single chat-completion call. Returns the reply text.

    Raises:
        LLMCallError: on any transport, timeout or API error, or an empty reply.
    """
    try:
        request = _build_request(
            system_prompt,
            user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
            model=model,
        )
        client = get_sync_client()
        response = client.chat.completions.create(**request)
        content = response.choices[0].message.content
    except Exception as exc:  # noqa: BLE001
        raise LLMCallError("OpenAI request failed.") from exc

    if not content or not content.strip():
        raise LLMCallError("OpenAI returned an empty response.")
    return content.strip()


def call_llm_stream(
    system_prompt: str,
    user_prompt: str,
    *,
    temperature: float | None = None,
    max_tokens: int | None = None,
    model: str | None = None,
) -> Iterator[str]:
    """Call the LLM with streaming enabled. Yields chunks of text as they arrive.

    Raises:
        LLMCallError: while iterating, on any transport, timeout or API error.
    """
    try:
        request = _build_request(
            system_prompt,
            user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=False,
            model=model,
        )
        client = get_sync_client()
        stream = client.chat.completions.create(stream=True, **request)
        for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content
    except Exception as exc:  # noqa: BLE001
        raise LLMCallError("OpenAI streaming request failed.") from exc
