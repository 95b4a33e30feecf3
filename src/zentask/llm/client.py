# src/zentask/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..errors import AdvisoryUnavailable

logger = logging.getLogger(__name__)

# model -> retry_at (monotonic); shared across clients in the process
_BAD_MODELS: dict[str, float] = {}


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError is a subclass of APIConnectionError
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def _message_text(response: Any) -> str:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return ""
    return (content or "").strip()


class OpenRouterLLMClient:
    """
    Blocking OpenAI-compatible chat client (OpenRouter by default).

    - Tries models in the configured order.
    - 404 (model not available) -> remember for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    - SDK retries are disabled so the fallback across models stays quick.

    Construction without an API key raises AdvisoryUnavailable, which the
    composition root treats as "AI assistant not configured".
    """

    def __init__(self, settings: Any) -> None:
        api_key = getattr(settings, "llm_api_key", None)
        base_url = getattr(settings, "llm_base_url", "") or ""

        if not api_key or not str(api_key).strip():
            raise AdvisoryUnavailable("LLM API key is not set. Set ZEN_LLM_API_KEY in your .env.")
        if not base_url.strip():
            raise AdvisoryUnavailable("LLM base URL is not set. Set ZEN_LLM_BASE_URL in your .env.")

        self._models: list[str] = [m.strip() for m in (getattr(settings, "llm_models", None) or []) if m.strip()]
        if not self._models:
            raise AdvisoryUnavailable("LLM model list is empty. Set ZEN_LLM_MODELS in your .env.")

        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})

        connect_s = float(getattr(settings, "llm_connect_timeout_seconds", 5.0))
        read_s = float(getattr(settings, "llm_read_timeout_seconds", 25.0))
        self._client = OpenAI(
            base_url=str(base_url),
            api_key=str(api_key),
            timeout=httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s),
            max_retries=0,
        )

    @property
    def models(self) -> list[str]:
        return list(self._models)

    def _create(self, model: str, prompt: str, json_schema: dict[str, Any] | None) -> Any:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "extra_headers": self._headers or None,
        }
        if json_schema is not None:
            kwargs["response_format"] = {"type": "json_schema", "json_schema": json_schema}
        return self._client.chat.completions.create(**kwargs)

    def complete(self, prompt: str, *, json_schema: dict[str, Any] | None = None) -> str:
        """
        Single-shot completion. Returns the text of the first model that answers.

        Raises AdvisoryUnavailable when every model failed or auth is broken.
        """
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = _BAD_MODELS.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            try:
                response = self._create(model, prompt, json_schema)
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise AdvisoryUnavailable("LLM authentication failed. Check ZEN_LLM_API_KEY.") from e

                if _is_not_found_error(e):
                    _BAD_MODELS[model] = time.monotonic() + 3600.0
                    logger.info("LLM: model not available (404): %s", model)
                elif _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                elif _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                else:
                    logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            text = _message_text(response)
            logger.info("LLM: answer from model=%s (%.2fs, %d chars)", model, time.monotonic() - t0, len(text))
            return text

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise AdvisoryUnavailable("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise AdvisoryUnavailable("LLM network/timeout error. Try again later.") from last_error
            raise AdvisoryUnavailable("All LLM models failed.") from last_error

        raise AdvisoryUnavailable("No LLM model is currently available.")
