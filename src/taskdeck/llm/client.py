# src/taskdeck/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

_BAD_MODELS: dict[str, float] = {}  # model -> retry_at (monotonic)


class LLMError(RuntimeError):
    """Completion service failure, with a message fit for the user."""


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException, TimeoutError)):
        return True
    return exc.__class__.__name__ in {"Timeout"}


def _is_not_found_error(exc: Exception) -> bool:
    # HTTP 404 from an OpenAI-compatible endpoint: model not available
    return isinstance(exc, openai.NotFoundError)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "AI assistant is not configured (missing API key). Set TASKDECK_LLM_API_KEY or OPENAI_API_KEY."
    if "LLM model list is empty" in msg:
        return "AI assistant is not configured (no models). Set TASKDECK_LLM_MODELS."
    return msg


def _close_stream(stream: Any) -> None:
    close = getattr(stream, "close", None)
    if callable(close):
        try:
            close()
        except (httpx.HTTPError, OSError):
            logger.debug("LLM: stream close failed", exc_info=True)


class OpenAILLMClient:
    """
    Streaming chat completions over an OpenAI-compatible API.

    Models are tried in configured order:
    - no first content token within the first-token timeout -> next model,
    - 404 (model not available) -> next model, and skip it for an hour,
    - rate limit / network issues -> next model,
    - auth issues -> fail fast.
    """

    def __init__(self, settings, *, client: OpenAI | None = None) -> None:
        api_key = getattr(settings, "llm_api_key", None)
        if client is None and (not api_key or not str(api_key).strip()):
            raise LLMError("LLM API key is not set.")

        self.models: list[str] = [m.strip() for m in (getattr(settings, "llm_models", None) or []) if m.strip()]
        self.first_token_timeout = float(getattr(settings, "llm_first_token_timeout_seconds", 20.0))
        connect_s = float(getattr(settings, "llm_connect_timeout_seconds", 5.0))
        read_s = max(float(getattr(settings, "llm_read_timeout_seconds", 25.0)), self.first_token_timeout)
        self._timeout = httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)

        if client is None:
            base_url = str(getattr(settings, "llm_base_url", "") or "").strip() or None
            # No SDK retries: fallback across models is faster.
            client = OpenAI(api_key=str(api_key), base_url=base_url, timeout=self._timeout, max_retries=0)
        self._client = client

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        if not self.models:
            raise LLMError("LLM model list is empty.")

        last_error: Exception | None = None
        now = time.monotonic()

        for model in self.models:
            retry_at = _BAD_MODELS.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s (first_token_timeout=%.1fs)", model, self.first_token_timeout)
            t0 = time.monotonic()
            deadline = t0 + self.first_token_timeout
            stream = None
            used_any = False

            try:
                stream = self._client.chat.completions.create(
                    model=model,
                    stream=True,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    timeout=self._timeout,
                )
                for chunk in stream:
                    if not used_any and time.monotonic() > deadline:
                        last_error = TimeoutError(f"First token timeout on model: {model}")
                        logger.info("LLM: first token timeout on model=%s -> trying next", model)
                        break

                    content = chunk.choices[0].delta.content if chunk.choices else None
                    if content:
                        if not used_any:
                            logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    return
                if last_error is None:
                    last_error = LLMError(f"Model returned no content: {model}")

            except openai.OpenAIError as e:
                last_error = e

                if _is_auth_error(e):
                    raise LLMError("AI assistant authentication failed. Check the API key.") from e

                if _is_not_found_error(e):
                    _BAD_MODELS[model] = time.monotonic() + 3600.0
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            finally:
                if stream is not None:
                    _close_stream(stream)

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise LLMError("AI assistant is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise LLMError("AI assistant network/timeout error. Try again later.") from last_error
            raise LLMError("All LLM models failed.") from last_error

        raise LLMError("All LLM models failed.")


def complete(client, messages: list[ChatMessage], system_prompt: str) -> str:
    """Drain a streaming client into one string."""
    return "".join(client.stream_chat(messages, system_prompt))
