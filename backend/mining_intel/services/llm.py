from __future__ import annotations

from contextlib import contextmanager
from threading import BoundedSemaphore

import httpx

from ..core.config import get_settings

_llm_semaphore: BoundedSemaphore | None = None


class LLMConfigurationError(RuntimeError):
    """The LLM provider cannot be called at all (e.g. no API key). Not retryable."""


def _get_semaphore() -> BoundedSemaphore:
    """
    Lazy-initialised global semaphore for limiting concurrent LLM calls.
    """
    global _llm_semaphore
    if _llm_semaphore is None:
        settings = get_settings()
        _llm_semaphore = BoundedSemaphore(settings.LLM_MAX_CONCURRENCY)
    return _llm_semaphore


@contextmanager
def limit_llm_concurrency():
    """
    Simple context manager to bound concurrent calls to the LLM provider.

    Usage:

        with limit_llm_concurrency():
            client.post(...)

    Use inside the thread that actually performs the HTTP request.
    """
    sem = _get_semaphore()
    sem.acquire()
    try:
        yield
    finally:
        sem.release()


def gemini_generate_url(model: str | None = None) -> str:
    settings = get_settings()
    base = settings.GEMINI_BASE_URL.rstrip("/")
    return f"{base}/models/{model or settings.GEMINI_MODEL}:generateContent"


def get_llm_client(transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """
    Factory for the HTTP client used to talk to the Gemini REST API.

    The API key travels as the ``key`` query parameter on every request.
    """
    settings = get_settings()
    if not settings.GEMINI_API_KEY:
        raise LLMConfigurationError("No LLM API key configured. Set GEMINI_API_KEY.")

    return httpx.Client(
        params={"key": settings.GEMINI_API_KEY.strip()},
        headers={"Content-Type": "application/json"},
        timeout=settings.GEMINI_TIMEOUT_SECONDS,
        transport=transport,
    )
