# src/splice_ai/backend/openai_compat.py

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from ..core.errors import BackendError, ErrorKind
from ..core.ports import ModelSpec

logger = logging.getLogger(__name__)

BAD_MODEL_RETRY_SECONDS = 3600.0

SYSTEM_PROMPT = (
    "You rewrite code regions inside an editor. "
    "Answer with the replacement code only, exactly as the user message describes."
)


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible gateways answer 404 for unknown/unavailable models
    return isinstance(exc, openai.NotFoundError)


def _model_name(model: ModelSpec) -> str:
    """
    Gateway model name for a ModelSpec.

    "openai/gpt-4o" is sent as "gpt-4o"; for routers that namespace models
    ("openrouter/qwen/qwen-2.5-coder") the provider prefix is dropped the same way.
    """
    return model.model_id


class OpenAICompatBackend:
    """
    Session protocol emulated over chat completions.

    Sessions are local ids. Each prompt is one non-streaming completion; the
    requested model is tried first, then the configured fallback list.
    abort_session cancels the in-flight request of that session. A session
    carries a single prompt and is forgotten once that prompt settles.
    """

    def __init__(
            self,
            *,
            api_key: str | None,
            base_url: str,
            models: List[str],
            extra_headers: Dict[str, str] | None = None,
            client: AsyncOpenAI | None = None,
            timeout: float = 120.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._models = [m.strip() for m in models if m and m.strip()]
        self._headers = dict(extra_headers or {})
        self._timeout = timeout
        self._client = client
        self._sessions: dict[str, asyncio.Task[Any] | None] = {}
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    @classmethod
    def from_settings(cls, settings: Any) -> "OpenAICompatBackend":
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            models=list(settings.llm_models),
            extra_headers=dict(settings.extra_headers),
        )

    def _get_client(self) -> AsyncOpenAI:
        """Lazily create the client; automatic retries are off so fallback stays quick."""
        if self._client is not None:
            return self._client
        if not self._api_key or not str(self._api_key).strip():
            raise BackendError("LLM API key is not set. Set SPLICE_OPENAI_API_KEY in your .env.")
        if not self._base_url.strip():
            raise BackendError("LLM base URL is not set. Set SPLICE_OPENAI_BASE_URL in your .env.")
        self._client = AsyncOpenAI(
            base_url=self._base_url,
            api_key=str(self._api_key),
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            max_retries=0,
        )
        return self._client

    def _candidate_models(self, model: ModelSpec | None) -> list[str]:
        candidates: list[str] = []
        if model is not None:
            candidates.append(_model_name(model))
        for m in self._models:
            if m not in candidates:
                candidates.append(m)
        return candidates

    # ---- session protocol ----

    async def ensure_ready(self) -> None:
        if not self._models:
            raise BackendError("LLM model list is empty. Set SPLICE_LLM_MODELS in your .env.")
        self._get_client()

    async def create_session(self) -> str:
        session_id = f"local-{uuid.uuid4().hex[:12]}"
        self._sessions[session_id] = None
        return session_id

    async def send_prompt(self, session_id: str, prompt: str, model: ModelSpec | None = None) -> Any:
        if session_id not in self._sessions:
            raise BackendError(f"Unknown session: {session_id}")

        request = asyncio.ensure_future(self._complete(prompt, model))
        self._sessions[session_id] = request
        try:
            text = await request
        except asyncio.CancelledError:
            if request.cancelled() and session_id not in self._sessions:
                raise BackendError("Request aborted") from None
            raise
        finally:
            # One prompt per session; an aborted session is already gone.
            if self._sessions.get(session_id) is request:
                del self._sessions[session_id]

        return {"parts": [{"type": "text", "text": text}]}

    async def abort_session(self, session_id: str) -> None:
        request = self._sessions.pop(session_id, None)
        if request is not None and not request.done():
            request.cancel()
            logger.debug("LLM: aborted in-flight request session_id=%s", session_id)

    async def aclose(self) -> None:
        for session_id in list(self._sessions):
            await self.abort_session(session_id)
        if self._client is not None:
            await self._client.close()

    # ---- completion with model fallback ----

    async def _complete(self, prompt: str, model: ModelSpec | None) -> str:
        """
        One completion, falling back across models.

        - 404 (model not available) -> skip it for an hour, try next.
        - Rate limit / network issues -> try next.
        - Auth issues -> fail fast (no retries across models).
        """
        client = self._get_client()
        candidates = self._candidate_models(model)
        if not candidates:
            raise BackendError("LLM model list is empty. Set SPLICE_LLM_MODELS in your .env.")

        last_error: Optional[Exception] = None
        now = time.monotonic()

        for name in candidates:
            retry_at = self._bad_models.get(name)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", name)
            t0 = time.monotonic()
            try:
                completion = await client.chat.completions.create(
                    model=name,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    extra_headers=self._headers or None,
                )
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise BackendError("LLM authentication failed. Check your API key.") from e

                if _is_not_found_error(e):
                    self._bad_models[name] = time.monotonic() + BAD_MODEL_RETRY_SECONDS
                    logger.info("LLM: model not available (404): %s", name)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", name)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", name)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", name, e.__class__.__name__)
                continue

            content = ""
            if completion.choices:
                content = completion.choices[0].message.content or ""
            if content.strip():
                logger.info("LLM: completed with model=%s (%.2fs)", name, time.monotonic() - t0)
                return content

            last_error = RuntimeError(f"Model returned no content: {name}")
            logger.info("LLM: empty completion from model=%s, trying next", name)

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise BackendError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise BackendError(
                    "LLM network/timeout error. Try again later or change models.",
                    kind=ErrorKind.TIMEOUT,
                ) from last_error
            raise BackendError("All LLM models failed.") from last_error

        raise BackendError("All LLM models failed.")
