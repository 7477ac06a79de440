# src/splice_ai/backend/opencode.py

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from typing import Any

import httpx

from ..core.errors import BackendError, ErrorKind
from ..core.ports import ModelSpec

logger = logging.getLogger(__name__)

HEALTH_POLL_INTERVAL = 0.5
HEALTH_TIMEOUT = 2.0


class OpenCodeBackend:
    """
    Backend speaking the OpenCode server HTTP API.

    Endpoints used:
    - GET  /health                 -> {"healthy": bool, "version": str}
    - POST /session                -> {"id": str}
    - POST /session/{id}/prompt    -> response payload ({"parts": [...]})
    - POST /session/{id}/abort

    When the server is not running and auto_start is on, `opencode serve` is
    spawned once and polled until healthy or until startup_timeout elapses.
    """

    def __init__(
            self,
            settings: Any,
            *,
            client: httpx.AsyncClient | None = None,
            request_timeout: float | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.base_url
        self._owns_client = client is None
        # Prompt round-trips can take minutes; only connecting is bounded tightly.
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(request_timeout, connect=5.0),
            headers={"Accept": "application/json"},
        )
        self._ready = False
        self._ready_lock = asyncio.Lock()
        self._process: asyncio.subprocess.Process | None = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    # ---- HTTP helpers ----

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None,
                       *, timeout: float | None = None) -> Any:
        kwargs: dict[str, Any] = {}
        if payload is not None:
            kwargs["json"] = payload
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise BackendError(f"HTTP request timed out: {method} {path}", kind=ErrorKind.TIMEOUT) from e
        except httpx.HTTPError as e:
            raise BackendError(f"HTTP request failed: {e}") from e

        if resp.status_code >= 400:
            raise BackendError(f"HTTP {resp.status_code} from {method} {path}: {resp.text[:200]}")

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"Failed to decode JSON response: {resp.text[:200]}") from e

    # ---- readiness ----

    async def health_check(self) -> bool:
        try:
            data = await self._request("GET", "/health", timeout=HEALTH_TIMEOUT)
        except BackendError as e:
            logger.debug("Health check failed: %s", e)
            return False
        healthy = isinstance(data, dict) and data.get("healthy") is True
        if healthy:
            logger.debug("OpenCode server healthy version=%s", data.get("version"))
        return healthy

    async def _spawn_server(self) -> None:
        command = self._settings.command
        if shutil.which(command) is None:
            raise BackendError(f"{command} command not found. Please install opencode first.")

        args = ["serve", "--port", str(self._settings.port), "--hostname", self._settings.host]
        try:
            self._process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise BackendError(f"Failed to start opencode server: {e}") from e
        logger.info("Starting OpenCode server pid=%s url=%s", self._process.pid, self._base_url)

    async def _wait_for_ready(self) -> None:
        timeout = float(self._settings.startup_timeout)
        deadline = time.monotonic() + timeout
        while True:
            if await self.health_check():
                logger.info("OpenCode server is ready")
                return
            if self._process is not None and self._process.returncode is not None:
                code = self._process.returncode
                self._process = None
                raise BackendError(f"OpenCode server exited with code: {code}")
            if time.monotonic() >= deadline:
                raise BackendError(
                    f"Timeout waiting for OpenCode server to start ({timeout:.1f}s)",
                    kind=ErrorKind.TIMEOUT,
                )
            await asyncio.sleep(HEALTH_POLL_INTERVAL)

    async def ensure_ready(self) -> None:
        if self._ready:
            return
        async with self._ready_lock:
            if self._ready:
                return
            if not await self.health_check():
                if not self._settings.auto_start:
                    raise BackendError("OpenCode server is not running. Start it with: opencode serve")
                if self._process is None or self._process.returncode is not None:
                    await self._spawn_server()
                await self._wait_for_ready()
            self._ready = True

    # ---- session protocol ----

    async def create_session(self) -> str:
        title = "splice-" + time.strftime("%Y%m%d-%H%M%S")
        data = await self._request("POST", "/session", {"title": title})
        session_id = data.get("id") if isinstance(data, dict) else None
        if not session_id:
            raise BackendError("Invalid session response")
        logger.debug("Session created id=%s", session_id)
        return str(session_id)

    async def send_prompt(self, session_id: str, prompt: str, model: ModelSpec | None = None) -> Any:
        payload: dict[str, Any] = {"parts": [{"type": "text", "text": prompt}]}
        if model is not None:
            payload["model"] = model.as_payload()
        data = await self._request("POST", f"/session/{session_id}/prompt", payload)
        if data is None:
            raise BackendError("Empty response from server")
        return data

    async def abort_session(self, session_id: str) -> None:
        await self._request("POST", f"/session/{session_id}/abort", timeout=HEALTH_TIMEOUT)

    # ---- cleanup ----

    async def aclose(self) -> None:
        proc, self._process = self._process, None
        if proc is not None and proc.returncode is None:
            logger.info("Stopping OpenCode server pid=%s", proc.pid)
            proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
        self._ready = False
        if self._owns_client:
            await self._client.aclose()
