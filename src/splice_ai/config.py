# src/splice_ai/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Grouped sub-settings (server / context / behavior) the task core reads as plain attributes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional

from .core.ports import ModelSpec

ENV_PREFIX = "SPLICE"

BACKEND_KINDS = ("opencode", "openai", "offline")

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def parse_model_spec(raw: str | None) -> ModelSpec | None:
    """
    "provider/model" -> ModelSpec.

    Everything after the first slash is the model id ("openrouter/x-ai/grok" keeps
    "x-ai/grok"). Malformed values yield None (backend default model).
    """
    if not raw:
        return None
    provider, sep, model_id = raw.strip().partition("/")
    if not sep or not provider or not model_id:
        return None
    return ModelSpec(provider_id=provider, model_id=model_id)


@dataclass(frozen=True, slots=True)
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 4096
    auto_start: bool = True
    startup_timeout: float = 10.0
    command: str = "opencode"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class ContextSettings:
    include_full_file: bool = True
    lines_before: int = 50
    lines_after: int = 50


@dataclass(frozen=True, slots=True)
class BehaviorSettings:
    review_mode: bool = False
    warn_on_conflict: bool = True
    cancel_on_conflict: bool = False


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Task core ----
    server: ServerSettings
    context: ContextSettings
    behavior: BehaviorSettings
    model: Optional[str]

    # ---- Backend selection ----
    backend: str

    # ---- OpenAI-compatible backend ----
    openai_api_key: Optional[str]
    openai_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]

    @property
    def model_spec(self) -> ModelSpec | None:
        return parse_model_spec(self.model)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "splice")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/splice"))

        server = ServerSettings(
            host=_env(_k("SERVER_HOST"), "127.0.0.1"),
            port=_env_int(_k("SERVER_PORT"), 4096),
            auto_start=_env_bool(_k("SERVER_AUTO_START"), True),
            startup_timeout=_env_float(_k("SERVER_STARTUP_TIMEOUT"), 10.0),
            command=_env(_k("SERVER_COMMAND"), "opencode"),
        )

        context = ContextSettings(
            include_full_file=_env_bool(_k("CONTEXT_FULL_FILE"), True),
            lines_before=_env_int(_k("CONTEXT_LINES_BEFORE"), 50),
            lines_after=_env_int(_k("CONTEXT_LINES_AFTER"), 50),
        )

        behavior = BehaviorSettings(
            review_mode=_env_bool(_k("REVIEW_MODE"), False),
            warn_on_conflict=_env_bool(_k("WARN_ON_CONFLICT"), True),
            cancel_on_conflict=_env_bool(_k("CANCEL_ON_CONFLICT"), False),
        )

        model = _first_env(_k("MODEL"), default=None)

        backend = _env(_k("BACKEND"), "opencode").strip().lower()
        if backend not in BACKEND_KINDS:
            logger.warning("Unknown %s=%r; using opencode", _k("BACKEND"), backend)
            backend = "opencode"

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENROUTER_API_KEY", "OPENAI_API_KEY", default=None)
        openai_base_url = _env(_k("OPENAI_BASE_URL"), "https://openrouter.ai/api/v1")

        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "qwen/qwen-2.5-coder-32b-instruct",
                "deepseek/deepseek-chat-v3-0324",
            ],
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            server=server,
            context=context,
            behavior=behavior,
            model=model,
            backend=backend,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
        )


def _apply_local_overrides(settings: Settings) -> Settings:
    """
    Optional local overrides (never committed).

    Prefer .env for secrets; use config_local.py only for safe overrides.
    """
    try:
        import config_local as _config_local  # type: ignore
    except ImportError:
        return settings

    behavior = settings.behavior
    for name in ("REVIEW_MODE", "WARN_ON_CONFLICT", "CANCEL_ON_CONFLICT"):
        if hasattr(_config_local, name):
            behavior = replace(behavior, **{name.lower(): bool(getattr(_config_local, name))})

    changes: dict[str, object] = {"behavior": behavior}
    if hasattr(_config_local, "MODEL"):
        changes["model"] = _config_local.MODEL
    if hasattr(_config_local, "BACKEND") and _config_local.BACKEND in BACKEND_KINDS:
        changes["backend"] = _config_local.BACKEND
    if hasattr(_config_local, "LLM_MODELS"):
        changes["llm_models"] = list(_config_local.LLM_MODELS)
    return replace(settings, **changes)


SETTINGS = _apply_local_overrides(Settings.from_env())


def get_settings() -> Settings:
    return SETTINGS
