# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "SPLICE_APP_NAME": "App display name (default: splice).",
    "SPLICE_LOG_LEVEL": "Console logging level (default: INFO).",
    "SPLICE_DATA_DIR": "Local data directory for logs (default: .local/splice).",
    # Backend selection
    "SPLICE_BACKEND": "opencode | openai | offline (default: opencode).",
    "SPLICE_MODEL": "Optional model in provider/model form, e.g. anthropic/claude-sonnet-4.",
    # OpenCode server
    "SPLICE_SERVER_HOST": "OpenCode server host (default: 127.0.0.1).",
    "SPLICE_SERVER_PORT": "OpenCode server port (default: 4096).",
    "SPLICE_SERVER_AUTO_START": "Spawn `opencode serve` when the server is down (true/false).",
    "SPLICE_SERVER_STARTUP_TIMEOUT": "Seconds to wait for the server to become healthy (default: 10).",
    "SPLICE_SERVER_COMMAND": "Server executable (default: opencode).",
    # Prompt context
    "SPLICE_CONTEXT_FULL_FILE": "Send the whole buffer as context (true/false, default: true).",
    "SPLICE_CONTEXT_LINES_BEFORE": "Context lines before the region when not sending the full file.",
    "SPLICE_CONTEXT_LINES_AFTER": "Context lines after the region when not sending the full file.",
    # Behavior
    "SPLICE_REVIEW_MODE": "Ask for accept/reject before applying (true/false, default: false).",
    "SPLICE_WARN_ON_CONFLICT": "Warn when the region changed during the request (default: true).",
    "SPLICE_CANCEL_ON_CONFLICT": "Cancel the task when the region changed (default: false).",
    # OpenAI-compatible backend
    "SPLICE_OPENAI_API_KEY": "API key (falls back to OPENROUTER_API_KEY / OPENAI_API_KEY).",
    "SPLICE_OPENAI_BASE_URL": "Base URL (default: https://openrouter.ai/api/v1).",
    "SPLICE_LLM_MODELS": "Comma/space separated fallback models, tried in order.",
    "SPLICE_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "SPLICE_APP_TITLE": "Optional OpenRouter metadata header title.",
}
