# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for secrets. This file should contain only safe overrides.
"""

# Example: always review before applying
# REVIEW_MODE = True

# Example: be strict about concurrent edits
# CANCEL_ON_CONFLICT = True

# Example: pick a backend and model
# BACKEND = "openai"
# MODEL = "openrouter/qwen/qwen-2.5-coder-32b-instruct"

# Example: change fallback model order for the openai backend
# LLM_MODELS = [
#     "deepseek/deepseek-chat-v3-0324",
# ]
