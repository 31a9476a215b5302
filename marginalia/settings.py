"""Configuration settings for the marginalia book research engine."""

import logging
import os
from dotenv import find_dotenv, load_dotenv

# .env next to the working directory, as when running the CLI from a project
load_dotenv(find_dotenv(usecwd=True))

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# Anthropic (direct API, default backend)
# Available models:
# - claude-3-5-haiku-20241022 (fast, cheap)
# - claude-3-5-sonnet-20241022 (balanced)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_DEFAULT_MODEL = os.getenv("ANTHROPIC_DEFAULT_MODEL", "claude-3-5-sonnet-20241022")

# OpenRouter (OpenAI-compatible)
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_DEFAULT_MODEL = os.getenv("OPENROUTER_DEFAULT_MODEL", "anthropic/claude-3.5-sonnet")

# Transport settings
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "3"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "120.0"))

# Progress feed forwarding
EVENT_WEBHOOK_URL = os.getenv("MARGINALIA_EVENT_WEBHOOK_URL")
