"""
Recipe Assistant Backend Configuration
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent

# LLM provider (any OpenAI-compatible chat-completions endpoint; Together.ai by default)
LLM_API_KEY = os.getenv("LLM_API_KEY", os.getenv("TOGETHER_API_KEY", ""))
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.together.xyz/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "meta-llama/Llama-3-70b-chat-hf")

# Generation defaults
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_TOP_P = float(os.getenv("LLM_TOP_P", "0.9"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))

# Rate limiting: keep below the provider's hard cap (6/min on the free tier)
LLM_REQUESTS_PER_MINUTE = float(os.getenv("LLM_REQUESTS_PER_MINUTE", "5"))
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "3"))

# Response cache
LLM_CACHE_TTL = float(os.getenv("LLM_CACHE_TTL", str(30 * 60)))
LLM_CACHE_MAX_ENTRIES = int(os.getenv("LLM_CACHE_MAX_ENTRIES", "500"))
LLM_CACHE_PREFIX_CHARS = int(os.getenv("LLM_CACHE_PREFIX_CHARS", "0"))  # 0 = hash full prompt

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS - Frontend URLs
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    os.getenv("FRONTEND_URL", ""),  # Production frontend URL
]
# Filter empty strings
CORS_ORIGINS = [origin for origin in CORS_ORIGINS if origin]


def setup_logging() -> None:
    """Configure root logging once at startup"""
    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    # Reduce verbosity of noisy loggers
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
