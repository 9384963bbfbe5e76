# =============================================
# File: ctxcommerce/utils/settings.py
# Purpose: Environment-driven configuration (read at call time)
# =============================================
from __future__ import annotations
import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

_ROOT = Path(__file__).resolve().parents[2]
_loaded = False

def load_env() -> None:
    """Load .env.local first, then .env. Existing env vars always win."""
    global _loaded
    if _loaded:
        return
    for name in (".env.local", ".env"):
        path = _ROOT / name
        if path.exists():
            load_dotenv(path, override=False)
    _loaded = True

# once, on first import; the getters below read os.environ at call time
load_env()

def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default

def _float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default

def naver_credentials() -> Optional[Tuple[str, str]]:
    client_id = (os.getenv("NAVER_CLIENT_ID") or "").strip()
    client_secret = (os.getenv("NAVER_CLIENT_SECRET") or "").strip()
    if not client_id or not client_secret:
        return None
    return client_id, client_secret

def naver_timeout() -> float:
    return _float("NAVER_TIMEOUT_SECONDS", 5.0)

def cors_allow_origin() -> str:
    return os.getenv("CORS_ALLOW_ORIGIN", "*")

def rate_limits() -> Tuple[int, int]:
    return _int("RL_MAX_REQS", 60), _int("RL_WINDOW_SECONDS", 60)

def cache_ttl() -> int:
    return _int("CACHE_TTL_SECONDS", 600)

def cache_max_entries() -> int:
    return _int("CACHE_MAX_ENTRIES", 1000)

def event_flush_interval() -> float:
    return _float("EVENT_FLUSH_INTERVAL_SECONDS", 15.0)

def event_sink() -> str:
    return os.getenv("EVENT_SINK", "db").strip().lower()

def event_endpoint() -> str:
    return os.getenv("EVENT_ENDPOINT", "http://localhost:8000/events")

def db_url() -> str:
    return os.getenv("DB_URL", "sqlite:///./ctxcommerce.db")

def llm_model() -> str:
    return os.getenv("LLM_MODEL", "gpt-4o-mini")

def llm_timeout() -> float:
    return _float("LLM_TIMEOUT_SECONDS", 8.0)

def openai_key() -> str:
    return os.getenv("OPENAI_API_KEY", "")

def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()

def log_file() -> str:
    return os.getenv("LOG_FILE", "logs/ctxcommerce.log")
