"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")


def is_production() -> bool:
    return ENVIRONMENT == "production"


# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "campus_social.db"))

# ── JWT ───────────────────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_ACCESS_EXPIRY_MINUTES: int = int(os.getenv("JWT_ACCESS_EXPIRY_MINUTES", "15"))
JWT_REFRESH_EXPIRY_DAYS: int = int(os.getenv("JWT_REFRESH_EXPIRY_DAYS", "7"))

# ── OTP ───────────────────────────────────────────────────────────────────

OTP_TTL_SECONDS: int = int(os.getenv("OTP_TTL_SECONDS", "300"))
OTP_MAX_ATTEMPTS: int = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))

# Expired challenges keep answering "expired" for this long, then get purged.
OTP_PURGE_AFTER_SECONDS: int = int(os.getenv("OTP_PURGE_AFTER_SECONDS", "3600"))

# ── Rate limiting ─────────────────────────────────────────────────────────

# OTP issuances per mobile number per window. The documented policy is 3;
# deployments have run with a higher ceiling, so keep it overridable.
OTP_REQUEST_LIMIT: int = int(os.getenv("OTP_REQUEST_LIMIT", "3"))

# Auth endpoint hits per client address per window.
AUTH_REQUEST_LIMIT: int = int(os.getenv("AUTH_REQUEST_LIMIT", "20"))

RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))

# Blanket per-client limit applied to every route (slowapi format).
API_RATE_LIMIT: str = os.getenv("API_RATE_LIMIT", "1000/15minutes")

# ── Accounts & feed ───────────────────────────────────────────────────────

# Role assigned to accounts provisioned on first login.
DEFAULT_ROLE: str = os.getenv("DEFAULT_ROLE", "member")

# Upper bound for the concurrent per-type feed queries (seconds).
FEED_QUERY_TIMEOUT_SECONDS: float = float(os.getenv("FEED_QUERY_TIMEOUT_SECONDS", "5"))
