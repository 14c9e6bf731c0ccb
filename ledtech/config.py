"""
ledtech configuration management
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load local overrides
env_path = Path(__file__).parent.parent / ".ledtech.env"
load_dotenv(env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Central configuration for the ledtech trust core"""

    # Server
    MAIN_PORT = int(os.getenv("LEDTECH_MAIN_PORT", "8001"))

    # Logging
    LOG_LEVEL = os.getenv("LEDTECH_LOG_LEVEL", "INFO")
    LOG_DIR = Path(os.getenv("LEDTECH_LOG_DIR", "logs"))

    # Tokens
    JWT_SECRET_KEY: Optional[str] = os.getenv("LEDTECH_JWT_SECRET_KEY", None)
    JWT_ALGORITHM = os.getenv("LEDTECH_JWT_ALGORITHM", "HS256")
    TOKEN_EXPIRE_DAYS = int(os.getenv("LEDTECH_TOKEN_EXPIRE_DAYS", "7"))

    # Sessions
    SESSION_TTL_HOURS = int(os.getenv("LEDTECH_SESSION_TTL_HOURS", "24"))
    SESSION_STRICT_EXPIRY = _env_bool("LEDTECH_SESSION_STRICT_EXPIRY", "true")

    # CSRF
    CSRF_TOKEN_TTL_MINUTES = int(os.getenv("LEDTECH_CSRF_TOKEN_TTL_MINUTES", "60"))
    CSRF_HEADER_NAME = os.getenv("LEDTECH_CSRF_HEADER_NAME", "X-CSRF-Token")

    # Passwords
    BCRYPT_ROUNDS = int(os.getenv("LEDTECH_BCRYPT_ROUNDS", "12"))

    # Cookies
    AUTH_COOKIE_NAME = os.getenv("LEDTECH_AUTH_COOKIE_NAME", "auth_token")
    SESSION_COOKIE_NAME = os.getenv("LEDTECH_SESSION_COOKIE_NAME", "session_id")
    COOKIE_SECURE = _env_bool("LEDTECH_COOKIE_SECURE", "true")

    # Audit
    AUDIT_RETENTION_DAYS = int(os.getenv("LEDTECH_AUDIT_RETENTION_DAYS", "30"))

    # Maintenance schedule
    SESSION_CLEANUP_MINUTES = int(os.getenv("LEDTECH_SESSION_CLEANUP_MINUTES", "60"))
    CSRF_CLEANUP_MINUTES = int(os.getenv("LEDTECH_CSRF_CLEANUP_MINUTES", "60"))
    AUDIT_CLEANUP_HOURS = int(os.getenv("LEDTECH_AUDIT_CLEANUP_HOURS", "24"))

    # Shared store for multi-process deployments
    REDIS_URL: Optional[str] = os.getenv("LEDTECH_REDIS_URL", None)
