"""
Configuration module for the Storage Admin Console
"""

# Application configuration
import os

def env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")

def env_int(key: str, default: int) -> int:
    """Get integer value from environment variable"""
    return int(os.getenv(key, str(default)))

# Version information
from pathlib import Path

def _read_version_from_repo(default: str = "dev") -> str:
    try:
        # repo root: admin_console/.. (two parents up)
        version_file = Path(__file__).resolve().parents[1] / "VERSION"
        v = version_file.read_text(encoding="utf-8").strip()
        if v:
            return v
    except OSError:
        pass
    return os.getenv("APP_VERSION", default)

API_VERSION = _read_version_from_repo()

# Backend console API
BACKEND_URL = os.getenv("CONSOLE_BACKEND_URL", "http://localhost:8081/api/v1").rstrip("/")
API_TOKEN = os.getenv("CONSOLE_API_TOKEN", "")
HTTP_TIMEOUT_SEC = float(os.getenv("CONSOLE_HTTP_TIMEOUT_SEC", "30"))
VERIFY_TLS = env_bool("CONSOLE_VERIFY_TLS", True)

# Console API configuration
API_PREFIX = "/api"
APP_PORT = env_int("APP_PORT", 8090)

# Quota display thresholds (percent, strictly greater than)
QUOTA_CRITICAL_PERCENT = env_int("QUOTA_CRITICAL_PERCENT", 90)
QUOTA_WARNING_PERCENT = env_int("QUOTA_WARNING_PERCENT", 75)

# Create-tenant form defaults
DEFAULT_MAX_ACCESS_KEYS = env_int("DEFAULT_MAX_ACCESS_KEYS", 10)
DEFAULT_MAX_BUCKETS = env_int("DEFAULT_MAX_BUCKETS", 100)
DEFAULT_MAX_STORAGE_BYTES = env_int("DEFAULT_MAX_STORAGE_BYTES", 107374182400)  # 100GB

# Security overview fallbacks when the backend has no such setting
DEFAULT_LOCKOUT_DURATION_SEC = env_int("DEFAULT_LOCKOUT_DURATION_SEC", 900)
DEFAULT_MAX_FAILED_ATTEMPTS = env_int("DEFAULT_MAX_FAILED_ATTEMPTS", 5)

# Lock-state refresh; 0 disables the poll
LOCK_POLL_SECONDS = float(os.getenv("CONSOLE_LOCK_POLL_SECONDS", "0"))

# Request logging (level and format are read by logging_config)
HTTP_LOG_ENABLED = env_bool("HTTP_LOG_ENABLED", True)
HTTP_LOG_EXCLUDE_PATHS = set(os.getenv("HTTP_LOG_EXCLUDE_PATHS", "/api/health").split(","))
