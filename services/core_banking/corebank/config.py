"""
Centralized configuration management for the core banking adapter service.
Loads and validates all environment variables.
"""
import os
from typing import List


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        # Database
        # Database URL with fallback for development
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./corebank.db")
        self.DEBUG_SQL = os.getenv("DEBUG_SQL", "false").lower() in ("true", "1", "yes")

        # Environment
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

        # Observability
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.OBS_REDACT_PII = os.getenv("OBS_REDACT_PII", "true").lower() in ("true", "1", "yes")
        self.SERVICE_NAME = os.getenv("SERVICE_NAME", "core-banking-adapter")

        # CORS
        self.ALLOWED_ORIGINS = self._parse_list(os.getenv("ALLOWED_ORIGINS", "*"))

        # Caller authentication (presence check only, sessions are handled upstream)
        self.REQUIRE_AUTH_HEADER = os.getenv("REQUIRE_AUTH_HEADER", "true").lower() in ("true", "1", "yes")

        # Core banking exchange defaults, used when a config row leaves them unset
        self.CORE_BANKING_DEFAULT_TIMEOUT_MS = int(os.getenv("CORE_BANKING_DEFAULT_TIMEOUT_MS", "30000"))
        self.CORE_BANKING_DEFAULT_MAX_RETRIES = int(os.getenv("CORE_BANKING_DEFAULT_MAX_RETRIES", "3"))
        self.CORE_BANKING_DEFAULT_BACKOFF_MS = int(os.getenv("CORE_BANKING_DEFAULT_BACKOFF_MS", "1000"))
        self.CORE_BANKING_MAX_RETRIES_CAP = int(os.getenv("CORE_BANKING_MAX_RETRIES_CAP", "10"))

    @staticmethod
    def _parse_list(raw: str) -> List[str]:
        """Split a comma-separated env value, dropping blanks."""
        return [item.strip() for item in raw.split(",") if item.strip()]


settings = Settings()
