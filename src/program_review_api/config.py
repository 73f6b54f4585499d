"""Configuration settings for the program review API."""
import os
from typing import List, Literal


EnvironmentType = Literal["development", "staging", "production"]


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"
    LOG_LEVEL: str = "INFO"

    # Program defaults
    DEFAULT_DURATION_WEEKS: int = 4

    # Send-to-client delivery endpoint
    DISPATCH_API_URL: str = "http://localhost:3000/api/programs/send-to-client"
    DISPATCH_TIMEOUT_SECONDS: float = 30.0

    # Document store
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3001"]

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        try:
            weeks = int(os.getenv("DEFAULT_DURATION_WEEKS", "4"))
        except ValueError:
            weeks = 4
        self.DEFAULT_DURATION_WEEKS = weeks if 0 < weeks <= 52 else 4

        # Delivery endpoint
        self.DISPATCH_API_URL = os.getenv("DISPATCH_API_URL", self.DISPATCH_API_URL)
        try:
            self.DISPATCH_TIMEOUT_SECONDS = float(os.getenv("DISPATCH_TIMEOUT_SECONDS", "30"))
        except ValueError:
            self.DISPATCH_TIMEOUT_SECONDS = 30.0

        # Document store
        self.SUPABASE_URL = os.getenv("SUPABASE_URL")
        self.SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")

        origins = os.getenv("CORS_ORIGINS")
        if origins:
            self.CORS_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]


settings = Settings()
