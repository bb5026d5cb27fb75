"""App settings: loaded from environment."""
from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # API
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///wellbalance.db")

    # Auth
    JWT_SECRET = os.getenv("JWT_SECRET", "wellbalance-dev-secret-change-in-prod")

    # Anthropic (chat assistant)
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
    CHAT_MODEL = os.getenv("CHAT_MODEL", "claude-sonnet-4-20250514")
    CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "1024"))
    CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.4"))
    CHAT_MAX_STEPS = int(os.getenv("CHAT_MAX_STEPS", "5"))  # model calls per turn

    # OpenWeatherMap (checkWeather chat tool)
    OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY")
    OPENWEATHER_BASE_URL = os.getenv(
        "OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5"
    )

    # Calendar day boundaries for daily logs
    APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")

    # CORS origins (comma-separated, or * for dev)
    CORS_ORIGINS = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")
    ]

    # Observability
    SENTRY_DSN = os.getenv("SENTRY_DSN", "")
    SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))

    # Logging
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
