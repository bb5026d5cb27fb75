"""Startup validation: catch misconfigurations before the app serves traffic."""
from __future__ import annotations

import logging
import sys
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "wellbalance-dev-secret-change-in-prod"


def validate_settings(settings: Settings = default_settings) -> list[str]:
    """Validate configuration. Returns list of warnings (empty = all good).

    Raises SystemExit for critical misconfigurations in production.
    """
    warnings: list[str] = []
    is_prod = settings.DATABASE_URL and "sqlite" not in settings.DATABASE_URL

    if is_prod and settings.JWT_SECRET == DEV_JWT_SECRET:
        logger.critical("JWT_SECRET is still the default! Set a real secret for production.")
        sys.exit(1)

    try:
        ZoneInfo(settings.APP_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.critical("APP_TIMEZONE %r is not a known IANA timezone.", settings.APP_TIMEZONE)
        sys.exit(1)

    if is_prod and "*" in settings.CORS_ORIGINS:
        warnings.append("CORS_ORIGINS is set to *, restrict it in production")

    if not settings.ANTHROPIC_API_KEY:
        warnings.append("ANTHROPIC_API_KEY not set, chat assistant will report errors")

    if not settings.OPENWEATHER_API_KEY:
        warnings.append("OPENWEATHER_API_KEY not set, checkWeather tool disabled")

    if settings.CHAT_MAX_STEPS < 1:
        warnings.append("CHAT_MAX_STEPS < 1, chat turns will end without a model call")

    for w in warnings:
        logger.warning("%s", w)

    if not warnings:
        logger.info("All startup checks passed")

    return warnings
