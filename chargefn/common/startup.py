"""Startup-time helpers for safe config logging."""

from pydantic_settings import BaseSettings

from chargefn.common.logging import logger


def _safe_value(name: str, value) -> str:
    """Return a printable value with simple redaction for secret-like names."""

    if value is None:
        return "<unset>"
    if any(secret in name.upper() for secret in ["KEY", "SECRET", "PASSWORD", "TOKEN"]):
        return "<redacted>"
    return str(value)


def log_startup_config(settings: BaseSettings, keys: list[str]) -> None:
    """Log selected settings fields for quick troubleshooting."""

    config = {"service": getattr(settings, "service_name", "unknown-service")}
    for key in keys:
        config[key] = _safe_value(key, getattr(settings, key, None))
    logger.info("startup_config=%s", config)
