"""
Sentry integration for error tracking and performance monitoring.

Features:
- Automatic exception capture
- Performance tracing
- Organization (tenant) tags
"""

import logging
from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from manos_gateway.core.config import settings
from manos_gateway.core.exceptions import UpstreamException

logger = logging.getLogger(__name__)

_initialized = False


def init_sentry() -> bool:
    """
    Initialize Sentry SDK.

    Call this once during application startup.

    Returns:
        True if Sentry was initialized, False otherwise.
    """
    global _initialized

    dsn = settings.SENTRY_DSN
    if not dsn:
        logger.info("SENTRY_DSN not configured, error tracking disabled")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=settings.ENVIRONMENT,
            release=f"{settings.APP_NAME}@{settings.APP_VERSION}",
            traces_sample_rate=0.1 if settings.ENVIRONMENT == "production" else 1.0,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                HttpxIntegration(),
                LoggingIntegration(
                    level=logging.INFO,
                    event_level=logging.ERROR,
                ),
            ],
            send_default_pii=False,
            before_send=_before_send,
            before_send_transaction=_before_send_transaction,
            max_breadcrumbs=50,
            attach_stacktrace=True,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False

    _initialized = True
    logger.info(f"Sentry initialized for {settings.ENVIRONMENT} environment")
    return True


def _before_send(event: dict, hint: dict) -> Optional[dict]:
    """
    Process event before sending to Sentry.

    Client errors (4xx) are expected traffic and are not reported. Upstream
    failures are grouped per service and failure kind rather than per stack.
    """
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]
        status_code = getattr(exc_value, "status_code", None)
        if isinstance(status_code, int) and 400 <= status_code < 500:
            return None

        if isinstance(exc_value, UpstreamException):
            event.setdefault("tags", {})["upstream_service"] = exc_value.service
            event["fingerprint"] = ["upstream", exc_value.service, exc_value.error_code]

    return event


def _before_send_transaction(event: dict, hint: dict) -> Optional[dict]:
    """Skip health check and metrics transactions."""
    transaction_name = event.get("transaction", "")
    if any(path in transaction_name for path in ["/health", "/metrics", "/docs"]):
        return None

    return event


def set_tag(key: str, value: Any):
    """Set a tag on the current scope."""
    if _initialized:
        sentry_sdk.set_tag(key, str(value))
