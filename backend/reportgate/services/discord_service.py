"""Discord webhook alerts for internal failures."""

import threading
from datetime import UTC, datetime, timedelta

import httpx
import structlog

from reportgate.config import settings

logger = structlog.get_logger()

# Rate limiting for error alerts to prevent alert storms
_last_alert_time: datetime | None = None
_alert_cooldown = timedelta(seconds=30)
_alert_lock = threading.Lock()

ALERT_COLOR_RED = 15158332


def _should_send_alert() -> bool:
    """Check if we should send an alert (rate limiting)."""
    global _last_alert_time
    with _alert_lock:
        now = datetime.now(UTC)
        if _last_alert_time and (now - _last_alert_time) < _alert_cooldown:
            return False
        _last_alert_time = now
        return True


def reset_alert_rate_limit() -> None:
    """Reset the rate limit state. Used in tests."""
    global _last_alert_time
    with _alert_lock:
        _last_alert_time = None


def _truncate(value: str, limit: int) -> str:
    return value[:limit] + "..." if len(value) > limit else value


def build_alert_payload(
    error_type: str,
    message: str,
    *,
    path: str | None = None,
    correlation_id: str | None = None,
    status_code: int | None = None,
    context: dict | None = None,
) -> dict:
    """Build the Discord embed for an error alert."""
    fields = [{"name": "Error Type", "value": error_type, "inline": True}]
    if status_code:
        fields.append({"name": "Status", "value": str(status_code), "inline": True})
    if path:
        fields.append({"name": "Path", "value": path, "inline": True})
    if correlation_id:
        fields.append({"name": "Correlation ID", "value": correlation_id, "inline": True})
    if message:
        fields.append({"name": "Message", "value": _truncate(message, 500), "inline": False})
    for key, value in (context or {}).items():
        fields.append({"name": key, "value": _truncate(str(value), 200), "inline": True})

    return {
        "embeds": [
            {
                "title": "Server Error Alert",
                "color": ALERT_COLOR_RED,
                "fields": fields,
                "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            }
        ]
    }


def _alerts_enabled(error_type: str) -> str | None:
    webhook_url = settings.discord_alerts_webhook_url

    if not webhook_url:
        logger.debug("discord_alerts_webhook_not_configured")
        return None

    if not _should_send_alert():
        logger.info("discord_alert_rate_limited", error_type=error_type)
        return None

    return webhook_url


async def send_error_alert(error_type: str, message: str, **kwargs) -> bool:
    """
    Send error alert to Discord webhook.

    Returns True if notification was sent successfully, False otherwise.
    Failures are logged but don't raise exceptions.
    Rate-limited to prevent alert storms (max 1 alert per 30 seconds).
    """
    webhook_url = _alerts_enabled(error_type)
    if not webhook_url:
        return False

    payload = build_alert_payload(error_type, message, **kwargs)

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(webhook_url, json=payload, timeout=10.0)
            response.raise_for_status()
            logger.info("discord_error_alert_sent", error_type=error_type)
            return True
    except httpx.HTTPStatusError as e:
        logger.error(
            "discord_alert_webhook_error",
            error_type=error_type,
            status_code=e.response.status_code,
        )
        return False
    except httpx.RequestError as e:
        logger.error(
            "discord_alert_request_error",
            error_type=error_type,
            error=str(e),
        )
        return False


def send_error_alert_sync(error_type: str, message: str, **kwargs) -> bool:
    """
    Synchronous version of send_error_alert for scheduler jobs.

    Uses httpx synchronously to avoid asyncio.run() complexity.
    """
    webhook_url = _alerts_enabled(error_type)
    if not webhook_url:
        return False

    payload = build_alert_payload(error_type, message, **kwargs)

    try:
        with httpx.Client() as client:
            response = client.post(webhook_url, json=payload, timeout=10.0)
            response.raise_for_status()
            logger.info("discord_error_alert_sent", error_type=error_type)
            return True
    except httpx.HTTPStatusError as e:
        logger.error(
            "discord_alert_webhook_error",
            error_type=error_type,
            status_code=e.response.status_code,
        )
        return False
    except httpx.RequestError as e:
        logger.error(
            "discord_alert_request_error",
            error_type=error_type,
            error=str(e),
        )
        return False
