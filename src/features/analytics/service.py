"""Security event logging for rejected chat input."""

import logging
from datetime import datetime, timezone

from fastapi import Request

from src.core.firestore import FirestoreClient

logger = logging.getLogger(__name__)

SECURITY_EVENTS_COLLECTION = "chat-security-events"


class AnalyticsService:
    """Record validation rejections for abuse monitoring."""

    def __init__(self, firestore: FirestoreClient | None):
        self.firestore = firestore

    async def log_rejection(
        self,
        error_code: str,
        message_length: int,
        locale: str,
        client_ip: str | None = None,
    ) -> None:
        """
        Log a rejected chat input.

        The message text itself is never stored. Failures to persist the
        event are logged and swallowed so they cannot change the response.
        """
        timestamp = datetime.now(timezone.utc)
        logger.warning(
            "Chat input rejected: code=%s length=%d locale=%s at=%s",
            error_code,
            message_length,
            locale,
            timestamp.isoformat(),
        )

        if self.firestore is None:
            return

        event_data = {
            "error_code": error_code,
            "message_length": message_length,
            "locale": locale,
            "client_ip": client_ip,
            "timestamp": timestamp,
        }
        try:
            ref = self.firestore.db.collection(SECURITY_EVENTS_COLLECTION).document()
            event_data["id"] = ref.id
            ref.set(event_data)
        except Exception as e:
            logger.warning("Failed to store security event: %s", e)


def get_analytics_service(request: Request) -> AnalyticsService:
    """Get analytics service instance."""
    return AnalyticsService(firestore=getattr(request.app.state, "firestore", None))
