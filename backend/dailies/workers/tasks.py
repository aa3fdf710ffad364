import logging
from dailies.services.notifications import deliver

logger = logging.getLogger(__name__)


def dispatch_notification_job(event: str, payload: dict) -> None:
    deliver(event, payload)
    logger.info("Notification delivered", extra={"event": event, "version_id": payload.get("version_id")})
