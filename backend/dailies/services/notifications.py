"""Notification dispatch for version workflow transitions.

Two channels: an informational Slack message for the team and an in-app
notification row for the version's creator. ``NotificationDispatcher.notify``
is fire-and-forget; delivery problems are logged and never reach the caller.
"""

import json
import logging
from typing import Any, Callable
import httpx
from sqlalchemy.orm import Session
from dailies.core.config import settings
from dailies.models import Notification

logger = logging.getLogger(__name__)

VERSION_APPROVED = "version.approved"
VERSION_REJECTED = "version.rejected"
INBOX_VERSION_APPROVED = "inbox.version_approved"
INBOX_VERSION_REJECTED = "inbox.version_rejected"

NO_REASON = "No reason provided"


class SlackClient:
    def __init__(
        self,
        token: str | None,
        default_channel: str,
        api_url: str,
        enabled: bool = True,
        timeout: float = 5.0,
    ):
        self.token = token
        self.default_channel = default_channel
        self.api_url = api_url
        self.enabled = enabled and bool(token)
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "SlackClient":
        return cls(
            token=settings.slack_bot_token,
            default_channel=settings.slack_default_channel,
            api_url=settings.slack_api_url,
            enabled=settings.slack_enabled,
            timeout=settings.slack_timeout_seconds,
        )

    def send(self, text: str, blocks: list[dict] | None = None, channel: str | None = None) -> None:
        if not self.enabled:
            logger.debug("Slack disabled, skipping notification")
            return
        channel = channel or self.default_channel
        response = httpx.post(
            self.api_url,
            headers={"Authorization": f"Bearer {self.token}"},
            json={"channel": channel, "text": text, "blocks": blocks or []},
            timeout=self.timeout,
        )
        response.raise_for_status()
        body = response.json()
        if not body.get("ok", False):
            raise RuntimeError(f"Slack rejected message: {body.get('error', 'unknown error')}")
        logger.info("Slack notification sent", extra={"channel": channel})


def approval_message(payload: dict) -> tuple[str, list[dict]]:
    version_code = payload["version_code"]
    approved_by = payload.get("changed_by") or "System"
    owner = payload.get("project_name") or payload.get("owner_code") or "Unknown Project"
    text = f"Version {version_code} approved by {approved_by}"
    block = (
        f"*Version Approved*\n*Version:* {version_code}\n*Project:* {owner}\n*Approved by:* {approved_by}"
    )
    return text, [{"type": "section", "text": {"type": "mrkdwn", "text": block}}]


def rejection_message(payload: dict) -> tuple[str, list[dict]]:
    version_code = payload["version_code"]
    rejected_by = payload.get("changed_by") or "System"
    reason = payload.get("reason") or NO_REASON
    text = f"Version {version_code} rejected by {rejected_by}"
    block = f"*Version Rejected*\n*Version:* {version_code}\n*Rejected by:* {rejected_by}\n*Reason:* {reason}"
    return text, [{"type": "section", "text": {"type": "mrkdwn", "text": block}}]


def record_in_app(db: Session, event: str, payload: dict) -> Notification:
    version_code = payload["version_code"]
    if event == INBOX_VERSION_APPROVED:
        kind = "version_approved"
        title = "Version Approved"
        message = f'Your version "{version_code}" has been approved'
    else:
        kind = "version_rejected"
        title = "Version Rejected"
        reason = payload.get("reason")
        message = f'Your version "{version_code}" has been rejected'
        if reason:
            message = f"{message}: {reason}"
    notification = Notification(
        user_id=payload["user_id"],
        type=kind,
        title=title,
        message=message,
        entity_type="version",
        entity_id=str(payload["version_id"]),
        triggered_by=payload.get("triggered_by"),
        metadata_json=json.dumps({"versionCode": version_code, "reason": payload.get("reason")}),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def deliver(
    event: str,
    payload: dict,
    slack: SlackClient | None = None,
    session_factory: Callable[[], Session] | None = None,
) -> None:
    if event in (VERSION_APPROVED, VERSION_REJECTED):
        slack = slack or SlackClient.from_settings()
        build = approval_message if event == VERSION_APPROVED else rejection_message
        text, blocks = build(payload)
        slack.send(text, blocks)
        return
    if event in (INBOX_VERSION_APPROVED, INBOX_VERSION_REJECTED):
        if session_factory is None:
            from dailies.db.session import SessionLocal

            session_factory = SessionLocal
        db = session_factory()
        try:
            record_in_app(db, event, payload)
        finally:
            db.close()
        return
    logger.warning("Unknown notification event", extra={"event": event})


class NotificationDispatcher:
    def __init__(
        self,
        backend: str = "inline",
        slack: SlackClient | None = None,
        session_factory: Callable[[], Session] | None = None,
    ):
        self.backend = backend
        self.slack = slack
        self.session_factory = session_factory

    @classmethod
    def from_settings(cls) -> "NotificationDispatcher":
        return cls(backend=settings.notification_backend, slack=SlackClient.from_settings())

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        try:
            if self.backend == "rq":
                from dailies.workers import tasks
                from dailies.workers.rq_queue import get_queue

                job = get_queue().enqueue(tasks.dispatch_notification_job, event, payload)
                logger.info("Notification enqueued", extra={"event": event, "job_id": job.id})
            else:
                deliver(event, payload, slack=self.slack, session_factory=self.session_factory)
        except Exception:
            logger.exception("Notification dispatch failed", extra={"event": event})
