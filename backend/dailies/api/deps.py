from functools import lru_cache
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from dailies.core.errors import ValidationError
from dailies.core.logging import actor_id_ctx_var
from dailies.db.session import get_db
from dailies.services.file_store import LocalFileStore
from dailies.services.notifications import NotificationDispatcher
from dailies.services.version_service import VersionService


@lru_cache
def get_store() -> LocalFileStore:
    return LocalFileStore.from_settings()


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher.from_settings()


async def get_actor_id(x_user_id: str | None = Header(default=None)) -> int | None:
    if not x_user_id:
        return None
    try:
        actor_id = int(x_user_id)
    except ValueError:
        raise ValidationError("X-User-Id must be an integer") from None
    actor_id_ctx_var.set(actor_id)
    return actor_id


def get_version_service(
    db: Session = Depends(get_db),
    store: LocalFileStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> VersionService:
    return VersionService(db, store, dispatcher)
