from sqlalchemy import select
from sqlalchemy.orm import Session
from dailies.models import Status


def status_id_for_code(db: Session, code: str | None) -> str | None:
    if not code:
        return None
    return db.scalar(select(Status.id).where(Status.code == code))


def status_code_for_id(db: Session, status_id: str | None) -> str | None:
    if not status_id:
        return None
    return db.scalar(select(Status.code).where(Status.id == status_id))


def list_statuses(db: Session, active_only: bool = True) -> list[Status]:
    query = select(Status).order_by(Status.sort_order, Status.code)
    if active_only:
        query = query.where(Status.is_active.is_(True))
    return list(db.scalars(query))
