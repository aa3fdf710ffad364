from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from dailies.db.session import get_db
from dailies.schemas.status import StatusOut
from dailies.services.status_lookup import list_statuses

router = APIRouter()


@router.get("/statuses", response_model=list[StatusOut])
def get_statuses(active_only: bool = True, db: Session = Depends(get_db)):
    return list_statuses(db, active_only=active_only)
