import logging
from collections import defaultdict
from dataclasses import dataclass, field
from sqlalchemy import select
from sqlalchemy.orm import Session
from dailies.models import Version
from dailies.services.owners import OwnerKey, key_of

logger = logging.getLogger(__name__)


@dataclass
class LatestViolation:
    owner: OwnerKey
    version_ids: list[int] = field(default_factory=list)
    latest_ids: list[int] = field(default_factory=list)
    kept_id: int | None = None


def _versions_by_owner(db: Session) -> dict[OwnerKey, list[Version]]:
    groups: dict[OwnerKey, list[Version]] = defaultdict(list)
    query = select(Version).order_by(Version.created_at.desc(), Version.id.desc())
    for version in db.scalars(query).all():
        groups[key_of(db, version)].append(version)
    return groups


def find_latest_violations(db: Session) -> list[LatestViolation]:
    """Owners whose versions do not carry exactly one latest flag."""
    violations = []
    for owner, versions in _versions_by_owner(db).items():
        latest_ids = [version.id for version in versions if version.latest]
        if len(latest_ids) != 1:
            violations.append(
                LatestViolation(owner=owner, version_ids=[v.id for v in versions], latest_ids=latest_ids)
            )
    return violations


def repair_latest_flags(db: Session, dry_run: bool = False) -> list[LatestViolation]:
    """Keep the newest flagged version (or the newest version) as latest for each broken owner."""
    groups = _versions_by_owner(db)
    violations = find_latest_violations(db)
    for violation in violations:
        versions = groups[violation.owner]
        keep = next((v for v in versions if v.latest), versions[0])
        violation.kept_id = keep.id
        if dry_run:
            continue
        for version in versions:
            version.latest = False
        db.flush()
        keep.latest = True
        db.flush()
        logger.info(
            "Latest flag repaired",
            extra={"owner": violation.owner.label(), "version_id": keep.id, "cleared": violation.latest_ids},
        )
    if dry_run:
        db.rollback()
    else:
        db.commit()
    return violations
