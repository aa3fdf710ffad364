"""Version lifecycle: create, read, update, delete and file attachment.

Every mutation runs in one transaction that also maintains the latest flag of
the owning entity's versions. Work that must not fail the mutation (file
cleanup, notifications) is queued on a ``PostCommitEffects`` list and run once
the transaction has committed.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from functools import partial
from pathlib import Path
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from dailies.core.config import settings
from dailies.core.errors import ConflictError, DailiesError, NotFoundError, ValidationError
from dailies.models import Project, Version
from dailies.schemas.version import VersionCreate, VersionOut, VersionUpdate
from dailies.services.effects import PostCommitEffects
from dailies.services.file_store import LocalFileStore, UploadBlob, validation_rules
from dailies.services.notifications import (
    INBOX_VERSION_APPROVED,
    INBOX_VERSION_REJECTED,
    NO_REASON,
    VERSION_APPROVED,
    VERSION_REJECTED,
    NotificationDispatcher,
)
from dailies.services.owners import (
    OwnerKey,
    find_owner,
    key_for,
    key_of,
    owner_of,
    parse_entity_type,
    project_id_for,
    resolve_owner,
)
from dailies.services.status_lookup import status_code_for_id, status_id_for_code
from dailies.services.thumbnails import THUMBNAIL_CONTENT_TYPE, can_thumbnail, derive_thumbnail

logger = logging.getLogger(__name__)

PRIMARY = "primary"
THUMBNAIL = "thumbnail"
FILE_KINDS = (PRIMARY, THUMBNAIL)

MEDIA_BUCKET = "media"
THUMBNAILS_BUCKET = "thumbnails"

APPROVED = "approved"
REJECTED = "rejected"


def translate_integrity_error(exc: IntegrityError, conflict_message: str) -> DailiesError:
    detail = str(exc.orig).lower()
    if "foreign key" in detail:
        return NotFoundError("Referenced record not found")
    return ConflictError(conflict_message)


def next_version_number(db: Session, key: OwnerKey) -> int:
    current = db.scalar(select(func.max(Version.version_number)).where(*key.criteria()))
    return (current or 0) + 1


def current_latest(db: Session, key: OwnerKey) -> Version | None:
    return db.scalar(select(Version).where(*key.criteria(), Version.latest.is_(True)))


def clear_latest(db: Session, key: OwnerKey, exclude_id: int | None = None) -> int:
    stmt = update(Version).where(*key.criteria(), Version.latest.is_(True))
    if exclude_id is not None:
        stmt = stmt.where(Version.id != exclude_id)
    return db.execute(stmt.values(latest=False)).rowcount


def promote_most_recent(db: Session, key: OwnerKey) -> Version | None:
    candidate = db.scalar(
        select(Version)
        .where(*key.criteria())
        .order_by(Version.created_at.desc(), Version.id.desc())
        .limit(1)
    )
    if candidate is not None:
        candidate.latest = True
        db.flush()
    return candidate


def resolve_status_id(db: Session, code: str | None, default_code: str | None) -> str | None:
    # An explicitly named status must exist; a missing default just leaves it empty.
    if code:
        status_id = status_id_for_code(db, code)
        if status_id is None:
            raise NotFoundError(f"Status '{code}' not found")
        return status_id
    return status_id_for_code(db, default_code)


class VersionService:
    def __init__(
        self,
        db: Session,
        store: LocalFileStore,
        dispatcher: NotificationDispatcher,
        default_status_code: str | None = None,
    ):
        self.db = db
        self.store = store
        self.dispatcher = dispatcher
        self.default_status_code = default_status_code or settings.default_status_code

    @contextmanager
    def transaction(self, conflict_message: str = "Version conflicts with an existing record"):
        try:
            yield
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise translate_integrity_error(exc, conflict_message) from exc
        except StaleDataError as exc:
            self.db.rollback()
            raise NotFoundError("Version was removed concurrently") from exc
        except Exception:
            self.db.rollback()
            raise

    def resolve_status(self, code: str | None) -> str | None:
        return resolve_status_id(self.db, code, self.default_status_code)

    def code_taken(self, code: str) -> bool:
        return self.db.scalar(select(Version.id).where(Version.code == code)) is not None

    # Reads

    def _resolve_url(self, value: str | None, default_bucket: str, version_id: int) -> str | None:
        if not value:
            return value
        if value.startswith(("http://", "https://")) and not self.store.is_presigned(value):
            return value
        try:
            located = self.store.extract_bucket_and_path(value, default_bucket)
            if located is not None:
                return self.store.resolve_url(*located)
        except DailiesError:
            logger.warning(
                "Failed to resolve file URL",
                extra={"version_id": version_id, "path": value},
                exc_info=True,
            )
        return value

    def present(self, version: Version) -> VersionOut:
        status = version.status
        if status is not None and status.id == version.status_id:
            status_code = status.code
        else:
            status_code = status_code_for_id(self.db, version.status_id)
        data = {column.key: getattr(version, column.key) for column in Version.__table__.columns}
        data["status"] = status_code
        data["file_path"] = self._resolve_url(version.file_path, MEDIA_BUCKET, version.id)
        data["thumbnail_path"] = self._resolve_url(version.thumbnail_path, THUMBNAILS_BUCKET, version.id)
        return VersionOut(**data)

    def _load(self, version_id: int, lock: bool = False) -> Version:
        if version_id is None or version_id <= 0:
            raise ValidationError("Version id must be a positive integer")
        query = select(Version).where(Version.id == version_id)
        if lock:
            query = query.with_for_update()
        version = self.db.scalar(query)
        if version is None:
            raise NotFoundError(f"Version with ID {version_id} not found")
        return version

    def find_all(
        self,
        owner_code: str | None = None,
        owner_id: int | None = None,
        entity_type: str | None = None,
        latest: bool | None = None,
    ) -> list[VersionOut]:
        query = select(Version)
        if entity_type:
            query = query.where(Version.entity_type == parse_entity_type(entity_type).value)
        if owner_id is not None:
            query = query.where(Version.entity_id == owner_id)
        if owner_code:
            query = query.where(Version.entity_code == owner_code)
        if latest is not None:
            query = query.where(Version.latest.is_(latest))
        query = query.order_by(Version.created_at.desc(), Version.id.desc())
        return [self.present(version) for version in self.db.scalars(query)]

    def find_by_id(self, version_id: int) -> VersionOut:
        return self.present(self._load(version_id))

    def find_by_code(self, code: str) -> VersionOut:
        version = self.db.scalar(select(Version).where(Version.code == code))
        if version is None:
            raise NotFoundError(f"Version with code '{code}' not found")
        return self.present(version)

    # Writes

    def create(self, payload: VersionCreate, actor_id: int | None = None) -> VersionOut:
        ref = resolve_owner(payload.entity_type, payload.entity_id, payload.entity_code)
        with self.transaction(f"Version for {ref.label()} conflicts with an existing record"):
            owner = find_owner(self.db, ref, lock=True)
            if owner is None:
                raise NotFoundError(f"{ref.label()} not found")
            key = key_for(ref, owner)
            if payload.code and self.code_taken(payload.code):
                raise ConflictError(f"Version with code '{payload.code}' already exists")

            number = next_version_number(self.db, key)
            latest = payload.latest or current_latest(self.db, key) is None
            if latest:
                clear_latest(self.db, key)

            code = payload.code or f"{owner.code}_v{number:03d}"
            if not payload.code and self.code_taken(code):
                raise ConflictError(f"Version with code '{code}' already exists")

            version = Version(
                code=code,
                name=payload.name or code,
                description=payload.description,
                entity_type=ref.entity_type.value,
                entity_id=owner.id,
                entity_code=owner.code,
                version_number=number,
                latest=latest,
                file_path=payload.file_path,
                thumbnail_path=payload.thumbnail_path,
                format=payload.format,
                frame_range=payload.frame_range,
                artist=payload.artist,
                duration=payload.duration,
                status_id=self.resolve_status(payload.status),
                status_updated_at=datetime.utcnow(),
                created_by=actor_id,
                assigned_to=payload.assigned_to,
            )
            self.db.add(version)
            self.db.flush()
        logger.info(
            "Version created",
            extra={"version_id": version.id, "entity_type": version.entity_type, "version_number": number},
        )
        return self.present(version)

    def update(self, version_id: int, patch: VersionUpdate, actor_id: int | None = None) -> VersionOut:
        changes = patch.model_dump(exclude_unset=True)
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("Name cannot be empty")
        effects = PostCommitEffects()
        with self.transaction():
            version = self._load(version_id, lock=True)
            new_status_id = version.status_id
            status_id = changes.pop("status_id", None)
            status_code = changes.pop("status", None)
            if status_id:
                if status_code_for_id(self.db, status_id) is None:
                    raise NotFoundError(f"Status with ID {status_id} not found")
                new_status_id = status_id
            elif status_code:
                new_status_id = self.resolve_status(status_code)
            status_changed = new_status_id != version.status_id

            latest = changes.pop("latest", None)
            if latest is True and not version.latest:
                clear_latest(self.db, key_of(self.db, version), exclude_id=version.id)
                version.latest = True
            elif latest is False and version.latest:
                raise ValidationError(
                    "Cannot unset latest on the current latest version; mark another version as latest instead"
                )

            for field, value in changes.items():
                setattr(version, field, value)
            if status_changed:
                version.status_id = new_status_id
                version.status_updated_at = datetime.utcnow()
            self.db.flush()
        self.db.refresh(version)

        if status_changed:
            self._queue_status_notifications(effects, version, actor_id)
        effects.run()
        logger.info("Version updated", extra={"version_id": version.id, "status_changed": status_changed})
        return self.present(version)

    def _queue_status_notifications(self, effects: PostCommitEffects, version: Version, actor_id: int | None) -> None:
        status_code = status_code_for_id(self.db, version.status_id)
        if status_code not in (APPROVED, REJECTED):
            return
        approved = status_code == APPROVED
        effects.add(
            "notify_status_change",
            partial(self._notify_status_change, version, actor_id, approved),
            version_id=version.id,
            status=status_code,
        )

    def _notify_status_change(self, version: Version, actor_id: int | None, approved: bool) -> None:
        ref = owner_of(version)
        project_id = project_id_for(self.db, ref)
        project = self.db.get(Project, project_id) if project_id else None
        payload = {
            "version_id": version.id,
            "version_code": version.code,
            "owner_type": ref.entity_type.value,
            "owner_code": version.entity_code,
            "project_name": project.name if project else None,
            "changed_by": str(actor_id) if actor_id else "System",
        }
        if not approved:
            payload["reason"] = version.description or NO_REASON
        self.dispatcher.notify(VERSION_APPROVED if approved else VERSION_REJECTED, payload)

        if version.created_by and actor_id and version.created_by != actor_id:
            inbox = {**payload, "user_id": version.created_by, "triggered_by": actor_id}
            self.dispatcher.notify(INBOX_VERSION_APPROVED if approved else INBOX_VERSION_REJECTED, inbox)

    def remove(self, version_id: int, actor_id: int | None = None) -> None:
        effects = PostCommitEffects()
        with self.transaction():
            version = self._load(version_id, lock=True)
            key = key_of(self.db, version)
            was_latest = version.latest
            stored = [(version.thumbnail_path, THUMBNAILS_BUCKET), (version.file_path, MEDIA_BUCKET)]
            result = self.db.execute(delete(Version).where(Version.id == version_id))
            if result.rowcount == 0:
                raise NotFoundError(f"Version with ID {version_id} not found")
            promoted = promote_most_recent(self.db, key) if was_latest else None

        for path, bucket in stored:
            if path:
                effects.add("delete_file", partial(self._delete_stored, path, bucket), version_id=version_id, path=path)
        effects.run()
        logger.info(
            "Version deleted",
            extra={
                "version_id": version_id,
                "promoted_version_id": promoted.id if promoted else None,
                "requested_by": actor_id,
            },
        )

    def _delete_stored(self, path_or_url: str, default_bucket: str) -> None:
        located = self.store.extract_bucket_and_path(path_or_url, default_bucket)
        if located is None:
            logger.warning("Stored file is not in a known bucket", extra={"path": path_or_url})
            return
        self.store.delete(*located)

    def attach_file(
        self,
        version_id: int,
        blob: UploadBlob,
        kind: str,
        actor_id: int | None = None,
    ) -> VersionOut:
        if kind not in FILE_KINDS:
            raise ValidationError(f"Unsupported file kind '{kind}'. Supported: {', '.join(FILE_KINDS)}")
        version = self._load(version_id)
        old_file, old_thumbnail = version.file_path, version.thumbnail_path

        new_file = None
        new_thumbnail = None
        if kind == THUMBNAIL:
            new_thumbnail = self.store.upload(THUMBNAILS_BUCKET, blob, validation_rules("thumbnail")).path
        else:
            new_file = self.store.upload(MEDIA_BUCKET, blob, validation_rules("media")).path
            new_thumbnail = self._derive_thumbnail(version_id, blob)

        effects = PostCommitEffects()
        try:
            with self.transaction():
                version = self._load(version_id, lock=True)
                if new_file:
                    version.file_path = new_file
                if new_thumbnail:
                    version.thumbnail_path = new_thumbnail
                self.db.flush()
        except Exception:
            # The record is unchanged; the blobs just stored are orphans.
            if new_file:
                effects.add("discard_upload", partial(self.store.delete, MEDIA_BUCKET, new_file), path=new_file)
            if new_thumbnail:
                effects.add(
                    "discard_upload", partial(self.store.delete, THUMBNAILS_BUCKET, new_thumbnail), path=new_thumbnail
                )
            effects.run()
            raise

        if new_file and old_file:
            effects.add("delete_replaced", partial(self._delete_stored, old_file, MEDIA_BUCKET), version_id=version_id)
        if new_thumbnail and old_thumbnail:
            effects.add(
                "delete_replaced",
                partial(self._delete_stored, old_thumbnail, THUMBNAILS_BUCKET),
                version_id=version_id,
            )
        effects.run()
        logger.info(
            "Version file attached",
            extra={"version_id": version_id, "kind": kind, "thumbnail": bool(new_thumbnail), "requested_by": actor_id},
        )
        return self.present(version)

    def _derive_thumbnail(self, version_id: int, blob: UploadBlob) -> str | None:
        if not can_thumbnail(blob.content_type):
            return None
        try:
            data = derive_thumbnail(blob.data)
            name = f"thumbnail-{Path(blob.filename or 'upload').stem}.webp"
            result = self.store.upload(
                THUMBNAILS_BUCKET,
                UploadBlob(data=data, content_type=THUMBNAIL_CONTENT_TYPE, filename=name),
                validation_rules("thumbnail"),
            )
        except DailiesError:
            logger.warning("Automatic thumbnail generation failed", extra={"version_id": version_id}, exc_info=True)
            return None
        return result.path
