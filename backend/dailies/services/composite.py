import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from sqlalchemy import func, select
from dailies.core.errors import ConflictError, NotFoundError, ValidationError
from dailies.models import Asset, Episode, Playlist, Project, Sequence, Version
from dailies.schemas.composite import AssetWithVersionCreate, PlaylistWithVersionCreate, SequenceWithVersionCreate
from dailies.schemas.version import VersionOut
from dailies.services.owners import EntityType, OwnerKey, parse_entity_type
from dailies.services.version_service import (
    VersionService,
    clear_latest,
    current_latest,
    next_version_number,
    resolve_status_id,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositeKind:
    entity_type: EntityType
    model: type
    parent_model: type
    parent_field: str
    owner_fields: tuple[str, ...]
    code_prefix: Callable[[dict], str]


COMPOSITE_KINDS: dict[EntityType, CompositeKind] = {
    EntityType.ASSET: CompositeKind(
        EntityType.ASSET,
        Asset,
        Project,
        "project_id",
        ("name", "description", "asset_type", "thumbnail_path", "assigned_to"),
        lambda patch: (patch.get("asset_type") or "txt").upper(),
    ),
    EntityType.SEQUENCE: CompositeKind(
        EntityType.SEQUENCE,
        Sequence,
        Episode,
        "episode_id",
        ("name", "description", "cut_order", "story_id", "duration", "assigned_to"),
        lambda patch: "SEQ",
    ),
    EntityType.PLAYLIST: CompositeKind(
        EntityType.PLAYLIST,
        Playlist,
        Project,
        "project_id",
        ("name", "description", "assigned_to"),
        lambda patch: "PL",
    ),
}


def generate_owner_code(db, kind: CompositeKind, parent_id: int, owner_patch: dict) -> str:
    """Next free ``<PREFIX><NNN>`` code, counting owners under the same parent."""
    prefix = kind.code_prefix(owner_patch)
    siblings = db.scalar(
        select(func.count()).select_from(kind.model).where(getattr(kind.model, kind.parent_field) == parent_id)
    )
    number = (siblings or 0) + 1
    # Codes are unique across parents, so skip numbers another parent already holds.
    while db.scalar(select(kind.model.id).where(kind.model.code == f"{prefix}{number:03d}")) is not None:
        number += 1
    return f"{prefix}{number:03d}"


def create_owner_with_version(
    versions: VersionService,
    kind: str | EntityType,
    owner_patch: dict,
    version_patch: dict,
    actor_id: int | None = None,
) -> tuple[Any, VersionOut]:
    entity_type = parse_entity_type(kind)
    composite = COMPOSITE_KINDS.get(entity_type)
    if composite is None:
        raise ValidationError(f"Creating a {entity_type.value} with a version is not supported")
    parent_id = owner_patch.get(composite.parent_field)
    if not parent_id:
        raise ValidationError(f"{composite.parent_field} is required")
    name = (owner_patch.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    db = versions.db
    with versions.transaction(f"{entity_type.value} with version conflicts with an existing record"):
        parent_model = composite.parent_model
        parent = db.scalar(select(parent_model).where(parent_model.id == parent_id).with_for_update())
        if parent is None:
            raise NotFoundError(f"{parent_model.__name__} with ID {parent_id} not found")

        code = owner_patch.get("code") or generate_owner_code(db, composite, parent_id, owner_patch)
        if db.scalar(select(composite.model.id).where(composite.model.code == code)) is not None:
            raise ConflictError(f"{entity_type.value.capitalize()} with code '{code}' already exists")

        now = datetime.utcnow()
        fields = {field: owner_patch[field] for field in composite.owner_fields if owner_patch.get(field) is not None}
        fields["name"] = name
        owner = composite.model(code=code, created_by=actor_id, **fields)
        setattr(owner, composite.parent_field, parent_id)
        owner.status_id = resolve_status_id(db, owner_patch.get("status"), None)
        if owner.status_id and hasattr(owner, "status_updated_at"):
            owner.status_updated_at = now
        db.add(owner)
        db.flush()

        key = OwnerKey(entity_type, owner.id, code)
        version_code = version_patch.get("code") or f"{code}_001"
        if versions.code_taken(version_code):
            raise ConflictError(f"Version with code '{version_code}' already exists")
        latest = version_patch.get("latest", True) or current_latest(db, key) is None
        if latest:
            clear_latest(db, key)
        version = Version(
            code=version_code,
            name=version_patch.get("name") or f"Initial version of {name}",
            description=version_patch.get("description") or "Initial version created automatically",
            entity_type=entity_type.value,
            entity_id=owner.id,
            entity_code=code,
            version_number=next_version_number(db, key),
            latest=latest,
            file_path=version_patch.get("file_path"),
            thumbnail_path=version_patch.get("thumbnail_path"),
            format=version_patch.get("format"),
            frame_range=version_patch.get("frame_range"),
            artist=version_patch.get("artist"),
            duration=version_patch.get("duration"),
            status_id=versions.resolve_status(version_patch.get("status")),
            status_updated_at=now,
            created_by=actor_id,
            assigned_to=version_patch.get("assigned_to") or owner_patch.get("assigned_to"),
        )
        db.add(version)
        db.flush()

    logger.info(
        "Owner created with initial version",
        extra={"entity_type": entity_type.value, "owner_id": owner.id, "version_id": version.id},
    )
    return owner, versions.present(version)


def create_asset_with_version(versions: VersionService, payload: AssetWithVersionCreate, actor_id: int | None = None):
    return create_owner_with_version(
        versions, EntityType.ASSET, payload.asset.model_dump(), payload.version.model_dump(), actor_id
    )


def create_sequence_with_version(
    versions: VersionService, payload: SequenceWithVersionCreate, actor_id: int | None = None
):
    return create_owner_with_version(
        versions, EntityType.SEQUENCE, payload.sequence.model_dump(), payload.version.model_dump(), actor_id
    )


def create_playlist_with_version(
    versions: VersionService, payload: PlaylistWithVersionCreate, actor_id: int | None = None
):
    return create_owner_with_version(
        versions, EntityType.PLAYLIST, payload.playlist.model_dump(), payload.version.model_dump(), actor_id
    )
