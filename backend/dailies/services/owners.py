"""Polymorphic ownership of versions.

A version belongs to exactly one owning entity. Requests address it either by
numeric id (``entity_type`` + ``entity_id``) or by legacy code
(``entity_type`` + ``entity_code``); the request fields are resolved once into
an ``OwnerRef``. Once the entity is found, its versions form one series, the
``OwnerKey``, whichever scheme stored them. New rows always carry both the
entity id and its code; legacy rows carry only the code.

``OWNER_KINDS`` is the single table of per-type behaviour: which model backs
the type and how to reach the owning project.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session
from dailies.core.errors import ValidationError
from dailies.models import Asset, Episode, Playlist, Project, Sequence, Version


class EntityType(str, Enum):
    ASSET = "asset"
    SEQUENCE = "sequence"
    EPISODE = "episode"
    PROJECT = "project"
    PLAYLIST = "playlist"


@dataclass(frozen=True)
class OwnerKind:
    entity_type: EntityType
    model: type
    project_id: Callable[[Session, Any], int | None]


def _own_project(db: Session, entity: Any) -> int | None:
    return entity.project_id


def _sequence_project(db: Session, entity: Any) -> int | None:
    return db.scalar(select(Episode.project_id).where(Episode.id == entity.episode_id))


def _project_itself(db: Session, entity: Any) -> int | None:
    return entity.id


OWNER_KINDS: dict[EntityType, OwnerKind] = {
    EntityType.ASSET: OwnerKind(EntityType.ASSET, Asset, _own_project),
    EntityType.SEQUENCE: OwnerKind(EntityType.SEQUENCE, Sequence, _sequence_project),
    EntityType.EPISODE: OwnerKind(EntityType.EPISODE, Episode, _own_project),
    EntityType.PROJECT: OwnerKind(EntityType.PROJECT, Project, _project_itself),
    EntityType.PLAYLIST: OwnerKind(EntityType.PLAYLIST, Playlist, _own_project),
}


def parse_entity_type(value: str | EntityType | None) -> EntityType:
    if not value:
        raise ValidationError("entity_type must be provided")
    try:
        return EntityType(value)
    except ValueError:
        supported = ", ".join(kind.value for kind in EntityType)
        raise ValidationError(f"Unsupported entity_type '{value}'. Supported: {supported}") from None


@dataclass(frozen=True)
class OwnerById:
    entity_type: EntityType
    entity_id: int

    def match(self, model: type):
        return model.id == self.entity_id

    def label(self) -> str:
        return f"{self.entity_type.value} with ID {self.entity_id}"


@dataclass(frozen=True)
class OwnerByCode:
    entity_type: EntityType
    entity_code: str

    def match(self, model: type):
        return model.code == self.entity_code

    def label(self) -> str:
        return f"{self.entity_type.value} with code {self.entity_code}"


OwnerRef = OwnerById | OwnerByCode


def resolve_owner(entity_type: str | EntityType | None, entity_id: int | None, entity_code: str | None) -> OwnerRef:
    kind = parse_entity_type(entity_type)
    if entity_id is not None:
        if entity_id <= 0:
            raise ValidationError("entity_id must be a positive integer")
        return OwnerById(kind, entity_id)
    if entity_code:
        return OwnerByCode(kind, entity_code)
    raise ValidationError("Either entity_code or entity_id must be provided")


@dataclass(frozen=True)
class OwnerKey:
    """Every version of one owning entity, stored by id or by legacy code.

    ``entity_id`` is None only when the entity itself is gone and the rows can
    be grouped by code alone.
    """

    entity_type: EntityType
    entity_id: int | None
    entity_code: str | None

    def criteria(self) -> tuple:
        same_type = Version.entity_type == self.entity_type.value
        if self.entity_id is None:
            return (same_type, Version.entity_code == self.entity_code)
        by_id = Version.entity_id == self.entity_id
        if self.entity_code is None:
            return (same_type, by_id)
        legacy = and_(Version.entity_id.is_(None), Version.entity_code == self.entity_code)
        return (same_type, or_(by_id, legacy))

    def label(self) -> str:
        if self.entity_id is None:
            return f"{self.entity_type.value} with code {self.entity_code}"
        return f"{self.entity_type.value} with ID {self.entity_id}"


def key_for(ref: OwnerRef, owner: Any) -> OwnerKey:
    return OwnerKey(ref.entity_type, owner.id, owner.code)


def owner_of(version: Version) -> OwnerRef:
    return resolve_owner(version.entity_type, version.entity_id, version.entity_code)


def key_of(db: Session, version: Version) -> OwnerKey:
    ref = owner_of(version)
    if isinstance(ref, OwnerById):
        return OwnerKey(ref.entity_type, ref.entity_id, version.entity_code)
    owner = find_owner(db, ref)
    if owner is None:
        return OwnerKey(ref.entity_type, None, ref.entity_code)
    return key_for(ref, owner)


def find_owner(db: Session, ref: OwnerRef, lock: bool = False) -> Any | None:
    model = OWNER_KINDS[ref.entity_type].model
    query = select(model).where(ref.match(model))
    if lock:
        query = query.with_for_update()
    return db.scalar(query)


def owner_exists(db: Session, ref: OwnerRef) -> bool:
    model = OWNER_KINDS[ref.entity_type].model
    return db.scalar(select(model.id).where(ref.match(model))) is not None


def project_id_for(db: Session, ref: OwnerRef) -> int | None:
    entity = find_owner(db, ref)
    if entity is None:
        return None
    return OWNER_KINDS[ref.entity_type].project_id(db, entity)
