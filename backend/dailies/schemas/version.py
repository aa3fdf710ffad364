from datetime import datetime
from pydantic import BaseModel, Field


class VersionCreate(BaseModel):
    entity_type: str | None = None
    entity_id: int | None = None
    entity_code: str | None = None
    code: str | None = Field(default=None, max_length=100)
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    format: str | None = None
    frame_range: str | None = None
    artist: str | None = None
    duration: float | None = None
    file_path: str | None = None
    thumbnail_path: str | None = None
    status: str | None = None
    assigned_to: int | None = None
    latest: bool = True


class VersionUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    format: str | None = None
    frame_range: str | None = None
    artist: str | None = None
    duration: float | None = None
    file_path: str | None = None
    thumbnail_path: str | None = None
    assigned_to: int | None = None
    latest: bool | None = None
    status: str | None = None
    status_id: str | None = None


class VersionFilter(BaseModel):
    owner_code: str | None = None
    owner_id: int | None = None
    entity_type: str | None = None
    latest: bool | None = None


class VersionOut(BaseModel):
    id: int
    code: str
    name: str
    description: str | None
    entity_type: str
    entity_id: int | None
    entity_code: str | None
    version_number: int
    latest: bool
    file_path: str | None
    thumbnail_path: str | None
    format: str | None
    frame_range: str | None
    artist: str | None
    duration: float | None
    status: str | None
    status_id: str | None
    status_updated_at: datetime | None
    created_by: int | None
    assigned_to: int | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
