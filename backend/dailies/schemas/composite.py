from datetime import datetime
from pydantic import BaseModel, Field
from dailies.schemas.version import VersionOut


class InitialVersionIn(BaseModel):
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


class AssetIn(BaseModel):
    project_id: int | None = None
    code: str | None = Field(default=None, max_length=50)
    name: str = Field(max_length=255)
    asset_type: str = "txt"
    description: str | None = None
    thumbnail_path: str | None = None
    status: str | None = None
    assigned_to: int | None = None


class SequenceIn(BaseModel):
    episode_id: int | None = None
    code: str | None = Field(default=None, max_length=50)
    name: str = Field(max_length=255)
    description: str | None = None
    cut_order: int = 1
    story_id: str | None = None
    duration: float | None = None
    status: str | None = None
    assigned_to: int | None = None


class PlaylistIn(BaseModel):
    project_id: int | None = None
    code: str | None = Field(default=None, max_length=50)
    name: str = Field(max_length=255)
    description: str | None = None
    status: str | None = None
    assigned_to: int | None = None


class AssetWithVersionCreate(BaseModel):
    asset: AssetIn
    version: InitialVersionIn = Field(default_factory=InitialVersionIn)


class SequenceWithVersionCreate(BaseModel):
    sequence: SequenceIn
    version: InitialVersionIn = Field(default_factory=InitialVersionIn)


class PlaylistWithVersionCreate(BaseModel):
    playlist: PlaylistIn
    version: InitialVersionIn = Field(default_factory=InitialVersionIn)


class AssetOut(BaseModel):
    id: int
    project_id: int
    code: str
    name: str
    asset_type: str
    description: str | None
    thumbnail_path: str | None
    status_id: str | None
    created_by: int | None
    assigned_to: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class SequenceOut(BaseModel):
    id: int
    episode_id: int
    code: str
    name: str
    description: str | None
    cut_order: int
    story_id: str | None
    duration: float | None
    status_id: str | None
    created_by: int | None
    assigned_to: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class PlaylistOut(BaseModel):
    id: int
    project_id: int
    code: str
    name: str
    description: str | None
    status_id: str | None
    created_by: int | None
    assigned_to: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class AssetWithVersionOut(BaseModel):
    asset: AssetOut
    version: VersionOut


class SequenceWithVersionOut(BaseModel):
    sequence: SequenceOut
    version: VersionOut


class PlaylistWithVersionOut(BaseModel):
    playlist: PlaylistOut
    version: VersionOut
