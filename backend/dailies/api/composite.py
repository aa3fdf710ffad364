from fastapi import APIRouter, Depends
from dailies.api.deps import get_actor_id, get_version_service
from dailies.schemas.composite import (
    AssetOut,
    AssetWithVersionCreate,
    AssetWithVersionOut,
    PlaylistOut,
    PlaylistWithVersionCreate,
    PlaylistWithVersionOut,
    SequenceOut,
    SequenceWithVersionCreate,
    SequenceWithVersionOut,
)
from dailies.services.composite import (
    create_asset_with_version,
    create_playlist_with_version,
    create_sequence_with_version,
)
from dailies.services.version_service import VersionService

router = APIRouter()


@router.post("/assets/with-version", response_model=AssetWithVersionOut, status_code=201)
def create_asset(
    payload: AssetWithVersionCreate,
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    asset, version = create_asset_with_version(service, payload, actor_id=actor_id)
    return AssetWithVersionOut(asset=AssetOut.model_validate(asset), version=version)


@router.post("/sequences/with-version", response_model=SequenceWithVersionOut, status_code=201)
def create_sequence(
    payload: SequenceWithVersionCreate,
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    sequence, version = create_sequence_with_version(service, payload, actor_id=actor_id)
    return SequenceWithVersionOut(sequence=SequenceOut.model_validate(sequence), version=version)


@router.post("/playlists/with-version", response_model=PlaylistWithVersionOut, status_code=201)
def create_playlist(
    payload: PlaylistWithVersionCreate,
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    playlist, version = create_playlist_with_version(service, payload, actor_id=actor_id)
    return PlaylistWithVersionOut(playlist=PlaylistOut.model_validate(playlist), version=version)
