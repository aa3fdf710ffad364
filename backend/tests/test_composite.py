import pytest
from sqlalchemy import func, select
from dailies.core.errors import ConflictError, NotFoundError, ValidationError
from dailies.models import Asset, Playlist, Project, Sequence
from dailies.schemas.composite import (
    AssetIn,
    AssetWithVersionCreate,
    InitialVersionIn,
    PlaylistIn,
    PlaylistWithVersionCreate,
    SequenceIn,
    SequenceWithVersionCreate,
)
from dailies.schemas.version import VersionCreate
from dailies.services.composite import (
    create_asset_with_version,
    create_owner_with_version,
    create_playlist_with_version,
    create_sequence_with_version,
)


def _count(db, model):
    return db.scalar(select(func.count()).select_from(model))


def test_asset_with_version_defaults(service, seed):
    payload = AssetWithVersionCreate(asset=AssetIn(project_id=seed["project_id"], name="Street Lamp"))
    asset, version = create_asset_with_version(service, payload, actor_id=3)
    assert asset.code == "TXT001"
    assert asset.created_by == 3
    assert version.code == "TXT001_001"
    assert version.name == "Initial version of Street Lamp"
    assert version.description == "Initial version created automatically"
    assert version.version_number == 1
    assert version.latest is True
    assert version.entity_id == asset.id
    assert version.entity_code == "TXT001"
    assert version.status == "wip"


def test_owner_codes_count_per_parent(service, seed):
    codes = []
    for name in ("One", "Two"):
        payload = AssetWithVersionCreate(asset=AssetIn(project_id=seed["project_id"], name=name, asset_type="char"))
        asset, _ = create_asset_with_version(service, payload)
        codes.append(asset.code)
    assert codes == ["CHAR001", "CHAR002"]


def test_codes_skip_numbers_taken_under_another_parent(service, db, seed):
    other = Project(code="OT", name="Other")
    db.add(other)
    db.commit()
    create_asset_with_version(service, AssetWithVersionCreate(asset=AssetIn(project_id=other.id, name="A")))
    asset, _ = create_asset_with_version(
        service, AssetWithVersionCreate(asset=AssetIn(project_id=seed["project_id"], name="B"))
    )
    assert asset.code == "TXT002"


def test_sequence_and_playlist_prefixes(service, seed):
    sequence, seq_version = create_sequence_with_version(
        service, SequenceWithVersionCreate(sequence=SequenceIn(episode_id=seed["episode_id"], name="Opening"))
    )
    playlist, pl_version = create_playlist_with_version(
        service,
        PlaylistWithVersionCreate(
            playlist=PlaylistIn(project_id=seed["project_id"], name="Dailies 01", status="review"),
            version=InitialVersionIn(code="DAILIES01_V1", status="review"),
        ),
    )
    assert sequence.code == "SEQ001"
    assert seq_version.entity_type == "sequence"
    assert playlist.code == "PL001"
    assert playlist.status_updated_at is not None
    assert pl_version.code == "DAILIES01_V1"
    assert pl_version.status == "review"


def test_latest_false_is_overridden_for_first_version(service, seed):
    payload = AssetWithVersionCreate(
        asset=AssetIn(project_id=seed["project_id"], name="Prop"),
        version=InitialVersionIn(latest=False),
    )
    _, version = create_asset_with_version(service, payload)
    assert version.latest is True


def test_version_failure_rolls_back_owner(service, db, seed, make_asset):
    asset = make_asset()
    service.create(VersionCreate(entity_type="asset", entity_id=asset.id, code="TAKEN"))
    payload = AssetWithVersionCreate(
        asset=AssetIn(project_id=seed["project_id"], name="Orphan"),
        version=InitialVersionIn(code="TAKEN"),
    )
    with pytest.raises(ConflictError):
        create_asset_with_version(service, payload)
    assert _count(db, Asset) == 1


def test_unknown_version_status_rolls_back_owner(service, db, seed):
    payload = SequenceWithVersionCreate(
        sequence=SequenceIn(episode_id=seed["episode_id"], name="Chase"),
        version=InitialVersionIn(status="final"),
    )
    with pytest.raises(NotFoundError):
        create_sequence_with_version(service, payload)
    assert _count(db, Sequence) == 0


def test_parent_is_required_and_must_exist(service, db):
    with pytest.raises(ValidationError, match="project_id"):
        create_asset_with_version(service, AssetWithVersionCreate(asset=AssetIn(name="Nowhere")))
    with pytest.raises(NotFoundError, match="Project with ID 42"):
        create_playlist_with_version(
            service, PlaylistWithVersionCreate(playlist=PlaylistIn(project_id=42, name="Lost"))
        )
    assert _count(db, Playlist) == 0


def test_duplicate_owner_code_conflicts(service, seed):
    payload = AssetWithVersionCreate(asset=AssetIn(project_id=seed["project_id"], name="Hero", code="HERO"))
    create_asset_with_version(service, payload)
    with pytest.raises(ConflictError):
        create_asset_with_version(service, payload)


def test_unsupported_kind(service, seed):
    with pytest.raises(ValidationError):
        create_owner_with_version(service, "episode", {"project_id": seed["project_id"], "name": "Ep"}, {})
