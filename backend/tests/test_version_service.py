import pytest
from sqlalchemy import select
from dailies.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from dailies.models import Version
from dailies.schemas.version import VersionCreate, VersionUpdate
from dailies.services.file_store import UploadBlob
from dailies.services.notifications import (
    INBOX_VERSION_APPROVED,
    INBOX_VERSION_REJECTED,
    VERSION_APPROVED,
    VERSION_REJECTED,
)
from dailies.services.status_lookup import status_id_for_code
from dailies.services.version_service import VersionService


def _create(service, asset, **fields):
    return service.create(VersionCreate(entity_type="asset", entity_id=asset.id, **fields))


def _latest_ids(db, asset_id):
    db.expire_all()
    query = select(Version.id).where(Version.entity_id == asset_id, Version.latest.is_(True))
    return list(db.scalars(query))


def test_create_assigns_number_code_and_default_status(service, make_asset):
    asset = make_asset()
    version = _create(service, asset)
    assert version.version_number == 1
    assert version.code == "HERO_v001"
    assert version.name == "HERO_v001"
    assert version.latest is True
    assert version.status == "wip"
    assert version.entity_code == "HERO"
    assert version.status_updated_at is not None


def test_version_numbers_are_sequential(service, make_asset):
    asset = make_asset()
    numbers = [_create(service, asset).version_number for _ in range(5)]
    assert numbers == [1, 2, 3, 4, 5]


def test_new_version_takes_over_latest(service, db, make_asset):
    asset = make_asset()
    first = _create(service, asset, code="V1")
    second = _create(service, asset, code="V2")
    assert _latest_ids(db, asset.id) == [second.id]
    assert service.find_by_id(first.id).latest is False


def test_latest_false_is_honoured_only_with_an_existing_latest(service, db, make_asset):
    asset = make_asset()
    first = _create(service, asset, latest=False)
    assert first.latest is True
    second = _create(service, asset, latest=False)
    assert second.latest is False
    assert _latest_ids(db, asset.id) == [first.id]


def test_duplicate_code_is_rejected_without_write(service, db, make_asset):
    asset = make_asset()
    _create(service, asset, code="V1")
    with pytest.raises(ConflictError):
        _create(service, asset, code="V1")
    assert len(list(db.scalars(select(Version)))) == 1


def test_missing_owner_is_not_found(service, make_asset):
    with pytest.raises(NotFoundError, match="asset with ID 42"):
        service.create(VersionCreate(entity_type="asset", entity_id=42))


def test_missing_owner_reference_is_rejected(service):
    with pytest.raises(ValidationError):
        service.create(VersionCreate(entity_type="asset"))
    with pytest.raises(ValidationError):
        service.create(VersionCreate(entity_type="shot", entity_id=1))


def test_unknown_explicit_status_is_not_found(service, make_asset):
    asset = make_asset()
    with pytest.raises(NotFoundError, match="Status 'final'"):
        _create(service, asset, status="final")


def test_missing_default_status_leaves_status_empty(db, store, dispatcher, make_asset):
    asset = make_asset()
    service = VersionService(db, store, dispatcher, default_status_code="not-seeded")
    version = _create(service, asset)
    assert version.status is None
    assert version.status_id is None


def test_code_reference_continues_the_id_series(service, db, make_asset):
    asset = make_asset()
    first = _create(service, asset)
    second = service.create(VersionCreate(entity_type="asset", entity_code="HERO"))
    assert second.entity_id == asset.id
    assert second.version_number == 2
    assert second.code == "HERO_v002"
    assert _latest_ids(db, asset.id) == [second.id]
    assert service.find_by_id(first.id).latest is False
    assert [v.id for v in service.find_all(owner_code="HERO", latest=True)] == [second.id]


def test_legacy_code_only_rows_join_the_owner_series(service, db, make_asset):
    asset = make_asset(code="LEGACY")
    old = Version(code="LEGACY_OLD", name="Old", entity_type="asset", entity_code="LEGACY", version_number=1, latest=True)
    db.add(old)
    db.commit()

    by_code = service.create(VersionCreate(entity_type="asset", entity_code="LEGACY"))
    by_id = _create(service, asset, latest=False)
    assert by_code.entity_id == asset.id
    assert [by_code.version_number, by_id.version_number] == [2, 3]
    assert service.find_by_id(old.id).latest is False
    assert [v.id for v in service.find_all(owner_code="LEGACY", latest=True)] == [by_code.id]

    service.update(old.id, VersionUpdate(latest=True))
    assert [v.id for v in service.find_all(owner_code="LEGACY", latest=True)] == [old.id]
    service.remove(old.id)
    assert [v.id for v in service.find_all(owner_code="LEGACY", latest=True)] == [by_id.id]


def test_find_all_filters_and_orders_newest_first(service, make_asset):
    hero = make_asset()
    villain = make_asset(code="VILLAIN", name="Villain")
    a = _create(service, hero)
    b = _create(service, hero)
    c = _create(service, villain)
    assert [v.id for v in service.find_all()] == [c.id, b.id, a.id]
    assert [v.id for v in service.find_all(owner_id=hero.id, entity_type="asset")] == [b.id, a.id]
    assert [v.id for v in service.find_all(owner_code="VILLAIN")] == [c.id]
    assert {v.id for v in service.find_all(latest=True)} == {b.id, c.id}


def test_find_by_id_and_code(service, make_asset):
    asset = make_asset()
    version = _create(service, asset, code="V1")
    assert service.find_by_code("V1").id == version.id
    with pytest.raises(NotFoundError):
        service.find_by_code("missing")
    with pytest.raises(NotFoundError):
        service.find_by_id(999)
    with pytest.raises(ValidationError):
        service.find_by_id(0)


def test_update_latest_swaps_flag(service, db, make_asset):
    asset = make_asset()
    a = _create(service, asset, code="A")
    b = _create(service, asset, code="B")
    updated = service.update(a.id, VersionUpdate(latest=True))
    assert updated.latest is True
    assert _latest_ids(db, asset.id) == [a.id]
    assert service.find_by_id(b.id).latest is False


def test_update_refuses_to_unset_current_latest(service, db, make_asset):
    asset = make_asset()
    a = _create(service, asset)
    b = _create(service, asset)
    with pytest.raises(ValidationError):
        service.update(b.id, VersionUpdate(latest=False))
    assert _latest_ids(db, asset.id) == [b.id]
    # not latest already: nothing to do
    assert service.update(a.id, VersionUpdate(latest=False)).latest is False


def test_update_metadata_and_empty_name(service, make_asset):
    asset = make_asset()
    version = _create(service, asset)
    updated = service.update(version.id, VersionUpdate(artist="kim", frame_range="1001-1100"))
    assert updated.artist == "kim"
    assert updated.frame_range == "1001-1100"
    with pytest.raises(ValidationError):
        service.update(version.id, VersionUpdate(name="  "))


def test_approval_notifies_once(service, dispatcher, make_asset):
    asset = make_asset()
    version = service.create(VersionCreate(entity_type="asset", entity_id=asset.id), actor_id=7)
    service.update(version.id, VersionUpdate(status="approved"), actor_id=9)
    service.update(version.id, VersionUpdate(status="approved"), actor_id=9)
    approvals = dispatcher.of(VERSION_APPROVED)
    assert len(approvals) == 1
    assert approvals[0]["version_code"] == version.code
    assert approvals[0]["changed_by"] == "9"
    assert approvals[0]["project_name"] == "Night Shift"
    inbox = dispatcher.of(INBOX_VERSION_APPROVED)
    assert len(inbox) == 1
    assert inbox[0]["user_id"] == 7
    assert inbox[0]["triggered_by"] == 9


def test_rejection_carries_reason(service, dispatcher, make_asset):
    asset = make_asset()
    described = _create(service, asset, description="Flicker on frame 1040")
    bare = _create(service, asset)
    service.update(described.id, VersionUpdate(status="rejected"))
    service.update(bare.id, VersionUpdate(status="rejected"))
    reasons = [payload["reason"] for payload in dispatcher.of(VERSION_REJECTED)]
    assert reasons == ["Flicker on frame 1040", "No reason provided"]
    assert dispatcher.of(VERSION_REJECTED)[0]["changed_by"] == "System"
    assert dispatcher.of(INBOX_VERSION_REJECTED) == []


def test_no_inbox_when_creator_is_the_actor(service, dispatcher, make_asset):
    asset = make_asset()
    version = service.create(VersionCreate(entity_type="asset", entity_id=asset.id), actor_id=7)
    service.update(version.id, VersionUpdate(status="approved"), actor_id=7)
    assert len(dispatcher.of(VERSION_APPROVED)) == 1
    assert dispatcher.of(INBOX_VERSION_APPROVED) == []


def test_other_transitions_do_not_notify(service, dispatcher, make_asset):
    asset = make_asset()
    version = _create(service, asset)
    updated = service.update(version.id, VersionUpdate(status="review"))
    assert updated.status == "review"
    assert dispatcher.events == []


def test_status_id_wins_over_code(service, db, make_asset):
    asset = make_asset()
    version = _create(service, asset)
    review_id = status_id_for_code(db, "review")
    updated = service.update(version.id, VersionUpdate(status="approved", status_id=review_id))
    assert updated.status == "review"
    with pytest.raises(NotFoundError):
        service.update(version.id, VersionUpdate(status_id="no-such-status"))


def test_notification_failure_does_not_fail_update(db, store, make_asset):
    class BrokenDispatcher:
        def notify(self, event, payload):
            raise RuntimeError("slack down")

    asset = make_asset()
    service = VersionService(db, store, BrokenDispatcher(), default_status_code="wip")
    version = _create(service, asset)
    assert service.update(version.id, VersionUpdate(status="approved")).status == "approved"


def test_remove_latest_promotes_most_recent_sibling(service, db, make_asset):
    asset = make_asset()
    v1 = _create(service, asset)
    v2 = _create(service, asset)
    v3 = _create(service, asset)
    service.remove(v3.id)
    assert _latest_ids(db, asset.id) == [v2.id]
    service.remove(v1.id)
    assert _latest_ids(db, asset.id) == [v2.id]
    service.remove(v2.id)
    assert _latest_ids(db, asset.id) == []
    with pytest.raises(NotFoundError):
        service.remove(v2.id)


def test_remove_survives_failing_file_cleanup(db, store, dispatcher, make_asset):
    class FailingDeleteStore(type(store)):
        def delete(self, bucket, path):
            raise StorageError("disk unavailable")

    failing = FailingDeleteStore(
        root=str(store.root), public_base_url=store.public_base_url, signing_secret="test-secret"
    )
    service = VersionService(db, failing, dispatcher, default_status_code="wip")
    asset = make_asset()
    v1 = _create(service, asset)
    v2 = _create(service, asset, file_path="2026/01/01/a.mov", thumbnail_path="thumbnails/2026/01/01/a.webp")
    service.remove(v2.id)
    assert db.get(Version, v2.id) is None
    assert _latest_ids(db, asset.id) == [v1.id]


def test_remove_deletes_stored_files(service, store, make_asset):
    asset = make_asset()
    media = store.upload("media", UploadBlob(b"frames", "application/octet-stream", "shot.exr"))
    version = _create(service, asset, file_path=media.path)
    target = store.open_path("media", media.path)
    assert target.exists()
    service.remove(version.id)
    assert not target.exists()


def test_present_resolves_and_refreshes_urls(service, make_asset):
    asset = make_asset()
    version = _create(
        service,
        asset,
        file_path="http://testserver/files/media/2026/01/01/a.mov?expires=1&signature=stale",
        thumbnail_path="https://cdn.example.com/thumbs/a.webp",
    )
    assert version.file_path.startswith("http://testserver/files/media/2026/01/01/a.mov?")
    assert "expires=1&" not in version.file_path
    assert "signature=" in version.file_path
    assert version.thumbnail_path == "https://cdn.example.com/thumbs/a.webp"

    relative = _create(service, asset, file_path="2026/01/01/b.mov", thumbnail_path="2026/01/01/b.webp")
    assert relative.thumbnail_path == "http://testserver/files/thumbnails/2026/01/01/b.webp"
    assert "signature=" in relative.file_path
