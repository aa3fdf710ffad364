from dailies.models import Status
from dailies.services.status_lookup import list_statuses, status_code_for_id, status_id_for_code


def test_round_trip_and_misses(db):
    approved_id = status_id_for_code(db, "approved")
    assert approved_id is not None
    assert status_code_for_id(db, approved_id) == "approved"
    assert status_id_for_code(db, "missing") is None
    assert status_id_for_code(db, "") is None
    assert status_code_for_id(db, None) is None


def test_list_statuses_hides_inactive(db):
    db.add(Status(code="omit", name="Omitted", is_active=False, sort_order=9))
    db.commit()
    assert [s.code for s in list_statuses(db)] == ["wip", "review", "approved", "rejected"]
    assert "omit" in [s.code for s in list_statuses(db, active_only=False)]
