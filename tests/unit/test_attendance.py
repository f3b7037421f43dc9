import pytest

from clubhouse.db import schemas
from clubhouse.db.rls import build_claims
from clubhouse.errors import InvalidStateError, ValidationFailed
from clubhouse.services import AttendanceService


@pytest.fixture
def coordinator(profile_factory):
    return profile_factory(roles=["workshop_coordinator"])


def _service(db_session, profile):
    return AttendanceService(db_session, build_claims(profile.id, profile.email, profile.roles))


def test_marks_attendance_for_started_workshop(
    db_session, coordinator, profile_factory, workshop_factory, registration_factory
):
    workshop = workshop_factory(status="published", days_ahead=-1)
    registration = registration_factory(workshop, profile_factory())

    updated = _service(db_session, coordinator).update_attendance(
        workshop.id,
        [schemas.AttendanceUpdate(registration_id=registration.id, attendance_status="attended", notes="On time")],
    )

    assert [r.id for r in updated] == [registration.id]
    assert updated[0].attendance_status == "attended"
    assert updated[0].attendance_marked_by == coordinator.id
    assert updated[0].attendance_notes == "On time"


def test_skips_registrations_of_other_workshops(
    db_session, coordinator, profile_factory, workshop_factory, registration_factory
):
    workshop = workshop_factory(status="published", days_ahead=-1)
    other = workshop_factory(status="published", days_ahead=-2)
    foreign = registration_factory(other, profile_factory())

    updated = _service(db_session, coordinator).update_attendance(
        workshop.id, [schemas.AttendanceUpdate(registration_id=foreign.id, attendance_status="no_show")]
    )
    assert updated == []


def test_rejects_future_workshop(db_session, coordinator, profile_factory, workshop_factory, registration_factory):
    workshop = workshop_factory(status="published", days_ahead=3)
    registration = registration_factory(workshop, profile_factory())

    with pytest.raises(InvalidStateError) as exc:
        _service(db_session, coordinator).update_attendance(
            workshop.id, [schemas.AttendanceUpdate(registration_id=registration.id, attendance_status="attended")]
        )
    assert exc.value.message == "Cannot update attendance for a workshop that has not started yet"


def test_rejects_empty_update(db_session, coordinator, workshop_factory):
    workshop = workshop_factory(status="published", days_ahead=-1)
    with pytest.raises(ValidationFailed):
        _service(db_session, coordinator).update_attendance(workshop.id, [])


def test_attendance_listing_only_confirmed(
    client, as_user, coordinator, profile_factory, workshop_factory, registration_factory
):
    workshop = workshop_factory(status="published", days_ahead=-1)
    confirmed = registration_factory(workshop, profile_factory(first_name="Ana"))
    registration_factory(workshop, profile_factory(), status="pending")

    r = client.get(f"/api/workshops/{workshop.id}/attendance", headers=as_user(coordinator))
    assert r.status_code == 200
    rows = r.json()["data"]
    assert [row["id"] for row in rows] == [str(confirmed.id)]
    assert rows[0]["first_name"] == "Ana"


def test_attendance_api_validates_status(client, as_user, coordinator, profile_factory, workshop_factory, registration_factory):
    workshop = workshop_factory(status="published", days_ahead=-1)
    registration = registration_factory(workshop, profile_factory())

    r = client.put(
        f"/api/workshops/{workshop.id}/attendance",
        json={"attendance_updates": [{"registration_id": str(registration.id), "attendance_status": "late"}]},
        headers=as_user(coordinator),
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Validation failed"

    r = client.put(
        f"/api/workshops/{workshop.id}/attendance",
        json={"attendance_updates": [{"registration_id": str(registration.id), "attendance_status": "excused"}]},
        headers=as_user(coordinator),
    )
    assert r.status_code == 200
    assert r.json()["data"][0]["attendance_status"] == "excused"
