import pytest

from clubhouse.db import models, schemas
from clubhouse.db.rls import anonymous_claims, build_claims
from clubhouse.errors import ConflictError, InvalidStateError, NotFoundError, ValidationFailed
from clubhouse.services import SettingsService, WaitlistService
from clubhouse.services.settings_service import INSURANCE_FORM_LINK, KNOWN_SETTINGS, WAITLIST_OPEN


@pytest.fixture
def committee(profile_factory):
    return profile_factory(roles=["committee_coordinator"])


def _settings(db_session, profile):
    return SettingsService(db_session, build_claims(profile.id, profile.email, profile.roles))


def _join(**overrides):
    values = {"email": "Visitor@Example.com", "first_name": "Vis", "last_name": "Itor"}
    values.update(overrides)
    return schemas.WaitlistJoin(**values)


# Settings

def test_ensure_defaults_is_idempotent(db_session, committee):
    service = _settings(db_session, committee)
    assert service.ensure_defaults() == len(KNOWN_SETTINGS)
    assert service.ensure_defaults() == 0
    assert service.find_by_key(WAITLIST_OPEN).value == "false"


def test_boolean_settings_validate_values(db_session, committee, seeded_settings):
    service = _settings(db_session, committee)

    with pytest.raises(ValidationFailed) as exc:
        service.update(WAITLIST_OPEN, "yes")
    assert exc.value.message == "Boolean settings only accept 'true' or 'false'"

    updated = service.update(WAITLIST_OPEN, "true")
    assert updated.updated_by == committee.id
    audit_row = db_session.query(models.AuditLog).filter_by(action_type="setting_update").one()
    assert audit_row.metadata_json == {"key": WAITLIST_OPEN, "from": "false", "to": "true"}


def test_toggle_only_booleans(db_session, committee, seeded_settings):
    service = _settings(db_session, committee)

    assert service.toggle_waitlist().value == "true"
    assert service.toggle(WAITLIST_OPEN).value == "false"
    with pytest.raises(ValidationFailed) as exc:
        service.toggle(INSURANCE_FORM_LINK)
    assert exc.value.message == "Only boolean settings can be toggled"


def test_unknown_setting(db_session, committee):
    with pytest.raises(NotFoundError) as exc:
        _settings(db_session, committee).update("nope", "1")
    assert exc.value.message == "Setting not found"


@pytest.mark.parametrize("url", ["not a url", "ftp://forms.example.com/x", "https://"])
def test_insurance_link_must_be_http(db_session, committee, seeded_settings, url):
    with pytest.raises(ValidationFailed):
        _settings(db_session, committee).update_insurance_form_link(url)


def test_insurance_link_saved(db_session, committee, seeded_settings):
    setting = _settings(db_session, committee).update_insurance_form_link(" https://forms.example.com/hema ")
    assert setting.value == "https://forms.example.com/hema"


def test_settings_api(client, as_user, committee, profile_factory, seeded_settings):
    headers = as_user(committee)

    r = client.get("/api/settings/waitlist-status")
    assert r.json()["data"] == {"open": False}

    r = client.post("/api/settings/waitlist/toggle", headers=as_user(profile_factory()))
    assert r.status_code == 403

    r = client.post("/api/settings/waitlist/toggle", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["value"] == "true"
    assert client.get("/api/settings/waitlist-status").json()["data"] == {"open": True}

    r = client.get("/api/settings", params={"keys": [WAITLIST_OPEN, INSURANCE_FORM_LINK]}, headers=headers)
    assert sorted(s["key"] for s in r.json()["data"]) == sorted([WAITLIST_OPEN, INSURANCE_FORM_LINK])

    r = client.get("/api/settings/missing", headers=headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Setting not found"

    r = client.put("/api/settings/insurance-form-link", json={"url": "javascript:alert(1)"}, headers=headers)
    assert r.status_code == 400


# Waitlist

def test_join_requires_open_waitlist(db_session, seeded_settings):
    with pytest.raises(InvalidStateError) as exc:
        WaitlistService(db_session, anonymous_claims()).join(_join())
    assert exc.value.message == "Waitlist is closed"


def test_join_and_duplicate(db_session, committee, seeded_settings):
    _settings(db_session, committee).update(WAITLIST_OPEN, "true")
    service = WaitlistService(db_session, anonymous_claims())

    entry = service.join(_join())
    assert entry.email == "visitor@example.com"
    assert entry.status == "waiting"

    with pytest.raises(ConflictError) as exc:
        service.join(_join(email="visitor@example.com "))
    assert exc.value.message == "Email already on waitlist"


def test_update_entry_status(db_session, committee):
    entry = models.WaitlistEntry(email="a@example.com", first_name="A", last_name="B")
    db_session.add(entry)
    db_session.commit()
    service = WaitlistService(db_session, build_claims(committee.id, committee.email, committee.roles))

    updated = service.update_status(entry.id, "deferred", admin_notes="Next term")
    assert updated.status == "deferred"
    assert updated.admin_notes == "Next term"
    assert [e.id for e in service.find_many(status="deferred")] == [entry.id]


def test_waitlist_api(client, as_user, committee, seeded_settings):
    r = client.post("/api/waitlist", json={"email": "x@example.com", "first_name": "X", "last_name": "Y"})
    assert r.status_code == 400
    assert r.json()["error"] == "Waitlist is closed"

    client.post("/api/settings/waitlist/toggle", headers=as_user(committee))

    r = client.post("/api/waitlist", json={"email": "x@example.com", "first_name": "X", "last_name": "Y"})
    assert r.status_code == 201, r.text
    entry_id = r.json()["data"]["id"]

    r = client.post("/api/waitlist", json={"email": "X@example.com", "first_name": "X", "last_name": "Y"})
    assert r.status_code == 409

    r = client.patch(f"/api/waitlist/{entry_id}", json={"status": "bogus"}, headers=as_user(committee))
    assert r.status_code == 400

    r = client.patch(f"/api/waitlist/{entry_id}", json={"status": "no_reply"}, headers=as_user(committee))
    assert r.json()["data"]["status"] == "no_reply"

    r = client.get("/api/waitlist", headers=as_user(committee))
    assert [e["email"] for e in r.json()["data"]] == ["x@example.com"]
