import uuid

from clubhouse.audit import AuditAction, AuditStatus, log
from clubhouse.db import models


def test_log_basic(db_session, profile_factory):
    user = profile_factory()
    target = uuid.uuid4()
    entry = log(
        db_session,
        action=AuditAction.WORKSHOP_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="workshop",
        target_id=target,
        actor_user_id=user.id,
        metadata={"title": "Longsword"},
    )
    assert entry.action_type == "workshop_create"
    assert entry.status == "success"
    assert entry.target_id == target
    assert entry.actor_user_id == user.id
    assert entry.metadata_json == {"title": "Longsword"}


def test_log_enums_vs_strings(db_session):
    entry = log(db_session, action="custom_action", status="custom_status", target_type="custom")
    assert entry.action_type == "custom_action"
    assert entry.status == "custom_status"
    assert entry.metadata_json == {}


def test_log_only_flushes(db_session):
    log(db_session, action=AuditAction.SETTING_UPDATE, target_type="setting")
    db_session.rollback()
    assert db_session.query(models.AuditLog).count() == 0


def test_audits_endpoint(client, as_user, profile_factory, db_session):
    president = profile_factory(roles=["president"])
    log(db_session, action=AuditAction.INVITATION_CREATE, target_type="invitation", actor_user_id=president.id)
    log(db_session, action=AuditAction.SETTING_UPDATE, target_type="setting", actor_user_id=president.id)
    db_session.commit()

    r = client.get("/api/audits", params={"action_type": "setting_update"}, headers=as_user(president))
    assert r.status_code == 200
    rows = r.json()["data"]
    assert [row["action_type"] for row in rows] == ["setting_update"]
    assert rows[0]["actor_user_id"] == str(president.id)

    r = client.get("/api/audits", headers=as_user(profile_factory()))
    assert r.status_code == 403
