import uuid

import pytest

from clubhouse.db import models
from clubhouse.db.rls import (
    anonymous_claims,
    bind_claims,
    build_claims,
    execute_with_rls,
    rls_transaction,
    unscoped_transaction,
)


def test_build_claims_shape():
    user_id = uuid.uuid4()
    claims = build_claims(user_id, "a@example.com", ["member", "coach", "member"])
    assert claims == {
        "sub": str(user_id),
        "role": "authenticated",
        "email": "a@example.com",
        "app_metadata": {"roles": ["coach", "member"]},
    }


def test_anonymous_claims():
    assert anonymous_claims() == {"sub": None, "role": "anon", "email": None, "app_metadata": {"roles": []}}


def test_bind_claims_is_noop_on_sqlite(db_session, monkeypatch):
    monkeypatch.setenv("ENABLE_RLS", "true")
    # No set_config on SQLite; this would fail if any statement were issued
    bind_claims(db_session, anonymous_claims())


def test_rls_transaction_commits(db_session):
    with rls_transaction(db_session, anonymous_claims()) as trx:
        trx.add(models.WaitlistEntry(email="c@example.com", first_name="C", last_name="D"))

    db_session.expire_all()
    assert db_session.query(models.WaitlistEntry).filter_by(email="c@example.com").count() == 1


def test_rls_transaction_rolls_back_on_error(db_session):
    with pytest.raises(RuntimeError):
        with rls_transaction(db_session, anonymous_claims()) as trx:
            trx.add(models.WaitlistEntry(email="r@example.com", first_name="R", last_name="B"))
            trx.flush()
            raise RuntimeError("boom")

    assert db_session.query(models.WaitlistEntry).filter_by(email="r@example.com").count() == 0


def test_unscoped_transaction_rolls_back_on_error(db_session):
    with pytest.raises(ValueError):
        with unscoped_transaction(db_session) as trx:
            trx.add(models.WaitlistEntry(email="u@example.com", first_name="U", last_name="B"))
            trx.flush()
            raise ValueError("nope")

    assert db_session.query(models.WaitlistEntry).count() == 0


def test_execute_with_rls_returns_result(db_session, profile_factory):
    profile = profile_factory(email="x@example.com")
    found = execute_with_rls(
        db_session,
        build_claims(profile.id, profile.email, profile.roles),
        lambda trx: trx.query(models.UserProfile).filter_by(email="x@example.com").one(),
    )
    assert found.id == profile.id
