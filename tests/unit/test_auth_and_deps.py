import pytest

from clubhouse.api.auth import get_or_create_profile, resolve_identity_from_headers
from clubhouse.api.deps import claims_of, get_current_user_context, require_roles
from clubhouse.api.permissions import authorize, roles_from_claims
from clubhouse.errors import AuthenticationRequired, PermissionDenied


def _context(db_session, user=None, email=None):
    return get_current_user_context(
        db=db_session,
        x_auth_request_user=user,
        x_auth_request_email=email,
        x_forwarded_user=None,
        x_forwarded_email=None,
    )


def test_resolve_identity_prefers_auth_request_headers():
    name, email = resolve_identity_from_headers("User", " User@Example.com ", "fwd", "fwd@example.com")
    assert name == "User" and email == "user@example.com"

    name, email = resolve_identity_from_headers(None, None, "fwd", "Fwd@Example.com")
    assert name == "fwd" and email == "fwd@example.com"


def test_get_or_create_profile_is_idempotent(db_session):
    profile = get_or_create_profile(db_session, email="someone@example.com", display_name=None)
    again = get_or_create_profile(db_session, email="someone@example.com", display_name="Someone")

    assert profile.id == again.id
    assert profile.roles == ["member"]
    assert profile.display_name == "someone"


def test_admin_emails_promote_profiles(db_session, profile_factory, monkeypatch):
    existing = profile_factory(email="boss@example.com")
    monkeypatch.setenv("ADMIN_EMAILS", "'Boss@Example.com', fresh@example.com")

    assert "admin" in get_or_create_profile(db_session, email="boss@example.com").roles
    assert get_or_create_profile(db_session, email="fresh@example.com").roles == ["admin", "member"]
    assert existing.id == get_or_create_profile(db_session, email="boss@example.com").id


def test_context_requires_email(db_session):
    with pytest.raises(AuthenticationRequired):
        _context(db_session, user="nobody")


def test_context_carries_claims(db_session, profile_factory):
    profile = profile_factory(email="coach@example.com", roles=["member", "coach"])

    user_context = _context(db_session, user="coach", email="coach@example.com")
    resolved, current_user = user_context

    assert resolved.id == profile.id
    assert current_user["roles"] == ["coach", "member"]
    claims = claims_of(user_context)
    assert claims["sub"] == str(profile.id)
    assert claims["role"] == "authenticated"
    assert roles_from_claims(claims) == {"coach", "member"}


def test_dev_mode_impersonates_dev_user(db_session, monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")

    profile, current_user = _context(db_session)
    assert profile.email == "dev@localhost"
    assert current_user["display_name"] == "Development User"


def test_authorize():
    with pytest.raises(AuthenticationRequired):
        authorize(None, {"admin"})
    with pytest.raises(PermissionDenied):
        authorize({"roles": ["member"]}, {"admin"})
    assert authorize({"roles": ["admin"]}, {"admin", "president"}) == {"roles": ["admin"]}


def test_require_roles_dependency(db_session, profile_factory):
    profile = profile_factory(roles=["quartermaster"])
    user_context = _context(db_session, email=profile.email)

    assert require_roles({"quartermaster"})(user_context) is user_context
    with pytest.raises(PermissionDenied):
        require_roles({"president"})(user_context)


def test_me_endpoint(client, as_user, profile_factory):
    profile = profile_factory(roles=["member", "workshop_coordinator"])

    r = client.get("/api/me", headers=as_user(profile))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["email"] == profile.email
    assert data["roles"] == ["member", "workshop_coordinator"]
    assert data["features"] == {
        "llm_features_enabled": True,
        "feature_inventory_enabled": True,
        "feature_refunds_enabled": True,
    }


def test_me_creates_profile_on_first_visit(client, db_session):
    from clubhouse.db import models

    r = client.get("/api/me", headers={"x-forwarded-user": "newcomer", "x-forwarded-email": "Newcomer@Example.com"})
    assert r.status_code == 200
    assert r.json()["data"]["display_name"] == "newcomer"
    db_session.expire_all()
    assert db_session.query(models.UserProfile).filter_by(email="newcomer@example.com").count() == 1
