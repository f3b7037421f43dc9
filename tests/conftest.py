import os
import time
import uuid
from datetime import timedelta

import pytest

# Force the in-memory SQLite engine before clubhouse.db.database is imported
os.environ["PYTEST_RUNNING"] = "1"

from fastapi.testclient import TestClient

from clubhouse.api.deps import get_generator, get_payments
from clubhouse.api.main import app
from clubhouse.db import models
from clubhouse.db.database import SessionLocal, engine
from clubhouse.db.models import now_utc
from clubhouse.errors import PaymentError
from clubhouse.services.settings_service import KNOWN_SETTINGS
from clubhouse.utils.feature_flags import refresh_feature_flag_cache


def _h(user, email):
    return {"x-auth-request-user": user, "x-auth-request-email": email}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in (
        "DEV_MODE",
        "ENABLE_RLS",
        "ADMIN_EMAILS",
        "LLM_FEATURES_ENABLED",
        "FEATURE_INVENTORY_ENABLED",
        "FEATURE_REFUNDS_ENABLED",
    ):
        monkeypatch.delenv(var, raising=False)
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


@pytest.fixture(autouse=True)
def _wipe_tables():
    """Tables are emptied after every test (in-memory SQLite shared through StaticPool)."""
    yield
    if not str(engine.url).startswith("sqlite"):
        return
    with engine.begin() as conn:
        for table in reversed(models.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# Factories

@pytest.fixture
def profile_factory(db_session):
    def _create(email=None, roles=("member",), **fields):
        profile = models.UserProfile(
            email=email or f"user_{uuid.uuid4().hex[:8]}@example.com",
            roles=list(roles),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            **fields,
        )
        db_session.add(profile)
        db_session.commit()
        return profile
    return _create


@pytest.fixture
def workshop_factory(db_session):
    def _create(status="planned", days_ahead=14, **fields):
        start = now_utc() + timedelta(days=days_ahead)
        values = {
            "title": "Longsword fundamentals",
            "description": "Binding and winding",
            "location": "St Catherine's Sport Centre",
            "start_date": start,
            "end_date": start + timedelta(hours=2),
            "max_capacity": 10,
            "price_member": 2000,
            "price_non_member": 2000,
            "is_public": False,
            "refund_days": 3,
            "status": status,
        }
        values.update(fields)
        workshop = models.Workshop(**values)
        db_session.add(workshop)
        db_session.commit()
        return workshop
    return _create


@pytest.fixture
def registration_factory(db_session):
    def _create(workshop, member, status="confirmed", amount_paid=2000, **fields):
        registration = models.WorkshopRegistration(
            workshop_id=workshop.id,
            member_user_id=member.id,
            status=status,
            amount_paid=amount_paid,
            currency="eur",
            stripe_payment_intent_id=fields.pop("stripe_payment_intent_id", f"pi_{uuid.uuid4().hex[:12]}"),
            **fields,
        )
        db_session.add(registration)
        db_session.commit()
        return registration
    return _create


@pytest.fixture
def attendee_factory(db_session):
    def _create(workshop, profile, status="invited", **fields):
        attendee = models.WorkshopAttendee(
            workshop_id=workshop.id,
            user_profile_id=profile.id,
            status=status,
            invited_at=now_utc(),
            **fields,
        )
        db_session.add(attendee)
        db_session.commit()
        return attendee
    return _create


@pytest.fixture
def category_factory(db_session):
    def _create(name=None, attributes=None, **fields):
        category = models.EquipmentCategory(
            name=name or f"Category {uuid.uuid4().hex[:6]}",
            available_attributes=attributes or [],
            **fields,
        )
        db_session.add(category)
        db_session.commit()
        return category
    return _create


@pytest.fixture
def container_factory(db_session):
    def _create(name=None, parent=None, **fields):
        container = models.Container(
            name=name or f"Box {uuid.uuid4().hex[:6]}",
            parent_container_id=parent.id if parent is not None else None,
            **fields,
        )
        db_session.add(container)
        db_session.commit()
        return container
    return _create


@pytest.fixture
def item_factory(db_session):
    def _create(container, category, **fields):
        item = models.InventoryItem(
            container_id=container.id,
            category_id=category.id,
            attributes=fields.pop("attributes", {}),
            quantity=fields.pop("quantity", 1),
            **fields,
        )
        db_session.add(item)
        db_session.commit()
        return item
    return _create


@pytest.fixture
def seeded_settings(db_session):
    for key, (kind, value, description) in KNOWN_SETTINGS.items():
        db_session.add(models.Setting(key=key, type=kind, value=value, description=description))
    db_session.commit()


# External services

class FakePayments:
    """In-memory stand-in for StripeGateway."""

    def __init__(self):
        self.intents = {}
        self.refunds = []
        self.refund_error = None

    def create_payment_intent(self, *, amount, currency, metadata, customer_id=None):
        intent_id = f"pi_{uuid.uuid4().hex[:12]}"
        intent = {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret",
            "amount": amount,
            "currency": currency,
            "status": "requires_payment_method",
            "created": int(time.time()),
            "metadata": dict(metadata),
            "customer": customer_id,
        }
        self.intents[intent_id] = intent
        return intent

    def add_intent(self, *, status="succeeded", amount=2000, metadata=None, customer_id=None, created=None):
        intent = self.create_payment_intent(
            amount=amount, currency="eur", metadata=metadata or {}, customer_id=customer_id
        )
        intent["status"] = status
        if created is not None:
            intent["created"] = created
        return intent

    def retrieve_payment_intent(self, payment_intent_id):
        if payment_intent_id not in self.intents:
            raise PaymentError("No such payment_intent", details={"code": "resource_missing"})
        return self.intents[payment_intent_id]

    def list_payment_intents(self, *, customer_id, limit=50):
        return [i for i in self.intents.values() if i["customer"] == customer_id][:limit]

    def create_refund(self, *, payment_intent_id, amount=None, metadata=None):
        if self.refund_error is not None:
            raise self.refund_error
        intent = self.intents.get(payment_intent_id)
        refund = {
            "id": f"re_{uuid.uuid4().hex[:12]}",
            "amount": amount if amount is not None else (intent["amount"] if intent else 0),
            "status": "pending",
            "payment_intent": payment_intent_id,
            "metadata": metadata or {},
        }
        self.refunds.append(refund)
        return refund


class FakeGenerator:
    def __init__(self):
        self.prompts = []
        self.result = None

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.result


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def client(payments, generator):
    app.dependency_overrides[get_payments] = lambda: payments
    app.dependency_overrides[get_generator] = lambda: generator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_payments, None)
        app.dependency_overrides.pop(get_generator, None)


@pytest.fixture
def as_user():
    """Headers for a profile (or e-mail) as sent by oauth2-proxy."""
    def _headers(profile_or_email):
        email = getattr(profile_or_email, "email", profile_or_email)
        return _h(email.split("@")[0], email)
    return _headers
