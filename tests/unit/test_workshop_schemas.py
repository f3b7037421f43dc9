from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from clubhouse.db import schemas
from clubhouse.db.schemas.workshops import euros_to_cents

TOMORROW = datetime.now(timezone.utc).date() + timedelta(days=1)


def _create(**overrides):
    values = {
        "title": "Longsword",
        "location": "Hall",
        "workshop_date": TOMORROW,
        "workshop_time": "09:00",
        "workshop_end_time": "11:15",
        "max_capacity": 10,
        "price_member": 19.99,
    }
    values.update(overrides)
    return schemas.WorkshopCreate(**values)


@pytest.mark.parametrize("euros,cents", [(0, 0), (19.99, 1999), (0.1 + 0.2, 30), (25, 2500)])
def test_euros_to_cents(euros, cents):
    assert euros_to_cents(euros) == cents


def test_create_row_combines_date_and_times():
    row = _create().to_row()
    assert row["start_date"] == datetime.combine(TOMORROW, datetime.min.time()).replace(
        hour=9, tzinfo=timezone.utc
    )
    assert row["end_date"] - row["start_date"] == timedelta(hours=2, minutes=15)
    assert row["price_member"] == 1999
    assert row["price_non_member"] == 1999


@pytest.mark.parametrize(
    "overrides",
    [
        {"workshop_time": "25:00"},
        {"workshop_time": "11:00", "workshop_end_time": "10:00"},
        {"workshop_date": datetime.now(timezone.utc).date()},
        {"max_capacity": 0},
        {"price_member": -1},
        {"title": ""},
    ],
)
def test_create_rejects_invalid_input(overrides):
    with pytest.raises(ValidationError):
        _create(**overrides)


def test_update_row_only_has_sent_fields():
    update = schemas.WorkshopUpdate(title="New title", refund_deadline_days=None)
    assert update.to_row() == {"title": "New title", "refund_days": None}
    assert update.changes_pricing() is False
    assert schemas.WorkshopUpdate(price_non_member=5).changes_pricing() is True


def test_update_reschedules_when_date_and_times_sent():
    row = schemas.WorkshopUpdate(workshop_date=TOMORROW, workshop_time="10:00", workshop_end_time="12:00").to_row()
    assert row["start_date"].hour == 10
    assert row["end_date"].hour == 12


def test_generate_request_strips_prompt():
    assert schemas.WorkshopGenerateRequest(prompt="  rapier  ").prompt == "rapier"
    with pytest.raises(ValidationError):
        schemas.WorkshopGenerateRequest(prompt="   ")
