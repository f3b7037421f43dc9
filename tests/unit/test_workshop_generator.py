import json
from datetime import datetime, timedelta, timezone

import pytest

from clubhouse.errors import ExternalServiceError, ValidationFailed
from clubhouse.services.workshop_generator import (
    DEFAULT_CAPACITY,
    DEFAULT_VENUE,
    WorkshopGenerator,
    coerce_workshop,
)

NEXT_WEEK = (datetime.now(timezone.utc).date() + timedelta(days=7)).isoformat()


def _generator(output):
    prompts = []

    def completion(api_key, model, prompt):
        prompts.append((api_key, model, prompt))
        return output if isinstance(output, str) else json.dumps(output)

    return WorkshopGenerator(llm_api_key="key", model_name="test-model", completion=completion), prompts


def test_generate_fills_club_defaults():
    generator, prompts = _generator({
        "title": "Dussack intro",
        "workshop_date": NEXT_WEEK,
        "workshop_time": "18:30",
        "workshop_end_time": "20:30",
        "price_member": 12.5,
    })

    draft = generator.generate("dussack next week, 12.50")

    assert prompts == [("key", "test-model", "dussack next week, 12.50")]
    assert draft.title == "Dussack intro"
    assert draft.location == DEFAULT_VENUE
    assert draft.max_capacity == DEFAULT_CAPACITY
    assert draft.refund_deadline_days == 3
    assert draft.is_public is False
    assert draft.announce_discord is False


def test_public_workshop_copies_member_price():
    draft = coerce_workshop({
        "title": "Open sparring",
        "workshop_date": NEXT_WEEK,
        "workshop_time": f"{NEXT_WEEK}T10:00:00Z",
        "workshop_end_time": "12:00:00",
        "price_member": 10,
        "is_public": True,
    })
    assert draft.price_non_member == 10
    assert draft.workshop_time.strftime("%H:%M") == "10:00"
    assert draft.workshop_end_time.strftime("%H:%M") == "12:00"


def test_negative_prices_are_clamped():
    draft = coerce_workshop({
        "title": "Cutting",
        "workshop_date": NEXT_WEEK,
        "workshop_time": "10:00",
        "workshop_end_time": "11:00",
        "price_member": -5,
        "refund_deadline_days": "soon",
    })
    assert draft.price_member == 0
    assert draft.refund_deadline_days == 3


def test_invalid_output_reports_issues():
    with pytest.raises(ValidationFailed) as exc:
        coerce_workshop({"title": "", "workshop_date": NEXT_WEEK, "workshop_time": "12:00", "workshop_end_time": "11:00"})
    assert exc.value.message == "Generated workshop data is invalid"
    assert isinstance(exc.value.details, list)
    assert exc.value.details


def test_unparseable_output():
    generator, _ = _generator("this is not json")
    with pytest.raises(ExternalServiceError) as exc:
        generator.generate("anything")
    assert exc.value.message == "There was an error generating this workshop data"


def test_completion_failure_is_wrapped():
    def broken(api_key, model, prompt):
        raise ConnectionError("network down")

    generator = WorkshopGenerator(llm_api_key="key", completion=broken)
    with pytest.raises(ExternalServiceError):
        generator.generate("anything")


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    with pytest.raises(ExternalServiceError) as exc:
        WorkshopGenerator().generate("anything")
    assert exc.value.message == "Workshop generation is not configured"
