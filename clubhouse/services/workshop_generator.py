"""
Workshop draft generation with Google Gemini.

The model returns structured JSON which is coerced into ``WorkshopCreate``;
anything the coordinator did not specify falls back to the club defaults.
"""
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from clubhouse.db import schemas
from clubhouse.errors import ExternalServiceError, ValidationFailed

logger = logging.getLogger("clubhouse.generator")

DEFAULT_VENUE = "St Catherine's Sport Centre"
DEFAULT_REFUND_DAYS = 3
DEFAULT_CAPACITY = 20

SYSTEM_PROMPT = """You are an assistant for a Historical European Martial Arts (HEMA) club based in Dublin, Ireland.
Help the workshop organiser turn a short request into a workshop record.

A workshop is an extra-curricular activity outside regular training and is usually paid.
Today is {today}.
Our permanent venue (the centre) is St Catherine's Sport Centre, Marrowbone Lane, Dublin 8; use it when no venue is given.
Prices are in euros. Workshops are private (members only) unless the request says they are open to everyone.
For public workshops price_non_member equals price_member unless a separate price is given.
Do not announce on Discord or by email unless asked; "announce everywhere" means both.
The default refund deadline is 3 days. Dates use ISO 8601 (YYYY-MM-DD) and times use 24h HH:MM.
A workshop cannot start today and must end after it starts.
"""

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "location": {"type": "string"},
        "workshop_date": {"type": "string"},
        "workshop_time": {"type": "string"},
        "workshop_end_time": {"type": "string"},
        "max_capacity": {"type": "integer"},
        "price_member": {"type": "number"},
        "price_non_member": {"type": "number"},
        "is_public": {"type": "boolean"},
        "refund_deadline_days": {"type": "integer"},
        "announce_discord": {"type": "boolean"},
        "announce_email": {"type": "boolean"},
    },
    "required": ["title", "workshop_date", "workshop_time", "workshop_end_time"],
}


def _clean_time(value: Any) -> Optional[str]:
    if not value:
        return None
    text = str(value).strip()
    # Accept full ISO timestamps as well as bare HH:MM[:SS]
    if "T" in text:
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%H:%M")
        except ValueError:
            return text
    return text[:5]


def _clean_date(value: Any) -> Optional[str]:
    if not value:
        return None
    text = str(value).strip()
    return text[:10]


def _clean_price(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except (TypeError, ValueError):
        return 0.0


def coerce_workshop(output: Dict[str, Any]) -> schemas.WorkshopCreate:
    """Fill defaults and validate model output as a ``WorkshopCreate``."""
    price_member = _clean_price(output.get("price_member")) or 0.0
    is_public = bool(output.get("is_public", False))
    price_non_member = _clean_price(output.get("price_non_member"))
    if price_non_member is None and is_public:
        price_non_member = price_member
    refund_days = output.get("refund_deadline_days", DEFAULT_REFUND_DAYS)
    if refund_days is not None:
        try:
            refund_days = max(int(refund_days), 0)
        except (TypeError, ValueError):
            refund_days = DEFAULT_REFUND_DAYS
    payload = {
        "title": (output.get("title") or "").strip(),
        "description": output.get("description") or "",
        "location": (output.get("location") or "").strip() or DEFAULT_VENUE,
        "workshop_date": _clean_date(output.get("workshop_date")),
        "workshop_time": _clean_time(output.get("workshop_time")),
        "workshop_end_time": _clean_time(output.get("workshop_end_time")),
        "max_capacity": output.get("max_capacity") or DEFAULT_CAPACITY,
        "price_member": price_member,
        "price_non_member": price_non_member,
        "is_public": is_public,
        "refund_deadline_days": refund_days,
        "announce_discord": bool(output.get("announce_discord", False)),
        "announce_email": bool(output.get("announce_email", False)),
    }
    try:
        return schemas.WorkshopCreate(**payload)
    except ValidationError as exc:
        issues = [
            {"path": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationFailed("Generated workshop data is invalid", details=issues) from exc


def _gemini_completion(api_key: str, model: str, prompt: str) -> str:
    from google import genai

    client = genai.Client(api_key=api_key)
    response = client.models.generate_content(
        model=model,
        contents=prompt,
        config={
            "system_instruction": SYSTEM_PROMPT.format(today=datetime.now(timezone.utc).strftime("%A %d %B %Y")),
            "response_mime_type": "application/json",
            "response_schema": RESPONSE_SCHEMA,
            "temperature": 0.5,
        },
    )
    return response.text or ""


class WorkshopGenerator:
    def __init__(
        self,
        llm_api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        completion: Optional[Callable[[str, str, str], str]] = None,
    ):
        self.llm_api_key = llm_api_key or os.getenv("LLM_API_KEY")
        self.model_name = model_name or os.getenv("LLM_MODEL_NAME", "gemini-2.5-flash")
        self._completion = completion or _gemini_completion

    def generate(self, prompt: str) -> schemas.WorkshopCreate:
        if not self.llm_api_key:
            raise ExternalServiceError("Workshop generation is not configured")
        logger.info("workshop_generate: model=%s prompt_chars=%s", self.model_name, len(prompt))
        try:
            text = self._completion(self.llm_api_key, self.model_name, prompt)
            output = json.loads(text or "{}")
        except json.JSONDecodeError as exc:
            logger.error("workshop_generate_unparseable: %s", exc)
            raise ExternalServiceError("There was an error generating this workshop data") from exc
        except Exception as exc:
            logger.exception("workshop_generate_failed")
            raise ExternalServiceError("There was an error generating this workshop data") from exc
        if not isinstance(output, dict):
            raise ExternalServiceError("There was an error generating this workshop data")
        return coerce_workshop(output)


def get_workshop_generator() -> WorkshopGenerator:
    return WorkshopGenerator()
