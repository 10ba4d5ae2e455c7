"""Structured check-in extraction.

After each parent message, a background task asks the extraction model
to pull mood, medicine, activity and meal out of the free text and
records the result on the feed as a CheckInLog.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from eldercare.care.models import CheckInLog
from eldercare.config import settings
from eldercare.llm.client import complete_text
from eldercare.llm.models import ModelManager, Purpose

if TYPE_CHECKING:
    from eldercare.care.feed import FeedWriter
    from eldercare.care.models import Message

logger = logging.getLogger(__name__)

EXTRACTION_RULES = """\
You turn an elderly parent's chat message into a structured daily check-in.
Return JSON only, with these keys:
  "relevant": true if the message says anything about medicine, meals, activity or mood
  "mood": short word or phrase, or ""
  "medicine": true only if the parent clearly says they took their medicine
  "activity": short phrase, or ""
  "meal": short phrase, or ""
  "notes": anything else worth telling the family, or ""
Never guess. Leave fields empty when the message does not mention them.
"""


def build_extraction_prompt(message: Message) -> str:
    """Build the user turn sent to the extraction model."""
    lines = [f"<message>{message.content}</message>"]
    if message.media is not None:
        lines.append(f"<attachment>{message.media.mime_type}</attachment>")
    if message.location is not None:
        lines.append(f"<location>{message.location.describe()}</location>")
    lines.append("Return JSON only.")
    return "\n".join(lines)


def _load_json(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Models often wrap JSON in markdown fences
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            return None
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def parse_check_in(text: str, message: Message) -> CheckInLog | None:
    """Parse the extraction model's output into a CheckInLog.

    Returns None for unparseable output or when the message was not a
    check-in at all.
    """
    data = _load_json(text)
    if data is None:
        logger.warning("Failed to parse check-in JSON")
        return None
    if not data.pop("relevant", True):
        return None

    location = None
    if message.location is not None:
        location = (message.location.lat, message.location.lng)

    try:
        return CheckInLog(
            timestamp=message.timestamp,
            location=location,
            **{k: v for k, v in data.items() if k in ("mood", "medicine", "activity", "meal", "notes")},
        )
    except ValidationError:
        logger.warning("Check-in JSON failed validation: %s", text[:200])
        return None


async def extract_check_in(message: Message, writer: FeedWriter) -> CheckInLog | None:
    """Background task: extract a check-in from a parent message and record it.

    Call via ``asyncio.create_task(extract_check_in(...))``. Never raises.
    """
    if not settings.checkin_extraction_enabled:
        return None
    if not message.content.strip():
        return None

    try:
        raw = await complete_text(
            build_extraction_prompt(message),
            system=EXTRACTION_RULES,
            model=ModelManager.get().model_id(Purpose.EXTRACTION),
        )
    except Exception:
        logger.exception("Check-in extraction failed")
        return None

    check_in = parse_check_in(raw, message)
    if check_in is not None:
        writer.record_check_in(check_in)
    return check_in
