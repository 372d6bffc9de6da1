# medivision/llm/parsing.py
import json
import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from medivision.results import ParseFailure, ProviderResult, Success
from medivision.schema import Medicine, Point, WhenToTake

logger = logging.getLogger(__name__)


class CoordinateResponse(BaseModel):
    coordinates: List[Any] = Field(default_factory=list)


# -----------------------------
# Helpers
# -----------------------------

def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"```.*?\n", "", text)
    return text.replace("```", "").strip()


def extract_json(text: str) -> Optional[dict]:
    """
    Safely extract a JSON object from LLM output.
    Handles markdown fences and chatter around the object.
    """
    if not text:
        return None

    text = strip_code_fences(text)

    start = text.find("{")
    end = text.rfind("}")

    if start == -1 or end == -1 or end < start:
        return None

    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None

    return parsed if isinstance(parsed, dict) else None


# -----------------------------
# Typed parsers
# -----------------------------

def parse_coordinates(raw_text: str) -> ProviderResult[List[Point]]:
    parsed = extract_json(raw_text)
    if parsed is None:
        return ParseFailure("no JSON object in response", raw=raw_text or "")

    try:
        response = CoordinateResponse.model_validate(parsed)
    except ValidationError as e:
        return ParseFailure(f"invalid coordinates: {e.error_count()} error(s)", raw=raw_text)

    return points_or_failure(response.coordinates, raw_text)


def valid_points(entries: List[Any]) -> List[Point]:
    """Keep the entries that are valid points, in order."""
    points = []
    for entry in entries:
        try:
            points.append(Point.model_validate(entry))
        except ValidationError:
            logger.warning("[PARSE] Skipping invalid point %r", entry)
    return points


def points_or_failure(entries: List[Any], raw_text: str) -> ProviderResult[List[Point]]:
    points = valid_points(entries)
    if entries and not points:
        return ParseFailure(f"no valid point among {len(entries)} entries", raw=raw_text)
    return Success(points)


def parse_medicines(raw_text: str) -> ProviderResult[List[Medicine]]:
    """
    Parse the {"medicines": [...]} extraction response.

    Entries whose when_to_take is not Morning/Evening/Both (for instance
    "Afternoon") are dropped with a warning, as are otherwise invalid ones.
    """
    parsed = extract_json(raw_text)
    if parsed is None:
        return ParseFailure("no JSON object in response", raw=raw_text or "")

    entries = parsed.get("medicines")
    if not isinstance(entries, list):
        return ParseFailure("'medicines' is not a list", raw=raw_text)

    medicines, dropped = _validate_medicines(entries)
    for entry, reason in dropped:
        logger.warning("[PARSE] Dropping medicine %r: %s", entry, reason)

    return Success(medicines)


def _validate_medicines(entries: list) -> Tuple[List[Medicine], List[Tuple[object, str]]]:
    valid_timings = {w.value for w in WhenToTake}
    medicines = []
    dropped = []

    for entry in entries:
        if not isinstance(entry, dict):
            dropped.append((entry, "not an object"))
            continue

        timing = entry.get("when_to_take", entry.get("whenToTake"))
        if timing not in valid_timings:
            dropped.append((entry, f"unsupported when_to_take {timing!r}"))
            continue

        try:
            medicines.append(Medicine.model_validate(entry))
        except ValidationError as e:
            dropped.append((entry, f"{e.error_count()} validation error(s)"))

    return medicines, dropped
