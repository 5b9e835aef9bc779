"""Shared context passed to every tool handler."""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from src.analysis import BodyAnalyzer
from src.store import Store


@dataclass
class ToolContext:
    phone_number: str
    store: Store
    body_analyzer: BodyAnalyzer | None = None


def jsonable(value):
    """Dump pydantic models (possibly nested in lists/dicts) for tool results."""
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [jsonable(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


DATE_RANGE_PROPERTIES = {
    "start_date": {"type": "string", "description": "First day included, YYYY-MM-DD"},
    "end_date": {"type": "string", "description": "Last day included, YYYY-MM-DD"},
}


def date_range(tool_input: dict) -> tuple[datetime | None, datetime | None]:
    """Turn start_date/end_date day strings into an inclusive UTC range."""
    start, end = tool_input.get("start_date"), tool_input.get("end_date")
    since = datetime.combine(date.fromisoformat(start), time.min, timezone.utc) if start else None
    until = datetime.combine(date.fromisoformat(end), time.max, timezone.utc) if end else None
    return since, until
