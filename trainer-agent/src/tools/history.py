"""Exercise progress tools."""

from src.exercise_history import (
    compare_performance,
    get_all_exercises_progress,
    get_exercise_history,
    get_progress_summary,
)
from src.normalizer import normalize_exercise_name
from src.profiles import require_profile
from src.tools._base import DATE_RANGE_PROPERTIES, ToolContext, date_range, jsonable

HISTORY_TOOLS = [
    {
        "name": "get_exercise_history",
        "description": (
            "Performance history and progress summary for one exercise. Use when the user asks how "
            "they are progressing on a lift. Optionally restrict to a date range, or pass two "
            "workout_session_ids to compare those sessions."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "exercise_name": {"type": "string", "description": "Exercise name in Spanish or English"},
                **DATE_RANGE_PROPERTIES,
                "compare_session_ids": {
                    "type": "array",
                    "items": {"type": "string"},
                    "minItems": 2,
                    "maxItems": 2,
                    "description": "Older session first",
                },
            },
            "required": ["exercise_name"],
        },
    },
    {
        "name": "get_progress_overview",
        "description": "One line per exercise the user has trained: sessions, last date, current estimated 1RM and improvement since the first session.",
        "input_schema": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
]


async def handle_history_tool(tool_name: str, tool_input: dict, ctx: ToolContext) -> dict:
    profile = await require_profile(ctx.store, ctx.phone_number)

    if tool_name == "get_progress_overview":
        exercises = await get_all_exercises_progress(ctx.store, profile.id)
        return jsonable({"exercises": exercises, "total_exercises": len(exercises)})

    key = normalize_exercise_name(tool_input["exercise_name"])
    if tool_input.get("compare_session_ids"):
        first, second = tool_input["compare_session_ids"][:2]
        comparison = await compare_performance(ctx.store, profile.id, key, first, second)
        if comparison is None:
            return {"success": False, "error": f"{key} was not trained in both sessions"}
        return jsonable(comparison)

    since, until = date_range(tool_input)
    history = await get_exercise_history(ctx.store, profile.id, key, limit=20, since=since, until=until)
    return jsonable({
        "exercise_name": tool_input["exercise_name"],
        "normalized_name": key,
        "history": history,
        "progress_summary": await get_progress_summary(ctx.store, profile.id, key),
        "total_sessions": len(history),
    })
