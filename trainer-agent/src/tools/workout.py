"""Workout logging, lookup, editing and summary tools."""

from datetime import datetime, timezone

from src.formatting import format_new_records
from src.profiles import require_profile
from src.tools._base import DATE_RANGE_PROPERTIES, ToolContext, date_range, jsonable
from src.workouts import delete_workout, get_workout_stats, get_workouts, log_workout, update_workout

EXERCISES_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Exercise name in Spanish or English"},
            "sets": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "reps": {"type": "integer"},
                        "weight": {"type": "number", "description": "Weight in kg"},
                        "rpe": {"type": "number", "description": "RPE 1-10"},
                        "notes": {"type": "string"},
                    },
                    "required": ["reps", "weight"],
                },
            },
        },
        "required": ["name", "sets"],
    },
}

WORKOUT_TOOLS = [
    {
        "name": "log_workout",
        "description": (
            "Log a completed workout with exercises, sets, reps and weight. Automatically checks "
            "for new personal records (1RM, max reps, max volume, best set). Confirm the details "
            "with the user first. Celebrate any new PRs returned; if none, still acknowledge the work."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "exercises": EXERCISES_SCHEMA,
                "date": {"type": "number", "description": "Unix timestamp in ms (defaults to now)"},
                "duration": {"type": "number", "description": "Duration in minutes"},
                "notes": {"type": "string"},
            },
            "required": ["exercises"],
        },
    },
    {
        "name": "get_workout_summary",
        "description": "Summary of recent training: workouts, exercises, sets, volume and average duration.",
        "input_schema": {
            "type": "object",
            "properties": {
                "days": {"type": "integer", "description": "Days to look back (default 30)"},
            },
            "required": [],
        },
    },
    {
        "name": "get_workouts",
        "description": "List the user's logged workouts (with their ids) between two dates. Use to find a workout before editing or deleting it.",
        "input_schema": {
            "type": "object",
            "properties": DATE_RANGE_PROPERTIES,
            "required": [],
        },
    },
    {
        "name": "update_workout",
        "description": (
            "Correct a logged workout. Only include what changes; exercises replaces the whole "
            "exercise list. Personal records already awarded are not recalculated."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "workout_session_id": {"type": "string"},
                "exercises": EXERCISES_SCHEMA,
                "duration": {"type": "number", "description": "Duration in minutes"},
                "notes": {"type": "string"},
            },
            "required": ["workout_session_id"],
        },
    },
    {
        "name": "delete_workout",
        "description": "Delete a logged workout. Confirm with the user first.",
        "input_schema": {
            "type": "object",
            "properties": {
                "workout_session_id": {"type": "string"},
            },
            "required": ["workout_session_id"],
        },
    },
]


async def handle_workout_tool(tool_name: str, tool_input: dict, ctx: ToolContext) -> dict:
    if tool_name == "get_workout_summary":
        profile = await require_profile(ctx.store, ctx.phone_number)
        return await get_workout_stats(ctx.store, profile.id, tool_input.get("days", 30))

    if tool_name == "get_workouts":
        profile = await require_profile(ctx.store, ctx.phone_number)
        since, until = date_range(tool_input)
        sessions = await get_workouts(ctx.store, profile.id, since=since, until=until)
        return jsonable({"workouts": sessions, "total_workouts": len(sessions)})

    if tool_name == "update_workout":
        session = await update_workout(
            ctx.store,
            ctx.phone_number,
            tool_input["workout_session_id"],
            exercises=tool_input.get("exercises"),
            duration=tool_input.get("duration"),
            notes=tool_input.get("notes"),
        )
        return jsonable({"success": True, "workout": session})

    if tool_name == "delete_workout":
        await delete_workout(ctx.store, ctx.phone_number, tool_input["workout_session_id"])
        return {"success": True, "workout_session_id": tool_input["workout_session_id"]}

    date = None
    if tool_input.get("date"):
        date = datetime.fromtimestamp(tool_input["date"] / 1000, tz=timezone.utc)
    result = await log_workout(
        ctx.store,
        ctx.phone_number,
        tool_input["exercises"],
        date=date,
        duration=tool_input.get("duration"),
        notes=tool_input.get("notes"),
    )
    result["summary"] = format_new_records(result["new_prs"])
    return jsonable(result)
