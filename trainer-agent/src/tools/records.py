"""Personal record lookup tool."""

from src.models import RecordType
from src.normalizer import normalize_exercise_name
from src.personal_records import current_records_by_exercise, recent_records, record_history
from src.profiles import require_profile
from src.tools._base import ToolContext, jsonable

RECORDS_TOOLS = [
    {
        "name": "get_personal_records",
        "description": (
            "Get all of the user's personal records by exercise (1RM, max reps, max volume, best set) "
            "and those achieved in the last 30 days. Pass exercise_name and record_type to get how "
            "one record evolved over time instead."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "exercise_name": {"type": "string", "description": "Exercise name in Spanish or English"},
                "record_type": {"type": "string", "enum": [t.value for t in RecordType]},
            },
            "required": [],
        },
    },
]


async def handle_records_tool(tool_name: str, tool_input: dict, ctx: ToolContext) -> dict:
    profile = await require_profile(ctx.store, ctx.phone_number)

    if tool_input.get("exercise_name"):
        key = normalize_exercise_name(tool_input["exercise_name"])
        record_type = RecordType(tool_input.get("record_type") or RecordType.ONE_REP_MAX)
        history = await record_history(ctx.store, profile.id, key, record_type)
        return jsonable({
            "exercise_name": tool_input["exercise_name"],
            "normalized_name": key,
            "record_type": record_type.value,
            "history": history,
        })

    all_prs = await current_records_by_exercise(ctx.store, profile.id)
    recent = await recent_records(ctx.store, profile.id, days=30)
    return jsonable({
        "all_prs": all_prs,
        "recent_prs": recent,
        "total_exercises_tracked": len(all_prs),
        "recent_pr_count": len(recent),
    })
