"""User profile tools."""

from src.profiles import onboarding_status
from src.tools._base import ToolContext, jsonable

PROFILE_TOOLS = [
    {
        "name": "get_user_profile",
        "description": "Get the user's profile (age, sex, weight, height, goal, experience, equipment, training days) and onboarding status. Use before giving personalized advice.",
        "input_schema": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
    {
        "name": "update_user_profile",
        "description": "Save profile data the user just told you during onboarding or conversation. Only include the fields being provided. Set onboarding_completed when all fields are collected.",
        "input_schema": {
            "type": "object",
            "properties": {
                "age": {"type": "integer"},
                "sex": {"type": "string", "enum": ["male", "female", "other"]},
                "weight": {"type": "number", "description": "Body weight in kg"},
                "height": {"type": "number", "description": "Height in cm"},
                "goal": {"type": "string"},
                "experience": {"type": "string", "enum": ["beginner", "intermediate", "advanced"]},
                "equipment": {"type": "array", "items": {"type": "string"}},
                "training_days_per_week": {"type": "integer"},
                "onboarding_completed": {"type": "boolean"},
            },
            "required": [],
        },
    },
]

_UPDATABLE = set(PROFILE_TOOLS[1]["input_schema"]["properties"])


async def handle_profile_tool(tool_name: str, tool_input: dict, ctx: ToolContext) -> dict:
    if tool_name == "get_user_profile":
        profile = await ctx.store.get_user_profile(ctx.phone_number)
        return {
            "profile": jsonable(profile.model_dump(exclude={"last_image", "last_video"})) if profile else None,
            "onboarding": onboarding_status(profile),
        }

    updates = {k: v for k, v in tool_input.items() if k in _UPDATABLE}
    profile = await ctx.store.upsert_user_profile(ctx.phone_number, **updates)
    return {"success": True, "onboarding": onboarding_status(profile)}
