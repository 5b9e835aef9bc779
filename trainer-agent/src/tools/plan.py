"""Training plan, nutrition plan and progress prediction tools.

Nutrition plans and predictions need a body scan; training plans use the
latest one when it exists. Every generated plan is saved.
"""

import logging

from src.errors import MissingPrerequisiteError
from src.profiles import require_profile
from src.tools._base import ToolContext, jsonable

logger = logging.getLogger(__name__)

PLAN_TOOLS = [
    {
        "name": "generate_training_plan",
        "description": (
            "Create a 4-6 week training program (weeks, days, exercises with sets, reps, rest and RPE). "
            "Missing inputs default to the user's profile. Ask for anything the profile lacks first."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "days_per_week": {"type": "integer", "description": "Training days per week (1-7)"},
                "goal": {"type": "string"},
                "equipment": {"type": "array", "items": {"type": "string"}},
                "experience": {"type": "string", "enum": ["beginner", "intermediate", "advanced"]},
                "focus_areas": {"type": "array", "items": {"type": "string"}},
            },
            "required": [],
        },
    },
    {
        "name": "generate_nutrition_plan",
        "description": "Create a nutrition plan (macros for training and rest days, example meals) from the user's profile, latest body scan and latest training plan.",
        "input_schema": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
    {
        "name": "predict_progress",
        "description": "Predict the user's physique and strength progress over a number of weeks from their body scans.",
        "input_schema": {
            "type": "object",
            "properties": {
                "weeks": {"type": "integer", "description": "Timeframe in weeks (default 8)"},
            },
            "required": [],
        },
    },
    {
        "name": "get_saved_plans",
        "description": "Get the user's most recent saved training plan, nutrition plan and progress prediction.",
        "input_schema": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
]

NO_SCAN_MESSAGE = (
    "Para esto necesito al menos un body scan. Envíame una foto de tu físico "
    "(de frente, buena luz) y lo hacemos."
)
MISSING_PLAN_INPUT_MESSAGE = (
    "Para armar tu programa necesito saber {missing}. ¿Me lo cuentas?"
)

_PLAN_INPUTS = {
    "days_per_week": "training_days_per_week",
    "goal": "goal",
    "equipment": "equipment",
    "experience": "experience",
}
_PLAN_INPUT_LABELS = {
    "days_per_week": "cuántos días por semana entrenas",
    "goal": "tu objetivo",
    "equipment": "qué equipo tienes",
    "experience": "tu nivel de experiencia",
}


def _first(rows: list):
    return rows[0] if rows else None


async def handle_plan_tool(tool_name: str, tool_input: dict, ctx: ToolContext) -> dict:
    profile = await require_profile(ctx.store, ctx.phone_number)
    scans = await ctx.store.list_body_scans(profile.id)

    if tool_name == "get_saved_plans":
        return jsonable({
            "training_plan": _first(await ctx.store.list_training_plans(profile.id)),
            "nutrition_plan": _first(await ctx.store.list_nutrition_plans(profile.id)),
            "prediction": _first(await ctx.store.list_predictions(profile.id)),
        })

    if tool_name == "generate_training_plan":
        inputs = {
            arg: tool_input.get(arg) if tool_input.get(arg) is not None else getattr(profile, field)
            for arg, field in _PLAN_INPUTS.items()
        }
        missing = [arg for arg, value in inputs.items() if value is None]
        if missing:
            labels = ", ".join(_PLAN_INPUT_LABELS[arg] for arg in missing)
            raise MissingPrerequisiteError(
                "training_plan_inputs", MISSING_PLAN_INPUT_MESSAGE.format(missing=labels)
            )
        plan = await ctx.body_analyzer.generate_training_plan(
            profile, _first(scans), focus_areas=tool_input.get("focus_areas"), **inputs
        )
        await ctx.store.insert_training_plan(plan)
        logger.info(f"Saved {plan.duration}-week training plan {plan.id} for {ctx.phone_number}")
        return jsonable(plan)

    if not scans:
        raise MissingPrerequisiteError("body_scan", NO_SCAN_MESSAGE)

    if tool_name == "generate_nutrition_plan":
        training_plan = _first(await ctx.store.list_training_plans(profile.id))
        plan = await ctx.body_analyzer.generate_nutrition_plan(profile, scans[0], training_plan)
        await ctx.store.insert_nutrition_plan(plan)
        logger.info(f"Saved nutrition plan {plan.id} for {ctx.phone_number}")
        return jsonable(plan)

    prediction = await ctx.body_analyzer.predict_progress(profile, scans, tool_input.get("weeks", 8))
    await ctx.store.insert_prediction(prediction)
    logger.info(f"Saved {prediction.timeframe_weeks}-week prediction {prediction.id} for {ctx.phone_number}")
    return jsonable(prediction)
