"""Tool definitions for the Claude agent."""

from src.tools.history import HISTORY_TOOLS, handle_history_tool
from src.tools.plan import PLAN_TOOLS, handle_plan_tool
from src.tools.profile import PROFILE_TOOLS, handle_profile_tool
from src.tools.records import RECORDS_TOOLS, handle_records_tool
from src.tools.workout import WORKOUT_TOOLS, handle_workout_tool

ALL_TOOLS = (
    PROFILE_TOOLS
    + WORKOUT_TOOLS
    + RECORDS_TOOLS
    + HISTORY_TOOLS
    + PLAN_TOOLS
)

TOOL_HANDLERS = {
    "get_user_profile": handle_profile_tool,
    "update_user_profile": handle_profile_tool,
    "log_workout": handle_workout_tool,
    "get_workout_summary": handle_workout_tool,
    "get_workouts": handle_workout_tool,
    "update_workout": handle_workout_tool,
    "delete_workout": handle_workout_tool,
    "get_personal_records": handle_records_tool,
    "get_exercise_history": handle_history_tool,
    "get_progress_overview": handle_history_tool,
    "generate_training_plan": handle_plan_tool,
    "generate_nutrition_plan": handle_plan_tool,
    "predict_progress": handle_plan_tool,
    "get_saved_plans": handle_plan_tool,
}
