"""Error taxonomy for the coaching core.

Helpers (normalizer, calculator, PR engine) never catch these; the router
and the HTTP layer turn them into user-facing replies.
"""


class CoachError(Exception):
    """Base class for errors that carry a message meant for the end user."""

    user_message = "Lo siento, algo salió mal. ¿Podrías intentar de nuevo?"


class ProfileNotFoundError(CoachError):
    user_message = (
        "Aún no tengo tu perfil. Cuéntame tu edad, peso, altura y objetivo "
        "para completar tu registro y empezar."
    )

    def __init__(self, phone_number: str):
        super().__init__(f"User profile not found: {phone_number}")
        self.phone_number = phone_number


class MissingPrerequisiteError(CoachError):
    def __init__(self, missing: str, user_message: str):
        super().__init__(f"Missing prerequisite: {missing}")
        self.missing = missing
        self.user_message = user_message


class AnalysisError(CoachError):
    """A vision/LLM/transcription collaborator failed or returned unparseable data."""


class WorkoutNotFoundError(CoachError):
    user_message = "No encontré ese entrenamiento en tu registro. ¿Me dices cuál fue?"

    def __init__(self, workout_session_id: str):
        super().__init__(f"Workout session not found: {workout_session_id}")
        self.workout_session_id = workout_session_id
