"""Exercise-video confirmation dialogue.

A detected exercise must be confirmed by the user before the full technique
analysis runs. The pending row is keyed by phone number, and its ``state``
drives the transitions below.
"""

import logging
from enum import Enum

from src.formatting import format_technique
from src.models import ConfirmationState, MediaRef, PendingExerciseConfirmation

logger = logging.getLogger(__name__)

AFFIRMATIVE_TOKENS = {"sí", "si", "yes", "correcto", "exacto"}
NEGATIVE_TOKENS = {"no", "incorrecto", "nope"}

CONFIRM_QUESTION = "Veo que estás entrenando *{exercise}*, ¿es así?"
CONFIRMED_MESSAGE = "Perfecto, analizando tu técnica..."
CORRECTED_MESSAGE = "Perfecto, analizando tu {exercise}..."
ASK_CORRECTION_MESSAGE = "Entendido. ¿Qué ejercicio quisiste hacer?"
TECHNIQUE_ERROR_MESSAGE = "Lo siento, tuve un problema al analizar tu técnica. ¿Podrías intentar de nuevo?"


class Reply(str, Enum):
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    OTHER = "other"


class Action(str, Enum):
    CONFIRM = "confirm"
    REJECT = "reject"
    CORRECT = "correct"
    FALL_THROUGH = "fall_through"


def classify_reply(text: str) -> Reply:
    token = text.strip().lower().strip(".!¡?¿ ")
    if token in AFFIRMATIVE_TOKENS:
        return Reply.AFFIRMATIVE
    if token in NEGATIVE_TOKENS:
        return Reply.NEGATIVE
    return Reply.OTHER


def next_action(state: ConfirmationState, text: str) -> Action:
    """Pure transition on (state, reply)."""
    if state == ConfirmationState.AWAITING_CORRECTION:
        # Free text is taken verbatim as the exercise name.
        return Action.CORRECT if text.strip() else Action.FALL_THROUGH
    if state == ConfirmationState.DETECTED:
        reply = classify_reply(text)
        if reply == Reply.AFFIRMATIVE:
            return Action.CONFIRM
        if reply == Reply.NEGATIVE:
            return Action.REJECT
    return Action.FALL_THROUGH


class ExerciseConfirmationDialogue:
    """Drives the NONE -> DETECTED -> CONFIRMED / CORRECTED flow for one user."""

    def __init__(self, store, vision, media, messenger, sessions):
        self.store = store
        self.vision = vision
        self.media = media
        self.messenger = messenger
        self.sessions = sessions

    async def _say(self, phone_number: str, sender: str, body: str) -> None:
        await self.messenger.send(phone_number, sender, body)
        await self.sessions.record_turn(phone_number, "assistant", body)

    async def start(self, phone_number: str, sender: str, exercise: str, video: MediaRef) -> None:
        """Record the detection (replacing any earlier one) and ask the user to confirm."""
        await self.store.upsert_pending_confirmation(
            PendingExerciseConfirmation(
                phone_number=phone_number,
                detected_exercise=exercise,
                video=video,
            )
        )
        logger.info(f"Pending confirmation for {phone_number}: {exercise}")
        await self._say(phone_number, sender, CONFIRM_QUESTION.format(exercise=exercise))

    async def answer(self, pending: PendingExerciseConfirmation, text: str, sender: str) -> bool:
        """Consume ``text`` as a dialogue answer. Returns False when it is not one."""
        phone_number = pending.phone_number
        action = next_action(pending.state, text)
        logger.info(f"Confirmation reply from {phone_number} in {pending.state.value}: {action.value}")

        if action == Action.FALL_THROUGH:
            return False
        await self.sessions.record_turn(phone_number, "user", text)

        if action == Action.REJECT:
            await self.store.upsert_pending_confirmation(
                pending.model_copy(update={"state": ConfirmationState.AWAITING_CORRECTION})
            )
            await self._say(phone_number, sender, ASK_CORRECTION_MESSAGE)
            return True

        if action == Action.CONFIRM:
            await self.store.delete_pending_confirmation(phone_number)
            await self._say(phone_number, sender, CONFIRMED_MESSAGE)
            await self._analyze(pending, pending.detected_exercise, sender)
            return True

        corrected = text.strip()
        try:
            await self._say(phone_number, sender, CORRECTED_MESSAGE.format(exercise=corrected))
            await self._analyze(pending, corrected, sender)
        finally:
            await self.store.delete_pending_confirmation(phone_number)
        return True

    async def _analyze(self, pending: PendingExerciseConfirmation, exercise: str, sender: str) -> None:
        phone_number = pending.phone_number
        try:
            video = await self.media.fetch(pending.video)
            profile = await self.store.get_user_profile(phone_number)
            analysis = await self.vision.analyze_technique(
                video, pending.video.content_type, exercise, profile
            )
        except Exception:
            logger.exception(f"Technique analysis failed for {phone_number} ({exercise})")
            await self._say(phone_number, sender, TECHNIQUE_ERROR_MESSAGE)
            return
        await self._say(phone_number, sender, format_technique(analysis))
