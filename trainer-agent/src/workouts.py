"""Workout logging: persist the session, then detect PRs and record history."""

import logging
from datetime import datetime, timedelta

from src.errors import WorkoutNotFoundError
from src.exercise_history import log_exercise_performance
from src.models import WorkoutExercise, WorkoutSession, WorkoutSet, utcnow
from src.normalizer import normalize_exercise_name
from src.personal_records import check_and_update_records
from src.profiles import require_profile
from src.store import Store

logger = logging.getLogger(__name__)


def build_exercises(raw_exercises: list[dict]) -> list[WorkoutExercise]:
    """Normalize names and number sets from already-structured input."""
    exercises = []
    for raw in raw_exercises:
        sets = [
            WorkoutSet(set_number=i, **{k: v for k, v in s.items() if k != "set_number"})
            for i, s in enumerate(raw.get("sets", []), start=1)
        ]
        exercises.append(
            WorkoutExercise(
                name=raw["name"],
                normalized_name=normalize_exercise_name(raw["name"]),
                sets=sets,
            )
        )
    return exercises


async def log_workout(
    store: Store,
    phone_number: str,
    exercises: list[dict],
    date: datetime | None = None,
    duration: float | None = None,
    notes: str | None = None,
) -> dict:
    profile = await require_profile(store, phone_number)
    session = WorkoutSession(
        user_id=profile.id,
        phone_number=phone_number,
        date=date or utcnow(),
        exercises=build_exercises(exercises),
        duration=duration,
        notes=notes,
    )
    await store.insert_workout_session(session)
    logger.info(f"Logged workout {session.id} for {phone_number} ({len(session.exercises)} exercises)")

    new_prs = []
    for exercise in session.exercises:
        records = await check_and_update_records(store, session, exercise)
        if records:
            new_prs.append({"exercise_name": exercise.name, "records": records})
        await log_exercise_performance(store, session, exercise)

    return {
        "success": True,
        "workout_session_id": session.id,
        "total_exercises": len(session.exercises),
        "total_sets": sum(len(e.sets) for e in session.exercises),
        "new_prs": new_prs,
        "has_new_prs": bool(new_prs),
    }


async def get_workout_stats(store: Store, user_id: str, days: int = 30) -> dict:
    sessions = await store.list_workout_sessions(user_id, since=utcnow() - timedelta(days=days))
    exercises = [e for s in sessions for e in s.exercises]
    durations = [s.duration for s in sessions if s.duration]
    return {
        "period_days": days,
        "total_workouts": len(sessions),
        "total_exercises": len(exercises),
        "total_sets": sum(len(e.sets) for e in exercises),
        "total_volume": sum(st.reps * st.weight for e in exercises for st in e.sets),
        "average_duration": sum(durations) / len(durations) if durations else 0,
    }


async def get_workouts(
    store: Store, user_id: str, since: datetime | None = None, until: datetime | None = None
) -> list[WorkoutSession]:
    """Sessions whose date falls in [since, until], newest first."""
    return await store.list_workout_sessions(user_id, since=since, until=until)


async def _owned_session(store: Store, phone_number: str, session_id: str) -> WorkoutSession:
    profile = await require_profile(store, phone_number)
    session = await store.get_workout_session(session_id)
    if session is None or session.user_id != profile.id:
        raise WorkoutNotFoundError(session_id)
    return session


async def update_workout(
    store: Store,
    phone_number: str,
    session_id: str,
    exercises: list[dict] | None = None,
    duration: float | None = None,
    notes: str | None = None,
) -> WorkoutSession:
    """Patch a logged session and rebuild its history rows.

    Personal records already awarded are kept as they were.
    """
    session = await _owned_session(store, phone_number, session_id)
    updates = {}
    if exercises is not None:
        updates["exercises"] = build_exercises(exercises)
    if duration is not None:
        updates["duration"] = duration
    if notes is not None:
        updates["notes"] = notes
    updated = WorkoutSession.model_validate({**session.model_dump(), **updates})
    await store.update_workout_session(updated)

    if exercises is not None:
        await store.delete_exercise_history_for_session(session_id)
        for exercise in updated.exercises:
            await log_exercise_performance(store, updated, exercise)
    logger.info(f"Updated workout {session_id} for {phone_number}: {sorted(updates)}")
    return updated


async def delete_workout(store: Store, phone_number: str, session_id: str) -> None:
    """Remove a session and its history rows. Personal records are kept."""
    await _owned_session(store, phone_number, session_id)
    await store.delete_exercise_history_for_session(session_id)
    await store.delete_workout_session(session_id)
    logger.info(f"Deleted workout {session_id} for {phone_number}")
