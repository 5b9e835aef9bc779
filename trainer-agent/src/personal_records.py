"""Personal record detection.

Records are append-only: every beaten record inserts a new row, and the
current PR for (user, exercise, type) is the row with the latest
``achieved_at``.
"""

import logging
from datetime import timedelta

from src.calculator import best_set_index, estimate_one_rep_max, set_score, total_volume
from src.models import (
    NewRecord,
    PersonalRecord,
    RecordType,
    WorkoutExercise,
    WorkoutSession,
    utcnow,
)
from src.store import Store

logger = logging.getLogger(__name__)


def _improvement(new: float, previous: float | None) -> float | None:
    # No baseline (first record) or a zero baseline gives no percentage.
    if not previous:
        return None
    return (new - previous) / previous * 100


def max_reps_set(sets):
    """Set with the most reps; heaviest wins among equal reps, then earliest."""
    best = sets[0]
    for s in sets[1:]:
        if s.reps > best.reps or (s.reps == best.reps and s.weight > best.weight):
            best = s
    return best


def _candidates(exercise: WorkoutExercise) -> dict[RecordType, dict]:
    sets = exercise.sets
    one_rm = max(estimate_one_rep_max(s.weight, s.reps) for s in sets)
    reps_set = max_reps_set(sets)
    best = sets[best_set_index(sets)]
    return {
        RecordType.ONE_REP_MAX: {"value": one_rm, "reps": 1, "weight": one_rm},
        RecordType.MAX_REPS: {"value": reps_set.reps, "reps": reps_set.reps, "weight": reps_set.weight},
        RecordType.MAX_VOLUME: {"value": total_volume(sets)},
        RecordType.BEST_SET: {
            "value": set_score(best.weight, best.reps),
            "reps": best.reps,
            "weight": best.weight,
        },
    }


def beats(record_type: RecordType, candidate: dict, prior: PersonalRecord | None) -> bool:
    """Strict comparison against the stored record; equal values never count."""
    if prior is None:
        return True
    if record_type == RecordType.MAX_REPS:
        prior_reps = prior.reps or 0
        return candidate["reps"] > prior_reps or (
            candidate["reps"] == prior_reps and candidate["weight"] > (prior.weight or 0)
        )
    return candidate["value"] > prior.value


async def check_and_update_records(
    store: Store, session: WorkoutSession, exercise: WorkoutExercise
) -> list[NewRecord]:
    """Evaluate the four record types for one exercise of a logged session.

    Returns the records that were beaten (possibly none).
    """
    candidates = _candidates(exercise)
    new_records: list[NewRecord] = []

    async with store.exercise_lock(session.user_id, exercise.normalized_name):
        for record_type, candidate in candidates.items():
            prior = await store.get_latest_record(
                session.user_id, exercise.normalized_name, record_type
            )
            if not beats(record_type, candidate, prior):
                continue

            previous = None
            if prior is not None:
                previous = prior.reps if record_type == RecordType.MAX_REPS else prior.value
            improvement = _improvement(candidate["value"], previous)

            await store.insert_personal_record(
                PersonalRecord(
                    user_id=session.user_id,
                    phone_number=session.phone_number,
                    exercise_name=exercise.name,
                    normalized_name=exercise.normalized_name,
                    record_type=record_type,
                    value=candidate["value"],
                    reps=candidate.get("reps"),
                    weight=candidate.get("weight"),
                    workout_session_id=session.id,
                    previous_value=previous,
                    improvement_percentage=improvement,
                )
            )
            new_records.append(
                NewRecord(
                    record_type=record_type,
                    value=candidate["value"],
                    previous_value=previous,
                    improvement=improvement,
                    reps=candidate.get("reps"),
                    weight=candidate.get("weight"),
                )
            )

    if new_records:
        logger.info(
            f"New PRs for {session.phone_number} on {exercise.normalized_name}: "
            f"{[r.record_type.value for r in new_records]}"
        )
    return new_records


# --- Queries ---

async def current_records_by_exercise(store: Store, user_id: str) -> list[dict]:
    """Latest record of each type, grouped by exercise."""
    grouped: dict[str, dict] = {}
    for record in await store.list_personal_records(user_id):
        entry = grouped.setdefault(
            record.normalized_name,
            {
                "exercise_name": record.exercise_name,
                "normalized_name": record.normalized_name,
                "records": {},
            },
        )
        # Newest first, so the first row seen per type is the current one.
        entry["records"].setdefault(record.record_type.value, record)
    return list(grouped.values())


async def record_history(
    store: Store, user_id: str, exercise_key: str, record_type: RecordType
) -> list[PersonalRecord]:
    return await store.list_personal_records(user_id, exercise_key, record_type)


async def recent_records(store: Store, user_id: str, days: int = 30) -> list[PersonalRecord]:
    return await store.list_personal_records(user_id, since=utcnow() - timedelta(days=days))
