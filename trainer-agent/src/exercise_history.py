"""Per-session exercise performance snapshots and progress queries."""

from datetime import datetime

from src.calculator import best_set_index, estimate_one_rep_max, total_volume
from src.models import BestSet, ExerciseHistory, WorkoutExercise, WorkoutSession
from src.store import Store


def build_history_row(session: WorkoutSession, exercise: WorkoutExercise) -> ExerciseHistory:
    sets = exercise.sets
    best = sets[best_set_index(sets)]
    rpes = [s.rpe for s in sets if s.rpe is not None]
    return ExerciseHistory(
        user_id=session.user_id,
        phone_number=session.phone_number,
        exercise_name=exercise.name,
        normalized_name=exercise.normalized_name,
        workout_session_id=session.id,
        date=session.date,
        best_set=BestSet(
            reps=best.reps,
            weight=best.weight,
            estimated_one_rep_max=estimate_one_rep_max(best.weight, best.reps),
        ),
        total_volume=total_volume(sets),
        total_sets=len(sets),
        average_rpe=sum(rpes) / len(rpes) if rpes else None,
    )


async def log_exercise_performance(
    store: Store, session: WorkoutSession, exercise: WorkoutExercise
) -> ExerciseHistory:
    row = build_history_row(session, exercise)
    await store.insert_exercise_history(row)
    return row


def _pct_change(new: float, old: float) -> float | None:
    if not old:
        return None
    return (new - old) / old * 100


async def get_exercise_history(
    store: Store,
    user_id: str,
    exercise_key: str,
    limit: int = 50,
    since: datetime | None = None,
    until: datetime | None = None,
) -> list[ExerciseHistory]:
    return await store.list_exercise_history(
        user_id, exercise_key, limit=limit, since=since, until=until
    )


async def get_progress_summary(store: Store, user_id: str, exercise_key: str) -> dict | None:
    history = await store.list_exercise_history(user_id, exercise_key)
    if not history:
        return None

    latest, earliest = history[0], history[-1]
    volumes = [h.total_volume for h in history]
    return {
        "exercise_name": latest.exercise_name,
        "normalized_name": exercise_key,
        "total_sessions": len(history),
        "first_session": earliest.date,
        "last_session": latest.date,
        "current": {
            "one_rep_max": latest.best_set.estimated_one_rep_max,
            "volume": latest.total_volume,
            "best_set": latest.best_set.model_dump(),
        },
        "all_time": {
            "max_one_rep_max": max(h.best_set.estimated_one_rep_max for h in history),
            "max_volume": max(volumes),
        },
        "improvement": {
            "one_rep_max": _pct_change(
                latest.best_set.estimated_one_rep_max, earliest.best_set.estimated_one_rep_max
            ),
            "volume": _pct_change(latest.total_volume, earliest.total_volume),
        },
        "average_volume": sum(volumes) / len(volumes),
    }


async def get_all_exercises_progress(store: Store, user_id: str) -> list[dict]:
    groups: dict[str, list[ExerciseHistory]] = {}
    for row in await store.list_exercise_history(user_id):
        groups.setdefault(row.normalized_name, []).append(row)

    summaries = []
    for key, rows in groups.items():
        latest, earliest = rows[0], rows[-1]
        improvement = 0.0
        if len(rows) > 1:
            improvement = _pct_change(
                latest.best_set.estimated_one_rep_max, earliest.best_set.estimated_one_rep_max
            ) or 0.0
        summaries.append({
            "exercise_name": latest.exercise_name,
            "normalized_name": key,
            "total_sessions": len(rows),
            "last_session": latest.date,
            "current_one_rep_max": latest.best_set.estimated_one_rep_max,
            "improvement": improvement,
        })
    return sorted(summaries, key=lambda s: s["last_session"], reverse=True)


async def compare_performance(
    store: Store, user_id: str, exercise_key: str, session_id_1: str, session_id_2: str
) -> dict | None:
    rows = {h.workout_session_id: h for h in await store.list_exercise_history(user_id, exercise_key)}
    first, second = rows.get(session_id_1), rows.get(session_id_2)
    if first is None or second is None:
        return None

    one_rm_diff = second.best_set.estimated_one_rep_max - first.best_set.estimated_one_rep_max
    volume_diff = second.total_volume - first.total_volume
    return {
        "session_1": first,
        "session_2": second,
        "one_rep_max_difference": one_rm_diff,
        "one_rep_max_percent_change": _pct_change(
            second.best_set.estimated_one_rep_max, first.best_set.estimated_one_rep_max
        ),
        "volume_difference": volume_diff,
        "volume_percent_change": _pct_change(second.total_volume, first.total_volume),
    }
