"""Tests for workout logging end to end against the in-memory store."""

from datetime import timedelta

import pytest
from conftest import PHONE, run
from pydantic import ValidationError

from src.errors import ProfileNotFoundError, WorkoutNotFoundError
from src.models import RecordType, utcnow
from src.tools import TOOL_HANDLERS
from src.tools._base import ToolContext
from src.workouts import (
    build_exercises,
    delete_workout,
    get_workout_stats,
    get_workouts,
    log_workout,
    update_workout,
)

BENCH = [{"name": "bench press", "sets": [{"reps": 5, "weight": 100}]}]


class TestBuildExercises:

    def test_normalizes_and_numbers_sets(self):
        exercises = build_exercises([
            {"name": "Press de Banca", "sets": [{"reps": 5, "weight": 100}, {"reps": 5, "weight": 100}]},
        ])
        assert exercises[0].normalized_name == "bench_press"
        assert [s.set_number for s in exercises[0].sets] == [1, 2]

    def test_empty_sets_rejected(self):
        with pytest.raises(ValidationError):
            build_exercises([{"name": "squat", "sets": []}])

    def test_zero_reps_rejected(self):
        with pytest.raises(ValidationError):
            build_exercises([{"name": "squat", "sets": [{"reps": 0, "weight": 100}]}])

    def test_rpe_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            build_exercises([{"name": "squat", "sets": [{"reps": 5, "weight": 100, "rpe": 11}]}])


class TestLogWorkout:

    def test_first_log_reports_all_prs(self, store, user):
        result = run(log_workout(store, PHONE, BENCH))
        assert result["success"] is True
        assert result["has_new_prs"] is True
        assert result["total_exercises"] == 1
        assert result["total_sets"] == 1
        records = result["new_prs"][0]["records"]
        assert {r.record_type for r in records} == set(RecordType)
        assert len(run(store.list_workout_sessions(user.id))) == 1
        assert len(run(store.list_exercise_history(user.id))) == 1

    def test_repeat_log_has_no_prs(self, store, user):
        run(log_workout(store, PHONE, BENCH))
        result = run(log_workout(store, PHONE, BENCH))
        assert result["success"] is True
        assert result["new_prs"] == []
        assert result["has_new_prs"] is False
        assert len(run(store.list_exercise_history(user.id))) == 2

    def test_missing_profile(self, store):
        with pytest.raises(ProfileNotFoundError):
            run(log_workout(store, PHONE, BENCH))

    def test_empty_exercise_list_rejected(self, store, user):
        with pytest.raises(ValidationError):
            run(log_workout(store, PHONE, []))


class TestWorkoutStats:

    def test_totals(self, store, user):
        run(log_workout(store, PHONE, BENCH, duration=40))
        run(log_workout(store, PHONE, [
            {"name": "squat", "sets": [{"reps": 5, "weight": 120}, {"reps": 5, "weight": 120}]},
            {"name": "deadlift", "sets": [{"reps": 3, "weight": 160}]},
        ], duration=60))
        stats = run(get_workout_stats(store, user.id, days=7))
        assert stats["total_workouts"] == 2
        assert stats["total_exercises"] == 3
        assert stats["total_sets"] == 4
        assert stats["total_volume"] == 500 + 1200 + 480
        assert stats["average_duration"] == 50


class TestEditWorkout:

    def _logged(self, store, exercises=BENCH, **kwargs):
        return run(log_workout(store, PHONE, exercises, **kwargs))["workout_session_id"]

    def test_update_notes_keeps_history(self, store, user):
        session_id = self._logged(store)
        updated = run(update_workout(store, PHONE, session_id, notes="me sentí fuerte", duration=45))
        assert updated.notes == "me sentí fuerte"
        assert updated.duration == 45
        assert run(store.get_workout_session(session_id)).notes == "me sentí fuerte"
        assert len(run(store.list_exercise_history(user.id))) == 1

    def test_update_exercises_rebuilds_history(self, store, user):
        session_id = self._logged(store)
        run(update_workout(store, PHONE, session_id, exercises=[
            {"name": "sentadilla", "sets": [{"reps": 5, "weight": 140}]},
            {"name": "peso muerto", "sets": [{"reps": 3, "weight": 180}]},
        ]))
        history = run(store.list_exercise_history(user.id))
        assert sorted(h.normalized_name for h in history) == ["deadlift", "squat"]
        assert all(h.workout_session_id == session_id for h in history)
        session = run(store.get_workout_session(session_id))
        assert [e.normalized_name for e in session.exercises] == ["squat", "deadlift"]

    def test_update_keeps_awarded_records(self, store, user):
        session_id = self._logged(store)
        run(update_workout(store, PHONE, session_id, exercises=[
            {"name": "bench press", "sets": [{"reps": 5, "weight": 60}]},
        ]))
        records = run(store.list_personal_records(user.id, "bench_press", RecordType.ONE_REP_MAX))
        assert [r.value for r in records] == [116.7]

    def test_update_rejects_invalid_sets(self, store, user):
        session_id = self._logged(store)
        with pytest.raises(ValidationError):
            run(update_workout(store, PHONE, session_id, exercises=[{"name": "squat", "sets": []}]))
        assert run(store.get_workout_session(session_id)).exercises[0].normalized_name == "bench_press"

    def test_delete_removes_session_and_history(self, store, user):
        session_id = self._logged(store)
        run(delete_workout(store, PHONE, session_id))
        assert run(store.get_workout_session(session_id)) is None
        assert run(store.list_exercise_history(user.id)) == []
        assert len(run(store.list_personal_records(user.id))) == 4

    def test_unknown_session(self, store, user):
        with pytest.raises(WorkoutNotFoundError):
            run(delete_workout(store, PHONE, "nope"))

    def test_other_users_session_is_not_found(self, store, user):
        session_id = self._logged(store)
        run(store.upsert_user_profile("+5215500000000"))
        with pytest.raises(WorkoutNotFoundError):
            run(update_workout(store, "+5215500000000", session_id, notes="mío"))
        assert run(store.get_workout_session(session_id)).notes is None

    def test_get_workouts_by_range(self, store, user):
        now = utcnow()
        for days_ago in (30, 3):
            self._logged(store, date=now - timedelta(days=days_ago))
        sessions = run(get_workouts(store, user.id, since=now - timedelta(days=7)))
        assert [s.date for s in sessions] == [now - timedelta(days=3)]


class TestWorkoutTools:

    def _call(self, store, name, tool_input):
        return run(TOOL_HANDLERS[name](name, tool_input, ToolContext(phone_number=PHONE, store=store)))

    def test_list_edit_and_delete_through_tools(self, store, user):
        self._call(store, "log_workout", {"exercises": BENCH})
        listed = self._call(store, "get_workouts", {})
        assert listed["total_workouts"] == 1
        session_id = listed["workouts"][0]["id"]

        edited = self._call(store, "update_workout", {"workout_session_id": session_id, "notes": "fácil"})
        assert edited["workout"]["notes"] == "fácil"

        deleted = self._call(store, "delete_workout", {"workout_session_id": session_id})
        assert deleted == {"success": True, "workout_session_id": session_id}
        assert self._call(store, "get_workouts", {})["total_workouts"] == 0

    def test_get_workouts_date_range_is_inclusive_by_day(self, store, user):
        today = utcnow()
        self._call(store, "log_workout", {"exercises": BENCH, "date": today.timestamp() * 1000})
        day = today.date().isoformat()
        assert self._call(store, "get_workouts", {"start_date": day, "end_date": day})["total_workouts"] == 1
        before = (today - timedelta(days=1)).date().isoformat()
        assert self._call(store, "get_workouts", {"end_date": before})["total_workouts"] == 0
