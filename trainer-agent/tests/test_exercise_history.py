"""Tests for per-session exercise history and progress summaries."""

from datetime import timedelta

from conftest import PHONE, run

from src.exercise_history import (
    build_history_row,
    compare_performance,
    get_all_exercises_progress,
    get_exercise_history,
    get_progress_summary,
    log_exercise_performance,
)
from src.models import WorkoutExercise, WorkoutSession, WorkoutSet, utcnow
from src.tools import TOOL_HANDLERS
from src.tools._base import ToolContext


def _session(user, sets, key="squat", days_ago=0):
    exercise = WorkoutExercise(
        name="Sentadilla",
        normalized_name=key,
        sets=[WorkoutSet(**s) for s in sets],
    )
    session = WorkoutSession(
        user_id=user.id,
        phone_number=PHONE,
        date=utcnow() - timedelta(days=days_ago),
        exercises=[exercise],
    )
    return session, exercise


class TestBuildHistoryRow:

    def test_best_set_volume_and_count(self, user):
        session, exercise = _session(user, [
            {"reps": 5, "weight": 100},
            {"reps": 8, "weight": 80},
        ])
        row = build_history_row(session, exercise)
        assert row.best_set.reps == 8
        assert row.best_set.weight == 80
        assert row.best_set.estimated_one_rep_max == 101.3
        assert row.total_volume == 1140
        assert row.total_sets == 2
        assert row.workout_session_id == session.id

    def test_best_set_tie_keeps_first(self, user):
        session, exercise = _session(user, [
            {"reps": 5, "weight": 80},
            {"reps": 10, "weight": 40},
        ])
        assert build_history_row(session, exercise).best_set.reps == 5

    def test_average_rpe_skips_sets_without_rpe(self, user):
        session, exercise = _session(user, [
            {"reps": 5, "weight": 100, "rpe": 8},
            {"reps": 5, "weight": 100},
            {"reps": 5, "weight": 100, "rpe": 9},
        ])
        assert build_history_row(session, exercise).average_rpe == 8.5

    def test_average_rpe_none_when_unreported(self, user):
        session, exercise = _session(user, [{"reps": 5, "weight": 100}])
        assert build_history_row(session, exercise).average_rpe is None


class TestProgressQueries:

    def _log(self, store, user, weight, days_ago, key="squat"):
        session, exercise = _session(user, [{"reps": 5, "weight": weight}], key=key, days_ago=days_ago)
        run(log_exercise_performance(store, session, exercise))
        return session

    def test_history_newest_first_with_limit(self, store, user):
        for days_ago, weight in [(10, 100), (5, 105), (1, 110)]:
            self._log(store, user, weight, days_ago)
        history = run(get_exercise_history(store, user.id, "squat", limit=2))
        assert [h.best_set.weight for h in history] == [110, 105]

    def test_progress_summary(self, store, user):
        self._log(store, user, 100, days_ago=10)
        self._log(store, user, 120, days_ago=1)
        summary = run(get_progress_summary(store, user.id, "squat"))
        assert summary["total_sessions"] == 2
        assert summary["current"]["volume"] == 600
        assert summary["all_time"]["max_volume"] == 600
        assert round(summary["improvement"]["volume"], 2) == 20.0
        assert summary["average_volume"] == 550

    def test_progress_summary_none_without_history(self, store, user):
        assert run(get_progress_summary(store, user.id, "squat")) is None

    def test_all_exercises_sorted_by_last_session(self, store, user):
        self._log(store, user, 100, days_ago=5, key="squat")
        self._log(store, user, 60, days_ago=1, key="bench_press")
        overview = run(get_all_exercises_progress(store, user.id))
        assert [o["normalized_name"] for o in overview] == ["bench_press", "squat"]
        assert overview[0]["improvement"] == 0.0

    def test_compare_performance(self, store, user):
        first = self._log(store, user, 100, days_ago=5)
        second = self._log(store, user, 110, days_ago=1)
        result = run(compare_performance(store, user.id, "squat", first.id, second.id))
        assert result["volume_difference"] == 50
        assert round(result["volume_percent_change"], 2) == 10.0

    def test_compare_performance_missing_session(self, store, user):
        first = self._log(store, user, 100, days_ago=5)
        assert run(compare_performance(store, user.id, "squat", first.id, "nope")) is None

    def test_history_by_date_range(self, store, user):
        for days_ago, weight in [(20, 100), (10, 105), (1, 110)]:
            self._log(store, user, weight, days_ago)
        now = utcnow()
        history = run(get_exercise_history(
            store, user.id, "squat", since=now - timedelta(days=15), until=now - timedelta(days=5)
        ))
        assert [h.best_set.weight for h in history] == [105]


class TestProgressTools:

    def _log(self, store, user, weight, days_ago, key="squat"):
        session, exercise = _session(user, [{"reps": 5, "weight": weight}], key=key, days_ago=days_ago)
        run(log_exercise_performance(store, session, exercise))
        return session

    def _call(self, store, name, tool_input):
        return run(TOOL_HANDLERS[name](name, tool_input, ToolContext(phone_number=PHONE, store=store)))

    def test_progress_overview(self, store, user):
        self._log(store, user, 100, days_ago=5, key="squat")
        self._log(store, user, 60, days_ago=1, key="bench_press")
        result = self._call(store, "get_progress_overview", {})
        assert result["total_exercises"] == 2
        assert [e["normalized_name"] for e in result["exercises"]] == ["bench_press", "squat"]

    def test_compare_two_sessions(self, store, user):
        first = self._log(store, user, 100, days_ago=5)
        second = self._log(store, user, 110, days_ago=1)
        result = self._call(store, "get_exercise_history", {
            "exercise_name": "sentadilla",
            "compare_session_ids": [first.id, second.id],
        })
        assert result["volume_difference"] == 50
        assert result["session_1"]["workout_session_id"] == first.id

    def test_compare_with_unknown_session(self, store, user):
        first = self._log(store, user, 100, days_ago=5)
        result = self._call(store, "get_exercise_history", {
            "exercise_name": "squat",
            "compare_session_ids": [first.id, "nope"],
        })
        assert result["success"] is False

    def test_history_tool_date_range(self, store, user):
        self._log(store, user, 100, days_ago=20)
        self._log(store, user, 110, days_ago=1)
        start = (utcnow() - timedelta(days=7)).date().isoformat()
        result = self._call(store, "get_exercise_history", {"exercise_name": "squat", "start_date": start})
        assert [h["best_set"]["weight"] for h in result["history"]] == [110]
        assert result["progress_summary"]["total_sessions"] == 2
