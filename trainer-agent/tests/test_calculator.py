"""Tests for 1RM estimation and set scoring."""

import pytest

from src.calculator import best_set_index, estimate_one_rep_max, set_score, total_volume
from src.models import WorkoutSet


class TestEstimateOneRepMax:

    @pytest.mark.parametrize("weight", [0, 20, 57.5, 100, 212.5])
    def test_single_rep_is_exact(self, weight):
        assert estimate_one_rep_max(weight, 1) == weight

    def test_epley_rounded_to_one_decimal(self):
        assert estimate_one_rep_max(100, 5) == 116.7
        assert estimate_one_rep_max(60, 10) == 80.0
        assert estimate_one_rep_max(80, 8) == 101.3

    @pytest.mark.parametrize("weight", [5, 20, 62.5, 140])
    def test_strictly_increasing_in_reps(self, weight):
        values = [estimate_one_rep_max(weight, reps) for reps in range(1, 21)]
        assert all(b > a for a, b in zip(values, values[1:]))


class TestSetScoring:

    def test_set_score(self):
        assert set_score(100, 5) == 500

    def test_total_volume(self):
        sets = [WorkoutSet(reps=5, weight=100), WorkoutSet(reps=8, weight=80)]
        assert total_volume(sets) == 1140

    def test_best_set_earliest_wins_ties(self):
        sets = [
            WorkoutSet(reps=5, weight=80),
            WorkoutSet(reps=10, weight=40),
            WorkoutSet(reps=4, weight=100),
        ]
        assert best_set_index(sets) == 0

    def test_best_set_picks_highest_score(self):
        sets = [WorkoutSet(reps=5, weight=80), WorkoutSet(reps=6, weight=80)]
        assert best_set_index(sets) == 1
