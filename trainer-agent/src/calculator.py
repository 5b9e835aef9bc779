"""One-rep-max estimation and set scoring."""


def estimate_one_rep_max(weight: float, reps: int) -> float:
    """Epley estimate; a single rep is returned exactly."""
    if reps == 1:
        return weight
    return round(weight * (1 + reps / 30), 1)


def set_score(weight: float, reps: int) -> float:
    """weight x reps, used to rank sets and summed into total volume."""
    return weight * reps


def best_set_index(sets) -> int:
    """Index of the set with the highest score; the earliest wins ties."""
    best = 0
    best_score = set_score(sets[0].weight, sets[0].reps)
    for i, s in enumerate(sets[1:], start=1):
        score = set_score(s.weight, s.reps)
        if score > best_score:
            best, best_score = i, score
    return best


def total_volume(sets) -> float:
    return sum(set_score(s.weight, s.reps) for s in sets)
