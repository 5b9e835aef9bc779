"""Exercise name normalization (English/Spanish aliases -> canonical key)."""

import re
import unicodedata

EXERCISE_ALIASES = {
    "bench_press": [
        "bench press", "press de banca", "press plano", "press banca", "pecho plano",
    ],
    "incline_bench_press": [
        "incline bench press", "press inclinado", "press de banca inclinado", "pecho inclinado",
    ],
    "decline_bench_press": [
        "decline bench press", "press declinado", "press de banca declinado",
    ],
    "squat": ["squat", "sentadilla", "sentadillas", "back squat", "sentadilla trasera"],
    "front_squat": ["front squat", "sentadilla frontal"],
    "deadlift": ["deadlift", "deadlifts", "peso muerto", "conventional deadlift"],
    "romanian_deadlift": ["romanian deadlift", "rdl", "peso muerto rumano"],
    "overhead_press": [
        "overhead press", "military press", "shoulder press",
        "press militar", "press de hombro", "press de hombros",
    ],
    "pull_up": ["pull up", "pull-up", "pullup", "dominada", "dominadas"],
    "chin_up": ["chin up", "chin-up", "chinup", "dominada supina"],
    "barbell_row": ["barbell row", "bent over row", "remo con barra", "remo"],
    "dumbbell_row": ["dumbbell row", "one arm row", "remo con mancuerna", "remo mancuerna"],
    "lat_pulldown": ["lat pulldown", "pulldown", "jalon", "polea al pecho"],
    "bicep_curl": ["bicep curl", "curl", "curl de biceps", "curl biceps"],
    "hammer_curl": ["hammer curl", "curl martillo"],
    "tricep_extension": ["tricep extension", "extension de triceps"],
    "tricep_pushdown": [
        "tricep pushdown", "pushdown", "pushdown de triceps", "empuje de triceps",
    ],
    "dips": ["dips", "fondos", "fondos en paralelas"],
    "leg_press": ["leg press", "prensa", "prensa de pierna", "prensa de piernas"],
    "leg_extension": ["leg extension", "extension de pierna", "extension cuadriceps"],
    "leg_curl": ["leg curl", "curl de pierna", "curl femoral", "flexion de pierna"],
    "calf_raise": ["calf raise", "elevacion de gemelos", "elevacion de pantorrilla"],
    "lateral_raise": [
        "lateral raise", "shoulder lateral raise", "elevacion lateral", "elevaciones laterales",
    ],
    "face_pull": ["face pull", "face pulls", "jalones faciales", "tirones faciales"],
    "cable_fly": ["cable fly", "aperturas con cable", "aperturas"],
    "dumbbell_fly": ["dumbbell fly", "aperturas con mancuernas", "cruces con mancuernas"],
    "hip_thrust": ["hip thrust", "empuje de cadera", "elevacion de cadera"],
    "lunge": ["lunge", "zancada", "zancadas", "desplante", "estocada"],
    "bulgarian_split_squat": ["bulgarian split squat", "sentadilla bulgara"],
    "plank": ["plank", "plancha", "tabla"],
    "ab_crunch": ["ab crunch", "crunch", "abdominales"],
    "russian_twist": ["russian twist", "giro ruso"],
    "hanging_leg_raise": [
        "hanging leg raise", "elevacion de piernas colgado", "elevacion de piernas",
    ],
}

# Aliases are stored already cleaned (lowercase, no accents).
_ALIAS_LOOKUP = {
    alias: key for key, aliases in EXERCISE_ALIASES.items() for alias in aliases
}


def _clean(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return re.sub(r"\s+", " ", stripped).strip()


def normalize_exercise_name(name: str) -> str:
    """Map a free-text exercise name to its canonical key.

    Unknown names fall back to a slug of the cleaned input so they still
    group consistently.
    """
    cleaned = _clean(name)
    key = _ALIAS_LOOKUP.get(cleaned)
    if key:
        return key
    return re.sub(r"[^a-z0-9_]", "", cleaned.replace(" ", "_"))


def get_display_name(key: str) -> str:
    """Human readable name for a canonical key (title case per word)."""
    return " ".join(word[:1].upper() + word[1:] for word in key.split("_") if word)
