"""Domain models shared by the store, the record engine and the router."""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


# --- Users ---

class UserProfile(BaseModel):
    id: str = Field(default_factory=new_id)
    phone_number: str
    age: int | None = None
    sex: Literal["male", "female", "other"] | None = None
    weight: float | None = None
    height: float | None = None
    goal: str | None = None
    experience: Literal["beginner", "intermediate", "advanced"] | None = None
    equipment: list[str] | None = None
    training_days_per_week: int | None = None
    onboarding_completed: bool = False
    last_image: "MediaRef | None" = None
    last_video: "MediaRef | None" = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


REQUIRED_PROFILE_FIELDS = (
    "age",
    "sex",
    "weight",
    "height",
    "goal",
    "experience",
    "equipment",
    "training_days_per_week",
)


class MediaRef(BaseModel):
    id: str
    url: str
    content_type: str


# --- Workouts ---

class WorkoutSet(BaseModel):
    set_number: int | None = None
    reps: int = Field(ge=1)
    weight: float = Field(ge=0)
    rpe: float | None = Field(default=None, ge=1, le=10)
    notes: str | None = None


class WorkoutExercise(BaseModel):
    name: str
    normalized_name: str
    sets: list[WorkoutSet] = Field(min_length=1)


class WorkoutSession(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    phone_number: str
    date: datetime = Field(default_factory=utcnow)
    exercises: list[WorkoutExercise] = Field(min_length=1)
    duration: float | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class RecordType(str, Enum):
    ONE_REP_MAX = "one_rep_max"
    MAX_REPS = "max_reps"
    MAX_VOLUME = "max_volume"
    BEST_SET = "best_set"


class PersonalRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    phone_number: str
    exercise_name: str
    normalized_name: str
    record_type: RecordType
    value: float
    reps: int | None = None
    weight: float | None = None
    workout_session_id: str
    previous_value: float | None = None
    improvement_percentage: float | None = None
    achieved_at: datetime = Field(default_factory=utcnow)


class NewRecord(BaseModel):
    """A record beaten by the session just logged, as returned to the caller."""

    record_type: RecordType
    value: float
    previous_value: float | None = None
    improvement: float | None = None
    reps: int | None = None
    weight: float | None = None


class BestSet(BaseModel):
    reps: int
    weight: float
    estimated_one_rep_max: float


class ExerciseHistory(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    phone_number: str
    exercise_name: str
    normalized_name: str
    workout_session_id: str
    date: datetime
    best_set: BestSet
    total_volume: float
    total_sets: int
    average_rpe: float | None = None
    created_at: datetime = Field(default_factory=utcnow)


class BodyScan(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    phone_number: str
    image: MediaRef
    analysis: "BodyScanAnalysis"
    created_at: datetime = Field(default_factory=utcnow)


# --- Plans ---

class PlannedExercise(BaseModel):
    name: str
    sets: int = Field(ge=1)
    reps: str
    rest: str
    rpe: str | None = None
    notes: str | None = None


class PlanDay(BaseModel):
    day_number: int
    focus: str
    exercises: list[PlannedExercise] = Field(min_length=1)


class PlanWeek(BaseModel):
    week_number: int
    days: list[PlanDay] = Field(min_length=1)


class TrainingPlan(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    phone_number: str
    start_date: datetime = Field(default_factory=utcnow)
    duration: int = Field(ge=1, description="Weeks")
    days_per_week: int = Field(ge=1, le=7)
    goal: str
    weeks: list[PlanWeek] = Field(min_length=1)
    rationale: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class Macros(BaseModel):
    calories: float
    protein: float
    carbs: float
    fats: float


class NutritionPlan(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    phone_number: str
    based_on_scan: str
    based_on_training_plan: str | None = None
    goal: str | None = None
    macros_training_days: Macros
    macros_rest_days: Macros
    meal_examples: list = []
    rationale: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class Prediction(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    phone_number: str
    based_on_scans: list[str]
    timeframe_weeks: int
    bodyfat_change: "Range"
    muscular_changes: str = ""
    strength_progress: str = ""
    assumptions: list[str] = []
    created_at: datetime = Field(default_factory=utcnow)


# --- Analysis results ---

class Range(BaseModel):
    min: float
    max: float


class BodyScanAnalysis(BaseModel):
    bodyfat_percentage: Range
    physique_type: str
    strengths: list[str] = []
    opportunities: list[str] = []


class ExerciseDetection(BaseModel):
    exercise: str


class TechniqueAnalysis(BaseModel):
    exercise: str
    strengths: list[str] = []
    corrections: list[str] = []
    regressions: list[str] = []
    progressions: list[str] = []
    risk_factors: list[str] = []


# --- Exercise-video confirmation ---

class ConfirmationState(str, Enum):
    NONE = "none"
    DETECTED = "detected"
    AWAITING_CORRECTION = "awaiting_correction"


class PendingExerciseConfirmation(BaseModel):
    phone_number: str
    detected_exercise: str
    video: MediaRef
    state: ConfirmationState = ConfirmationState.DETECTED
    created_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def waiting_for_correction(self) -> bool:
        return self.state == ConfirmationState.AWAITING_CORRECTION


UserProfile.model_rebuild()
BodyScan.model_rebuild()
Prediction.model_rebuild()
