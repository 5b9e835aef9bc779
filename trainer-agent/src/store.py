"""Persistence interface and the in-process implementation."""

import asyncio
import itertools
import logging
import weakref
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime

from src.models import (
    BodyScan,
    ExerciseHistory,
    MediaRef,
    NutritionPlan,
    PendingExerciseConfirmation,
    PersonalRecord,
    Prediction,
    RecordType,
    TrainingPlan,
    UserProfile,
    WorkoutSession,
    new_id,
    utcnow,
)

logger = logging.getLogger(__name__)


def _in_range(value: datetime, since: datetime | None, until: datetime | None) -> bool:
    return (since is None or value >= since) and (until is None or value <= until)


class Store(ABC):
    """Everything the coaching core reads or writes.

    Implementations must keep at most one pending confirmation per phone
    number. Record evaluation for one (user, exercise) is serialized with
    ``exercise_lock``.
    """

    def __init__(self):
        # A lock lives only while some coroutine holds or waits on it.
        self._exercise_locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def exercise_lock(self, user_id: str, exercise_key: str) -> asyncio.Lock:
        key = (user_id, exercise_key)
        lock = self._exercise_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._exercise_locks[key] = lock
        return lock

    # Profiles
    @abstractmethod
    async def get_user_profile(self, phone_number: str) -> UserProfile | None: ...

    @abstractmethod
    async def upsert_user_profile(self, phone_number: str, **fields) -> UserProfile:
        """Create or patch a profile. Invalid fields raise ``ValidationError``."""

    @abstractmethod
    async def delete_user(self, phone_number: str) -> bool: ...

    # Pending confirmations
    @abstractmethod
    async def get_pending_confirmation(self, phone_number: str) -> PendingExerciseConfirmation | None: ...

    @abstractmethod
    async def upsert_pending_confirmation(self, pending: PendingExerciseConfirmation) -> None: ...

    @abstractmethod
    async def delete_pending_confirmation(self, phone_number: str) -> None: ...

    # Records
    @abstractmethod
    async def get_latest_record(
        self, user_id: str, exercise_key: str, record_type: RecordType
    ) -> PersonalRecord | None: ...

    @abstractmethod
    async def insert_personal_record(self, record: PersonalRecord) -> None: ...

    @abstractmethod
    async def list_personal_records(
        self,
        user_id: str,
        exercise_key: str | None = None,
        record_type: RecordType | None = None,
        since: datetime | None = None,
    ) -> list[PersonalRecord]:
        """Newest first."""

    # History and sessions
    @abstractmethod
    async def insert_exercise_history(self, row: ExerciseHistory) -> None: ...

    @abstractmethod
    async def list_exercise_history(
        self,
        user_id: str,
        exercise_key: str | None = None,
        limit: int | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ExerciseHistory]:
        """Newest first."""

    @abstractmethod
    async def delete_exercise_history_for_session(self, session_id: str) -> None: ...

    @abstractmethod
    async def insert_workout_session(self, session: WorkoutSession) -> None: ...

    @abstractmethod
    async def get_workout_session(self, session_id: str) -> WorkoutSession | None: ...

    @abstractmethod
    async def update_workout_session(self, session: WorkoutSession) -> None: ...

    @abstractmethod
    async def delete_workout_session(self, session_id: str) -> None: ...

    @abstractmethod
    async def list_workout_sessions(
        self, user_id: str, since: datetime | None = None, until: datetime | None = None
    ) -> list[WorkoutSession]:
        """Newest first."""

    # Body scans
    @abstractmethod
    async def insert_body_scan(self, scan: BodyScan) -> None: ...

    @abstractmethod
    async def list_body_scans(self, user_id: str) -> list[BodyScan]:
        """Newest first."""

    # Plans
    @abstractmethod
    async def insert_training_plan(self, plan: TrainingPlan) -> None: ...

    @abstractmethod
    async def list_training_plans(self, user_id: str) -> list[TrainingPlan]:
        """Newest first."""

    @abstractmethod
    async def insert_nutrition_plan(self, plan: NutritionPlan) -> None: ...

    @abstractmethod
    async def list_nutrition_plans(self, user_id: str) -> list[NutritionPlan]:
        """Newest first."""

    @abstractmethod
    async def insert_prediction(self, prediction: Prediction) -> None: ...

    @abstractmethod
    async def list_predictions(self, user_id: str) -> list[Prediction]:
        """Newest first."""

    # Media blobs
    @abstractmethod
    async def save_media(self, phone_number: str, data: bytes, content_type: str) -> MediaRef: ...

    @abstractmethod
    async def load_media(self, media_id: str) -> bytes: ...

    # Conversation thread
    @abstractmethod
    async def append_messages(self, phone_number: str, messages: list[dict]) -> None: ...

    @abstractmethod
    async def load_messages(self, phone_number: str) -> list[dict]: ...

    @abstractmethod
    async def replace_messages(self, phone_number: str, messages: list[dict]) -> None: ...


class MemoryStore(Store):
    """Dict-backed store for a single process (and for tests)."""

    USER_TABLES = (
        "records",
        "history",
        "sessions",
        "body_scans",
        "training_plans",
        "nutrition_plans",
        "predictions",
    )

    def __init__(self):
        super().__init__()
        self._seq = itertools.count()
        self.profiles: dict[str, UserProfile] = {}
        self.pending: dict[str, PendingExerciseConfirmation] = {}
        self.records: list[tuple[int, PersonalRecord]] = []
        self.history: list[tuple[int, ExerciseHistory]] = []
        self.sessions: list[tuple[int, WorkoutSession]] = []
        self.body_scans: list[tuple[int, BodyScan]] = []
        self.training_plans: list[tuple[int, TrainingPlan]] = []
        self.nutrition_plans: list[tuple[int, NutritionPlan]] = []
        self.predictions: list[tuple[int, Prediction]] = []
        self.media: dict[str, tuple[str, bytes]] = {}
        self.messages: dict[str, list[dict]] = defaultdict(list)

    def _newest_first(self, table: str, user_id: str, key) -> list:
        rows = [(seq, row) for seq, row in getattr(self, table) if row.user_id == user_id]
        rows.sort(key=lambda item: (key(item[1]), item[0]), reverse=True)
        return [row for _, row in rows]

    async def get_user_profile(self, phone_number):
        return self.profiles.get(phone_number)

    async def upsert_user_profile(self, phone_number, **fields):
        existing = self.profiles.get(phone_number)
        if existing is None:
            profile = UserProfile(phone_number=phone_number, **fields)
        else:
            profile = UserProfile.model_validate(
                {**existing.model_dump(), **fields, "updated_at": utcnow()}
            )
        self.profiles[phone_number] = profile
        return profile

    async def delete_user(self, phone_number):
        profile = self.profiles.pop(phone_number, None)
        self.pending.pop(phone_number, None)
        self.messages.pop(phone_number, None)
        self.media = {k: v for k, v in self.media.items() if v[0] != phone_number}
        if profile is None:
            return False
        for table in self.USER_TABLES:
            rows = getattr(self, table)
            setattr(self, table, [(seq, row) for seq, row in rows if row.user_id != profile.id])
        logger.info(f"Deleted all data for {phone_number}")
        return True

    async def get_pending_confirmation(self, phone_number):
        return self.pending.get(phone_number)

    async def upsert_pending_confirmation(self, pending):
        self.pending[pending.phone_number] = pending

    async def delete_pending_confirmation(self, phone_number):
        self.pending.pop(phone_number, None)

    async def get_latest_record(self, user_id, exercise_key, record_type):
        matching = [
            (r.achieved_at, seq, r)
            for seq, r in self.records
            if r.user_id == user_id
            and r.normalized_name == exercise_key
            and r.record_type == record_type
        ]
        if not matching:
            return None
        return max(matching, key=lambda item: item[:2])[2]

    async def insert_personal_record(self, record):
        self.records.append((next(self._seq), record))

    async def list_personal_records(self, user_id, exercise_key=None, record_type=None, since=None):
        rows = [
            (seq, r)
            for seq, r in self.records
            if r.user_id == user_id
            and (exercise_key is None or r.normalized_name == exercise_key)
            and (record_type is None or r.record_type == record_type)
            and (since is None or r.achieved_at >= since)
        ]
        rows.sort(key=lambda item: (item[1].achieved_at, item[0]), reverse=True)
        return [r for _, r in rows]

    async def insert_exercise_history(self, row):
        self.history.append((next(self._seq), row))

    async def list_exercise_history(self, user_id, exercise_key=None, limit=None, since=None, until=None):
        result = [
            h
            for h in self._newest_first("history", user_id, lambda h: h.date)
            if (exercise_key is None or h.normalized_name == exercise_key)
            and _in_range(h.date, since, until)
        ]
        return result[:limit] if limit else result

    async def delete_exercise_history_for_session(self, session_id):
        self.history = [(seq, h) for seq, h in self.history if h.workout_session_id != session_id]

    async def insert_workout_session(self, session):
        self.sessions.append((next(self._seq), session))

    async def get_workout_session(self, session_id):
        return next((s for _, s in self.sessions if s.id == session_id), None)

    async def update_workout_session(self, session):
        self.sessions = [
            (seq, session if s.id == session.id else s) for seq, s in self.sessions
        ]

    async def delete_workout_session(self, session_id):
        self.sessions = [(seq, s) for seq, s in self.sessions if s.id != session_id]

    async def list_workout_sessions(self, user_id, since=None, until=None):
        return [
            s
            for s in self._newest_first("sessions", user_id, lambda s: s.date)
            if _in_range(s.date, since, until)
        ]

    async def insert_body_scan(self, scan):
        self.body_scans.append((next(self._seq), scan))

    async def list_body_scans(self, user_id):
        return self._newest_first("body_scans", user_id, lambda s: s.created_at)

    async def insert_training_plan(self, plan):
        self.training_plans.append((next(self._seq), plan))

    async def list_training_plans(self, user_id):
        return self._newest_first("training_plans", user_id, lambda p: p.created_at)

    async def insert_nutrition_plan(self, plan):
        self.nutrition_plans.append((next(self._seq), plan))

    async def list_nutrition_plans(self, user_id):
        return self._newest_first("nutrition_plans", user_id, lambda p: p.created_at)

    async def insert_prediction(self, prediction):
        self.predictions.append((next(self._seq), prediction))

    async def list_predictions(self, user_id):
        return self._newest_first("predictions", user_id, lambda p: p.created_at)

    async def save_media(self, phone_number, data, content_type):
        media_id = new_id()
        self.media[media_id] = (phone_number, data)
        return MediaRef(id=media_id, url=f"memory://media/{media_id}", content_type=content_type)

    async def load_media(self, media_id):
        return self.media[media_id][1]

    async def append_messages(self, phone_number, messages):
        self.messages[phone_number].extend(messages)

    async def load_messages(self, phone_number):
        return list(self.messages.get(phone_number, []))

    async def replace_messages(self, phone_number, messages):
        self.messages[phone_number] = list(messages)
