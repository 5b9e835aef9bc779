"""HTTP client for the internal backend API and the store built on it."""

import base64
from datetime import datetime

import httpx

from src.config import settings
from src.models import (
    BodyScan,
    ExerciseHistory,
    MediaRef,
    NutritionPlan,
    PendingExerciseConfirmation,
    PersonalRecord,
    Prediction,
    TrainingPlan,
    UserProfile,
    WorkoutSession,
)
from src.store import Store


class BackendClient:
    """Authenticated JSON calls to the internal backend."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.backend_api_url
        self.token = token if token is not None else settings.backend_api_token
        self.transport = transport

    async def call(self, method: str, path: str, **kwargs) -> dict:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=60.0, transport=self.transport
        ) as client:
            response = await client.request(method, path, headers=headers, **kwargs)

        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()


def _since(value: datetime | None, until: datetime | None = None) -> dict:
    params = {"since": value.isoformat()} if value else {}
    if until:
        params["until"] = until.isoformat()
    return params


class ApiStore(Store):
    """Store backed by the internal backend.

    The backend enforces one pending confirmation per phone number; record
    writes are additionally serialized in-process via ``exercise_lock``.
    """

    def __init__(self, client: BackendClient | None = None):
        super().__init__()
        self.client = client or BackendClient()

    async def get_user_profile(self, phone_number):
        data = await self.client.call("GET", f"/users/{phone_number}/profile")
        profile = data.get("data")
        return UserProfile.model_validate(profile) if profile else None

    async def upsert_user_profile(self, phone_number, **fields):
        # Reject bad values before they reach the backend.
        checked = UserProfile.model_validate({"phone_number": phone_number, **fields})
        payload = checked.model_dump(mode="json", include=set(fields))
        data = await self.client.call("POST", f"/users/{phone_number}/profile", json=payload)
        return UserProfile.model_validate(data["data"])

    async def delete_user(self, phone_number):
        data = await self.client.call("DELETE", f"/users/{phone_number}")
        return bool(data.get("deleted", False))

    async def get_pending_confirmation(self, phone_number):
        data = await self.client.call("GET", f"/users/{phone_number}/pending_confirmation")
        pending = data.get("data")
        return PendingExerciseConfirmation.model_validate(pending) if pending else None

    async def upsert_pending_confirmation(self, pending):
        await self.client.call(
            "PUT",
            f"/users/{pending.phone_number}/pending_confirmation",
            json=pending.model_dump(mode="json"),
        )

    async def delete_pending_confirmation(self, phone_number):
        await self.client.call("DELETE", f"/users/{phone_number}/pending_confirmation")

    async def get_latest_record(self, user_id, exercise_key, record_type):
        data = await self.client.call(
            "GET",
            f"/records/{user_id}/latest",
            params={"exercise": exercise_key, "record_type": record_type.value},
        )
        record = data.get("data")
        return PersonalRecord.model_validate(record) if record else None

    async def insert_personal_record(self, record):
        await self.client.call("POST", "/records", json=record.model_dump(mode="json"))

    async def list_personal_records(self, user_id, exercise_key=None, record_type=None, since=None):
        params = _since(since)
        if exercise_key:
            params["exercise"] = exercise_key
        if record_type:
            params["record_type"] = record_type.value
        data = await self.client.call("GET", f"/records/{user_id}", params=params)
        return [PersonalRecord.model_validate(r) for r in data.get("data", [])]

    async def insert_exercise_history(self, row):
        await self.client.call("POST", "/exercise_history", json=row.model_dump(mode="json"))

    async def list_exercise_history(self, user_id, exercise_key=None, limit=None, since=None, until=None):
        params = _since(since, until)
        if exercise_key:
            params["exercise"] = exercise_key
        if limit:
            params["limit"] = limit
        data = await self.client.call("GET", f"/exercise_history/{user_id}", params=params)
        return [ExerciseHistory.model_validate(h) for h in data.get("data", [])]

    async def delete_exercise_history_for_session(self, session_id):
        await self.client.call("DELETE", "/exercise_history", params={"workout_session_id": session_id})

    async def insert_workout_session(self, session):
        await self.client.call("POST", "/workout_sessions", json=session.model_dump(mode="json"))

    async def get_workout_session(self, session_id):
        data = await self.client.call("GET", f"/workout_sessions/by_id/{session_id}")
        session = data.get("data")
        return WorkoutSession.model_validate(session) if session else None

    async def update_workout_session(self, session):
        await self.client.call(
            "PUT", f"/workout_sessions/by_id/{session.id}", json=session.model_dump(mode="json")
        )

    async def delete_workout_session(self, session_id):
        await self.client.call("DELETE", f"/workout_sessions/by_id/{session_id}")

    async def list_workout_sessions(self, user_id, since=None, until=None):
        data = await self.client.call(
            "GET", f"/workout_sessions/{user_id}", params=_since(since, until)
        )
        return [WorkoutSession.model_validate(s) for s in data.get("data", [])]

    async def insert_body_scan(self, scan):
        await self.client.call("POST", "/body_scans", json=scan.model_dump(mode="json"))

    async def list_body_scans(self, user_id):
        data = await self.client.call("GET", f"/body_scans/{user_id}")
        return [BodyScan.model_validate(s) for s in data.get("data", [])]

    async def insert_training_plan(self, plan):
        await self.client.call("POST", "/training_plans", json=plan.model_dump(mode="json"))

    async def list_training_plans(self, user_id):
        data = await self.client.call("GET", f"/training_plans/{user_id}")
        return [TrainingPlan.model_validate(p) for p in data.get("data", [])]

    async def insert_nutrition_plan(self, plan):
        await self.client.call("POST", "/nutrition_plans", json=plan.model_dump(mode="json"))

    async def list_nutrition_plans(self, user_id):
        data = await self.client.call("GET", f"/nutrition_plans/{user_id}")
        return [NutritionPlan.model_validate(p) for p in data.get("data", [])]

    async def insert_prediction(self, prediction):
        await self.client.call("POST", "/predictions", json=prediction.model_dump(mode="json"))

    async def list_predictions(self, user_id):
        data = await self.client.call("GET", f"/predictions/{user_id}")
        return [Prediction.model_validate(p) for p in data.get("data", [])]

    async def save_media(self, phone_number, data, content_type):
        resp = await self.client.call(
            "POST",
            "/media",
            json={
                "phone_number": phone_number,
                "content_type": content_type,
                "data": base64.b64encode(data).decode("ascii"),
            },
        )
        return MediaRef.model_validate(resp["data"])

    async def load_media(self, media_id):
        resp = await self.client.call("GET", f"/media/{media_id}")
        return base64.b64decode(resp["data"])

    async def append_messages(self, phone_number, messages):
        await self.client.call(
            "POST", f"/sessions/{phone_number}/messages", json={"messages": messages}
        )

    async def load_messages(self, phone_number):
        data = await self.client.call("GET", f"/sessions/{phone_number}/messages")
        return data.get("messages", [])

    async def replace_messages(self, phone_number, messages):
        await self.client.call(
            "PUT", f"/sessions/{phone_number}/messages", json={"messages": messages}
        )
