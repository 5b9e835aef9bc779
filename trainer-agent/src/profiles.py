"""User profile lookups and onboarding status."""

from src.errors import ProfileNotFoundError
from src.models import REQUIRED_PROFILE_FIELDS, MediaRef, UserProfile
from src.store import Store


async def get_or_create_profile(store: Store, phone_number: str) -> UserProfile:
    profile = await store.get_user_profile(phone_number)
    if profile is None:
        profile = await store.upsert_user_profile(phone_number)
    return profile


async def require_profile(store: Store, phone_number: str) -> UserProfile:
    profile = await store.get_user_profile(phone_number)
    if profile is None:
        raise ProfileNotFoundError(phone_number)
    return profile


async def update_last_image(store: Store, phone_number: str, image: MediaRef) -> UserProfile:
    return await store.upsert_user_profile(phone_number, last_image=image)


async def update_last_video(store: Store, phone_number: str, video: MediaRef) -> UserProfile:
    return await store.upsert_user_profile(phone_number, last_video=video)


def onboarding_status(profile: UserProfile | None) -> dict:
    if profile is None:
        return {"complete": False, "missing_fields": ["all"]}
    missing = [f for f in REQUIRED_PROFILE_FIELDS if not getattr(profile, f)]
    return {
        "complete": not missing and profile.onboarding_completed,
        "missing_fields": missing,
    }
