"""Profile service - member profiles, counters, and marketplace stats."""

from typing import Iterable, Optional
from src.models.badge import UserBadge
from src.models.deal import DealStatus
from src.models.profile import Profile, ProfileUpdate
from src.models.request import MarketRequest, RequestStatus
from src.models.review import Review
from src.services import supabase_client as db
from src.utils.errors import ConflictError, NotFoundError, ValidationFailedError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

PUBLIC_REVIEW_LIMIT = 10
RECENT_REQUEST_LIMIT = 5


async def get_profile(user_id: str) -> Profile:
    row = await db.get_profile(user_id)
    if row is None:
        raise NotFoundError(f"Profile not found: {user_id}")
    return Profile(**row)


async def get_public_profile(user_id: str) -> dict:
    """Profile with badges and the most recent reviews received."""
    profile = await get_profile(user_id)
    badges = [UserBadge(**row).to_display() for row in await db.list_badges(user_id)]
    reviews = [
        Review(**row).model_dump(mode="json")
        for row in await db.list_reviews_for_user(user_id, limit=PUBLIC_REVIEW_LIMIT)
    ]
    public = profile.model_dump(mode="json", exclude={"phone"})
    return {"profile": public, "badges": badges, "reviews": reviews}


async def _ensure_username_free(username: str, user_id: str) -> None:
    existing = await db.get_profile_by_username(username)
    if existing and existing.get("id") != user_id:
        raise ConflictError(f"Username '{username}' is taken")


async def update_profile(user_id: str, update: ProfileUpdate) -> Profile:
    """Apply only the fields the member sent."""
    await get_profile(user_id)
    updates = update.to_updates()
    if not updates:
        raise ValidationFailedError("Nothing to update")
    if "username" in updates:
        await _ensure_username_free(updates["username"], user_id)

    row = await db.update_profile(user_id, updates)
    logger.info("Profile updated", user_id=user_id, fields=sorted(updates))
    return Profile(**row)


async def setup_profile(user_id: str, username: str, full_name: Optional[str] = None) -> Profile:
    """First-run setup: pick a username (the row itself is created by the signup trigger)."""
    fields = {"username": username}
    if full_name:
        fields["full_name"] = full_name
    return await update_profile(user_id, ProfileUpdate(**fields))


async def increment_deal_counts(user_ids: Iterable[str], field: str) -> None:
    """Bump total_deals or completed_deals for each user."""
    if field not in ("total_deals", "completed_deals"):
        raise ValueError(f"Not a deal counter: {field}")

    for user_id in user_ids:
        row = await db.get_profile(user_id)
        if row is None:
            logger.warning("Profile missing while updating deal counts", user_id=user_id)
            continue
        await db.update_profile(user_id, {field: (row.get(field) or 0) + 1})


async def marketplace_stats(user_id: Optional[str] = None) -> dict:
    """Dashboard numbers; per-user figures only when a user is given."""
    stats = {
        "open_requests": await db.count_requests(status=RequestStatus.OPEN),
        "active_deals": await db.count_deals(statuses=(
            DealStatus.PENDING,
            DealStatus.PREREQUISITE_PENDING,
            DealStatus.ACTIVE,
        )),
        "completed_deals": await db.count_deals(statuses=(DealStatus.COMPLETED,)),
        "members": await db.count_profiles(),
    }

    if user_id:
        stats["my_requests"] = await db.count_requests(user_id=user_id)
        stats["my_deals"] = await db.count_deals(user_id=user_id)
        recent = await db.list_requests(user_id=user_id, limit=RECENT_REQUEST_LIMIT)
        stats["my_recent_requests"] = [MarketRequest(**row).model_dump(mode="json") for row in recent]

    return stats
