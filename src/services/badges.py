"""Badge awards."""

from collections import Counter
from src.models.badge import BadgeType, UserBadge
from src.models.deal import Deal, DealStatus
from src.services import supabase_client as db
from src.utils.errors import ConflictError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

TRUSTED_MIN_DEALS = 5
PREREQUISITE_READY_MIN_DEALS = 3
SKILL_MASTER_MIN_REVIEWS = 3
HIGH_RATING = 4


async def list_badges(user_id: str) -> list[UserBadge]:
    return [UserBadge(**row) for row in await db.list_badges(user_id)]


async def _earned_badges(user_id: str) -> set[BadgeType]:
    """Badges the user currently qualifies for (the automatic ones only)."""
    earned = set()

    profile = await db.get_profile(user_id)
    if profile:
        total = profile.get("total_deals") or 0
        completed = profile.get("completed_deals") or 0
        if total >= TRUSTED_MIN_DEALS and completed == total:
            earned.add(BadgeType.TRUSTED)

    deals = [Deal(**row) for row in await db.list_deals_for_user(user_id, statuses=(DealStatus.COMPLETED,))]
    requests = {}
    for deal in deals:
        if deal.request_id not in requests:
            requests[deal.request_id] = await db.get_request(deal.request_id) or {}

    prerequisite_deals = [
        d for d in deals
        if d.accepter_id == user_id and requests[d.request_id].get("has_prerequisite")
    ]
    if len(prerequisite_deals) >= PREREQUISITE_READY_MIN_DEALS:
        earned.add(BadgeType.PREREQUISITE_READY)

    deal_category = {d.id: requests[d.request_id].get("category") for d in deals}
    high_ratings = Counter(
        deal_category.get(r["deal_id"])
        for r in await db.list_reviews_for_user(user_id)
        if r.get("rating", 0) >= HIGH_RATING and deal_category.get(r["deal_id"])
    )
    if any(count >= SKILL_MASTER_MIN_REVIEWS for count in high_ratings.values()):
        earned.add(BadgeType.SKILL_MASTER)

    return earned


async def evaluate_badges(user_id: str) -> list[BadgeType]:
    """Award any newly earned badges; returns the ones added. Badges are never revoked."""
    held = {badge.badge_type for badge in await list_badges(user_id)}
    awarded = []
    for badge_type in sorted(await _earned_badges(user_id) - held, key=lambda b: b.value):
        try:
            await db.create_badge(user_id, badge_type)
        except ConflictError:
            continue
        awarded.append(badge_type)
        logger.info("Badge awarded", user_id=user_id, badge_type=badge_type.value)
    return awarded
