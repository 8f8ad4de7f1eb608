"""Reviews and reputation."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable
from src.models.deal import Deal, DealStatus
from src.models.request import RequestStatus
from src.models.review import Review, ReviewCreate
from src.services import deal_lifecycle
from src.services import supabase_client as db
from src.services.badges import evaluate_badges
from src.services.profiles import increment_deal_counts
from src.utils.errors import ConflictError, NotFoundError, StaleStateError
from src.utils.logging import get_structured_logger, sanitize_message_text

logger = get_structured_logger(__name__)

# Mean star rating (1-5) is scaled onto a 0-100 reputation score
REPUTATION_SCALE = 20


def calculate_reputation(ratings: Iterable[int]) -> int:
    """round(mean * 20), halves rounded up; 0 with no ratings."""
    ratings = list(ratings)
    if not ratings:
        return 0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return int((mean * REPUTATION_SCALE).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def refresh_reputation(user_id: str) -> int:
    """Recompute a user's reputation from every review they have received."""
    reviews = await db.list_reviews_for_user(user_id)
    score = calculate_reputation(r["rating"] for r in reviews)
    await db.update_profile(user_id, {"reputation_score": score})
    return score


async def submit_review(deal_id: str, reviewer_id: str, data: ReviewCreate) -> dict:
    """
    Rate the other party of a deal.

    When the second review of a non-cancelled deal lands, the deal and its
    request are completed and both parties' counters and badges updated.
    """
    row = await db.get_deal(deal_id)
    if row is None:
        raise NotFoundError(f"Deal not found: {deal_id}")
    deal = Deal(**row)
    deal_lifecycle.ensure_participant(deal, reviewer_id)
    deal_lifecycle.ensure_ready_for_rating(deal)

    existing = await db.list_reviews_for_deals([deal.id])
    if any(r.get("reviewer_id") == reviewer_id for r in existing):
        raise ConflictError("You have already rated this deal")

    reviewee_id = deal.other_party_id(reviewer_id)
    review_row = await db.create_review({
        "deal_id": deal.id,
        "reviewer_id": reviewer_id,
        "reviewee_id": reviewee_id,
        "rating": data.rating,
        "comment": (data.comment or "").strip() or None,
    })
    review = Review(**review_row)
    score = await refresh_reputation(reviewee_id)
    logger.info(
        "Review submitted",
        deal_id=deal.id,
        reviewer_id=reviewer_id,
        rating=data.rating,
        comment=sanitize_message_text(data.comment or ""),
        reviewee_reputation=score,
    )

    # Re-read after our insert: the other party may have rated concurrently
    current = await db.list_reviews_for_deals([deal.id])
    reviewers = {r.get("reviewer_id") for r in current} | {reviewer_id}
    both_rated = {deal.requester_id, deal.accepter_id} <= reviewers
    completed = False

    if both_rated and deal.status != DealStatus.CANCELLED:
        completed = await _complete_deal(deal)

    return {"review": review.model_dump(mode="json"), "deal_completed": completed}


async def _complete_deal(deal: Deal) -> bool:
    updates = deal_lifecycle.completion_updates(deal, db.utc_now_iso())
    try:
        await db.update_deal(deal.id, updates, expected_status=deal.status)
    except StaleStateError:
        # The other party's review completed it first
        logger.info("Deal already completed", deal_id=deal.id)
        return False

    parties = (deal.requester_id, deal.accepter_id)
    for user_id in parties:
        await refresh_reputation(user_id)
    await increment_deal_counts(parties, "completed_deals")
    await db.update_request(deal.request_id, {"status": RequestStatus.COMPLETED})

    for user_id in parties:
        await evaluate_badges(user_id)

    logger.info("Deal completed", deal_id=deal.id, request_id=deal.request_id)
    return True


async def list_reviews_for_user(user_id: str) -> list[Review]:
    return [Review(**row) for row in await db.list_reviews_for_user(user_id)]
