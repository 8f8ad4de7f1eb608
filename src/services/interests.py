"""Request interests - applying for a request and the owner's decision."""

from typing import Optional
from src.models.deal import Deal, DealStatus
from src.models.interest import InterestStatus, RequestInterest
from src.models.request import MarketRequest, RequestStatus
from src.services import supabase_client as db
from src.services.deals import approve_deal
from src.services.market_requests import get_request
from src.utils.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    StaleStateError,
)
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


async def express_interest(request_id: str, user_id: str, message: Optional[str] = None) -> RequestInterest:
    """Apply to take on an open request (once per user)."""
    request = await get_request(request_id)
    if request.user_id == user_id:
        raise PermissionDeniedError("You cannot apply to your own request")
    if request.status != RequestStatus.OPEN:
        raise InvalidTransitionError("This request is no longer available")
    if await db.get_user_interest(request_id, user_id):
        raise ConflictError("You have already expressed interest in this request")

    row = await db.create_interest({
        "request_id": request_id,
        "user_id": user_id,
        "message": (message or "").strip() or None,
        "status": InterestStatus.PENDING.value,
    })
    logger.info("Interest expressed", request_id=request_id, user_id=user_id)
    return RequestInterest(**row)


async def list_interests(request_id: str, owner_id: str, status: Optional[InterestStatus] = None) -> list[dict]:
    """Owner view of applicants, each with their profile."""
    request = await get_request(request_id)
    if request.user_id != owner_id:
        raise PermissionDeniedError("Only the request owner can see applicants")

    interests = [RequestInterest(**row) for row in await db.list_interests(request_id, status=status)]
    profiles = await db.get_profiles_by_ids(i.user_id for i in interests)
    return [
        {"interest": i.model_dump(mode="json"), "profile": profiles.get(i.user_id)}
        for i in interests
    ]


async def _owned_pending_interest(interest_id: str, owner_id: str) -> tuple[RequestInterest, MarketRequest]:
    row = await db.get_interest(interest_id)
    if row is None:
        raise NotFoundError(f"Interest not found: {interest_id}")
    interest = RequestInterest(**row)
    request = await get_request(interest.request_id)
    if request.user_id != owner_id:
        raise PermissionDeniedError("Only the request owner can decide on applicants")
    if interest.status != InterestStatus.PENDING:
        raise InvalidTransitionError(f"Interest is already {interest.status.value}")
    return interest, request


async def accept_interest(interest_id: str, owner_id: str) -> Deal:
    """
    Accept an applicant: form the deal and approve it.

    Other pending applicants are rejected. If approval fails after the deal
    row exists, the deal stays pending and the owner can approve it again.
    """
    interest, request = await _owned_pending_interest(interest_id, owner_id)
    if request.status != RequestStatus.OPEN:
        raise InvalidTransitionError("This request is no longer open")

    await db.update_interest(
        interest.id,
        {"status": InterestStatus.ACCEPTED},
        expected_status=InterestStatus.PENDING,
    )

    deal_row = await db.create_deal({
        "request_id": request.id,
        "requester_id": request.user_id,
        "accepter_id": interest.user_id,
        "status": DealStatus.PENDING.value,
    })
    logger.info(
        "Deal formed from interest",
        deal_id=deal_row.get("id"),
        interest_id=interest.id,
        request_id=request.id,
    )

    for other in await db.list_interests(request.id, status=InterestStatus.PENDING):
        try:
            await db.update_interest(
                other["id"],
                {"status": InterestStatus.REJECTED},
                expected_status=InterestStatus.PENDING,
            )
        except StaleStateError:
            # Applicant withdrew or was handled concurrently
            logger.debug("Skipped interest that changed", interest_id=other["id"])

    return await approve_deal(deal_row["id"], owner_id)


async def reject_interest(interest_id: str, owner_id: str) -> RequestInterest:
    interest, _ = await _owned_pending_interest(interest_id, owner_id)
    row = await db.update_interest(
        interest.id,
        {"status": InterestStatus.REJECTED},
        expected_status=InterestStatus.PENDING,
    )
    logger.info("Interest rejected", interest_id=interest.id, request_id=interest.request_id)
    return RequestInterest(**row)
