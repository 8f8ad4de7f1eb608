"""Deal service - applies lifecycle rules against the database."""

from typing import Optional
from src.models.deal import Deal, DealStatus, OPEN_DEAL_STATUSES
from src.models.dispute import DisputeOutcome
from src.models.request import MarketRequest, RequestStatus
from src.services import deal_lifecycle
from src.services import supabase_client as db
from src.services.auth import require_role
from src.services.messaging import open_conversation
from src.services.profiles import increment_deal_counts
from src.utils.errors import (
    InvalidTransitionError,
    MarketplaceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from src.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)

MEDIATOR_ROLE = "mediator"


async def _load(deal_id: str) -> Deal:
    row = await db.get_deal(deal_id)
    if row is None:
        raise NotFoundError(f"Deal not found: {deal_id}")
    return Deal(**row)


async def _load_request(request_id: str) -> MarketRequest:
    row = await db.get_request(request_id)
    if row is None:
        raise NotFoundError(f"Request not found: {request_id}")
    return MarketRequest(**row)


async def _apply(deal: Deal, updates: dict, action: str, user_id: str) -> Deal:
    """Write updates only if the deal still has the status we validated against."""
    row = await db.update_deal(deal.id, updates, expected_status=deal.status)
    updated = Deal(**row)
    logger.info(
        "Deal updated",
        deal_id=deal.id,
        action=action,
        user_id=user_id,
        from_status=deal.status.value,
        to_status=updated.status.value,
    )
    return updated


async def get_deal(deal_id: str, user_id: str) -> Deal:
    deal = await _load(deal_id)
    deal_lifecycle.ensure_participant(deal, user_id)
    return deal


async def approve_deal(deal_id: str, owner_id: str) -> Deal:
    """
    Move a pending deal to prerequisite_pending or active.

    Also opens a conversation between the parties, marks the request
    in_progress and counts the deal on both profiles.
    """
    deal = await _load(deal_id)
    request = await _load_request(deal.request_id)
    if request.user_id != owner_id:
        raise PermissionDeniedError("Only the request owner can approve a deal")
    if request.status != RequestStatus.OPEN:
        raise InvalidTransitionError(f"Request is {request.status.value}, not open")

    updates = deal_lifecycle.approval_updates(deal, owner_id, request.has_prerequisite)

    with log_timing("approve_deal", logger=logger, deal_id=deal_id):
        # Claim the request first so a lost race leaves the deal pending
        await db.update_request(
            request.id,
            {"status": RequestStatus.IN_PROGRESS},
            expected_status=RequestStatus.OPEN,
        )
        try:
            deal = await _apply(deal, updates, "approve", owner_id)
        except MarketplaceError:
            await db.update_request(
                request.id,
                {"status": RequestStatus.OPEN},
                expected_status=RequestStatus.IN_PROGRESS,
            )
            logger.warning("Deal approval failed; request reopened", deal_id=deal_id, request_id=request.id)
            raise
        await open_conversation(deal.requester_id, deal.accepter_id, request.id)
        await increment_deal_counts((deal.requester_id, deal.accepter_id), "total_deals")

    return deal


async def reject_deal(deal_id: str, owner_id: str) -> Deal:
    deal = await _load(deal_id)
    updates = deal_lifecycle.rejection_updates(deal, owner_id)
    return await _apply(deal, updates, "reject", owner_id)


async def complete_prerequisite(deal_id: str, user_id: str) -> Deal:
    deal = await _load(deal_id)
    updates = deal_lifecycle.prerequisite_completion_updates(deal, user_id)
    return await _apply(deal, updates, "complete_prerequisite", user_id)


async def mark_task_complete(deal_id: str, user_id: str) -> Deal:
    deal = await _load(deal_id)
    updates = deal_lifecycle.task_completion_updates(deal, user_id)
    return await _apply(deal, updates, "complete_task", user_id)


async def verify_completion(deal_id: str, user_id: str) -> tuple[Deal, bool]:
    """Record the caller's verification; second value says whether rating is open."""
    deal = await _load(deal_id)
    updates = deal_lifecycle.verification_updates(deal, user_id)
    deal = await _apply(deal, updates, "verify", user_id)
    return deal, deal.ready_for_rating


async def request_cancellation(deal_id: str, user_id: str) -> Deal:
    """
    Ask to cancel, or agree to the other party's request.

    On agreement the deal is cancelled and the request goes back on the
    marketplace; both parties can still rate each other.
    """
    deal = await _load(deal_id)
    updates = deal_lifecycle.cancellation_updates(deal, user_id)
    deal = await _apply(deal, updates, "request_cancellation", user_id)

    if deal.status == DealStatus.CANCELLED:
        await db.update_request(deal.request_id, {"status": RequestStatus.OPEN})
    return deal


async def withdraw_cancellation(deal_id: str, user_id: str) -> Deal:
    deal = await _load(deal_id)
    updates = deal_lifecycle.withdrawal_updates(deal, user_id)
    return await _apply(deal, updates, "withdraw_cancellation", user_id)


async def open_dispute(deal_id: str, user_id: str, reason: str) -> Deal:
    """Escalate a deal to a mediator."""
    reason = (reason or "").strip()
    if len(reason) < 10:
        raise ValidationFailedError("Please describe the problem", errors={"reason": "At least 10 characters"})

    deal = await _load(deal_id)
    updates = deal_lifecycle.dispute_updates(deal, user_id)
    previous_status = deal.status
    deal = await _apply(deal, updates, "dispute", user_id)

    try:
        await db.create_dispute({
            "deal_id": deal.id,
            "reported_by": user_id,
            "reported_against": deal.other_party_id(user_id),
            "reason": reason,
            "status": "open",
        })
    except MarketplaceError:
        # A disputed deal without a dispute row could never be resolved
        await db.update_deal(deal.id, {"status": previous_status}, expected_status=DealStatus.DISPUTED)
        logger.warning("Dispute not recorded; deal restored", deal_id=deal.id, status=previous_status.value)
        raise
    await db.update_request(deal.request_id, {"status": RequestStatus.DISPUTED})
    return deal


async def resolve_dispute(deal_id: str, mediator_id: str, resolution: str, outcome: DisputeOutcome) -> Deal:
    """Mediator settles a dispute by resuming or cancelling the deal."""
    try:
        outcome = DisputeOutcome(outcome)
    except ValueError:
        raise ValidationFailedError("Outcome must be 'resume' or 'cancel'")
    await require_role(mediator_id, MEDIATOR_ROLE)

    deal = await _load(deal_id)
    if deal.is_participant(mediator_id):
        raise PermissionDeniedError("Mediators cannot settle their own deals")
    dispute = await db.get_open_dispute(deal_id)
    if dispute is None:
        raise NotFoundError(f"No open dispute for deal {deal_id}")

    request = await _load_request(deal.request_id)
    updates = deal_lifecycle.resolution_updates(deal, outcome, request.has_prerequisite)
    if updates["status"] == DealStatus.CANCELLED:
        request_status = RequestStatus.OPEN
    else:
        request_status = RequestStatus.IN_PROGRESS

    deal = await _apply(deal, updates, f"resolve_dispute:{outcome.value}", mediator_id)
    await db.update_dispute(dispute["id"], {
        "status": "resolved",
        "resolution": resolution,
        "resolved_by": mediator_id,
        "resolved_at": db.utc_now_iso(),
    })
    await db.update_request(deal.request_id, {"status": request_status})
    return deal


async def list_active_deals(user_id: str) -> list[dict]:
    """The user's open deals with request, both profiles, and whether they've rated."""
    deals = [Deal(**row) for row in await db.list_deals_for_user(user_id, statuses=OPEN_DEAL_STATUSES)]
    if not deals:
        return []

    profiles = await db.get_profiles_by_ids(
        uid for d in deals for uid in (d.requester_id, d.accepter_id)
    )
    reviews = await db.list_reviews_for_deals(d.id for d in deals)
    rated = {r["deal_id"] for r in reviews if r.get("reviewer_id") == user_id}

    result = []
    for deal in deals:
        request = await db.get_request(deal.request_id)
        result.append({
            "deal": deal.model_dump(mode="json"),
            "request": request,
            "role": deal.role_of(user_id),
            "requester_profile": profiles.get(deal.requester_id),
            "accepter_profile": profiles.get(deal.accepter_id),
            "has_rated": deal.id in rated,
            "ready_for_rating": deal.ready_for_rating,
        })
    return result


async def list_pending_deals(request_id: str, owner_id: str) -> list[dict]:
    """Pending deals on the owner's request, each with the accepter's profile."""
    request = await _load_request(request_id)
    if request.user_id != owner_id:
        raise PermissionDeniedError("Only the request owner can see pending deals")

    deals = [Deal(**row) for row in await db.list_deals_for_request(request_id, statuses=(DealStatus.PENDING,))]
    profiles = await db.get_profiles_by_ids(d.accepter_id for d in deals)
    return [
        {"deal": d.model_dump(mode="json"), "accepter_profile": profiles.get(d.accepter_id)}
        for d in deals
    ]


DEAL_ACTIONS = {
    "approve": approve_deal,
    "reject": reject_deal,
    "complete_prerequisite": complete_prerequisite,
    "complete_task": mark_task_complete,
    "request_cancellation": request_cancellation,
    "withdraw_cancellation": withdraw_cancellation,
}


async def perform_action(deal_id: str, user_id: str, action: str, payload: Optional[dict] = None) -> dict:
    """Dispatch a named action from the HTTP layer."""
    payload = payload or {}
    if action == "verify":
        deal, ready = await verify_completion(deal_id, user_id)
        return {"deal": deal.model_dump(mode="json"), "ready_for_rating": ready}
    if action == "dispute":
        deal = await open_dispute(deal_id, user_id, payload.get("reason", ""))
    elif action == "resolve_dispute":
        deal = await resolve_dispute(
            deal_id,
            user_id,
            payload.get("resolution", ""),
            payload.get("outcome", ""),
        )
    elif action in DEAL_ACTIONS:
        deal = await DEAL_ACTIONS[action](deal_id, user_id)
    else:
        raise ValidationFailedError(f"Unknown deal action: {action}")
    return {"deal": deal.model_dump(mode="json"), "ready_for_rating": deal.ready_for_rating}
