"""Deal lifecycle rules.

Pure functions: each takes the deal as read from the database plus the
acting user, checks that the move is legal, and returns the column updates
to write. Callers apply the updates with a conditional write guarded on the
status they read, so two racing clients cannot both win.

    pending ──approve──> prerequisite_pending ──prerequisite done──> active
       │                        │                                     │
       └──reject──> cancelled <─┴──── mutual cancellation ────────────┤
                                                                      │
    active ──both tasks done + both verified + both rated──> completed
    prerequisite_pending | active ──dispute──> disputed ──mediator──> resumed status | cancelled
"""

from src.models.deal import Deal, DealStatus
from src.models.dispute import DisputeOutcome
from src.utils.errors import InvalidTransitionError, PermissionDeniedError

ALLOWED_TRANSITIONS: dict[DealStatus, frozenset[DealStatus]] = {
    DealStatus.PENDING: frozenset({
        DealStatus.PREREQUISITE_PENDING,
        DealStatus.ACTIVE,
        DealStatus.CANCELLED,
    }),
    DealStatus.PREREQUISITE_PENDING: frozenset({
        DealStatus.ACTIVE,
        DealStatus.CANCELLED,
        DealStatus.DISPUTED,
    }),
    DealStatus.ACTIVE: frozenset({
        DealStatus.COMPLETED,
        DealStatus.CANCELLED,
        DealStatus.DISPUTED,
    }),
    DealStatus.DISPUTED: frozenset({
        DealStatus.PREREQUISITE_PENDING,
        DealStatus.ACTIVE,
        DealStatus.CANCELLED,
    }),
    DealStatus.COMPLETED: frozenset(),
    DealStatus.CANCELLED: frozenset(),
}


def can_transition(current: DealStatus, target: DealStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[DealStatus(current)]


def ensure_transition(current: DealStatus, target: DealStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Deal cannot move from {DealStatus(current).value} to {DealStatus(target).value}"
        )


def ensure_participant(deal: Deal, user_id: str) -> None:
    if not deal.is_participant(user_id):
        raise PermissionDeniedError("Only the two parties of a deal can do that")


def status_after_approval(has_prerequisite: bool) -> DealStatus:
    """Deals on requests with a prerequisite wait for it before going active."""
    return DealStatus.PREREQUISITE_PENDING if has_prerequisite else DealStatus.ACTIVE


def approval_updates(deal: Deal, owner_id: str, has_prerequisite: bool) -> dict:
    if owner_id != deal.requester_id:
        raise PermissionDeniedError("Only the request owner can approve a deal")
    target = status_after_approval(has_prerequisite)
    ensure_transition(deal.status, target)
    return {"status": target}


def rejection_updates(deal: Deal, owner_id: str) -> dict:
    if owner_id != deal.requester_id:
        raise PermissionDeniedError("Only the request owner can reject a deal")
    if deal.status != DealStatus.PENDING:
        raise InvalidTransitionError("Only pending deals can be rejected")
    return {"status": DealStatus.CANCELLED}


def prerequisite_completion_updates(deal: Deal, user_id: str) -> dict:
    ensure_participant(deal, user_id)
    if deal.status != DealStatus.PREREQUISITE_PENDING:
        raise InvalidTransitionError("Deal is not waiting on prerequisites")
    if deal.prerequisite_completed:
        raise InvalidTransitionError("Prerequisites are already marked complete")
    return {"prerequisite_completed": True, "status": DealStatus.ACTIVE}


def task_completion_updates(deal: Deal, user_id: str) -> dict:
    ensure_participant(deal, user_id)
    if deal.status != DealStatus.ACTIVE:
        raise InvalidTransitionError("Tasks can only be completed on an active deal")
    if deal.task_completed_by(user_id):
        raise InvalidTransitionError("Your task is already marked complete")
    field = "requester_task_completed" if deal.role_of(user_id) == "requester" else "accepter_task_completed"
    return {field: True}


def verification_updates(deal: Deal, user_id: str) -> dict:
    """A party confirms the counterpart finished their task."""
    ensure_participant(deal, user_id)
    if deal.status != DealStatus.ACTIVE:
        raise InvalidTransitionError("Only active deals can be verified")
    if not deal.task_completed_by(deal.other_party_id(user_id)):
        raise InvalidTransitionError("The other party has not marked their task complete")
    if deal.verified_by(user_id):
        raise InvalidTransitionError("You already verified the other party")
    field = "requester_verified_accepter" if deal.role_of(user_id) == "requester" else "accepter_verified_requester"
    return {field: True}


def cancellation_updates(deal: Deal, user_id: str) -> dict:
    """First call records the request; the other party's call cancels the deal."""
    ensure_participant(deal, user_id)
    ensure_transition(deal.status, DealStatus.CANCELLED)
    if deal.status == DealStatus.DISPUTED:
        raise InvalidTransitionError("Disputed deals are settled by a mediator")

    if not deal.cancellation_requested_by:
        return {"cancellation_requested_by": user_id}
    if deal.cancellation_requested_by == user_id:
        raise InvalidTransitionError("You already requested cancellation; waiting for the other party")
    return {"status": DealStatus.CANCELLED, "cancellation_agreed": True}


def withdrawal_updates(deal: Deal, user_id: str) -> dict:
    ensure_participant(deal, user_id)
    if deal.cancellation_requested_by != user_id:
        raise InvalidTransitionError("There is no cancellation request of yours to withdraw")
    if deal.status in (DealStatus.CANCELLED, DealStatus.COMPLETED):
        raise InvalidTransitionError("Deal is already closed")
    return {"cancellation_requested_by": None}


def dispute_updates(deal: Deal, user_id: str) -> dict:
    ensure_participant(deal, user_id)
    ensure_transition(deal.status, DealStatus.DISPUTED)
    return {"status": DealStatus.DISPUTED}


def resume_status(deal: Deal, has_prerequisite: bool) -> DealStatus:
    """Where a resumed deal picks up: the prerequisite step if it was never done."""
    if has_prerequisite and not deal.prerequisite_completed:
        return DealStatus.PREREQUISITE_PENDING
    return DealStatus.ACTIVE


def resolution_updates(deal: Deal, outcome: DisputeOutcome, has_prerequisite: bool) -> dict:
    """A mediator's ruling; a cancel ruling leaves the deal open for rating."""
    if deal.status != DealStatus.DISPUTED:
        raise InvalidTransitionError("Deal is not under dispute")
    if DisputeOutcome(outcome) == DisputeOutcome.RESUME:
        updates = {"status": resume_status(deal, has_prerequisite)}
    else:
        updates = {"status": DealStatus.CANCELLED, "cancellation_agreed": True}
    ensure_transition(deal.status, updates["status"])
    return updates


def ensure_ready_for_rating(deal: Deal) -> None:
    if not deal.ready_for_rating:
        raise InvalidTransitionError("This deal is not ready to be rated yet")


def completion_updates(deal: Deal, completed_at: str) -> dict:
    """Final move once both parties have rated each other."""
    if not (deal.both_tasks_completed and deal.both_verified):
        raise InvalidTransitionError("Both tasks must be completed and verified first")
    ensure_transition(deal.status, DealStatus.COMPLETED)
    return {"status": DealStatus.COMPLETED, "completed_at": completed_at}
