"""Marketplace requests - posting, browsing, and removing requests."""

import os
from typing import Optional
from src.models.badge import UserBadge
from src.models.deal import LIVE_DEAL_STATUSES
from src.models.request import ALL_CATEGORIES, MarketRequest, RequestCreate, RequestStatus
from src.services import supabase_client as db
from src.utils.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

MARKETPLACE_PAGE_SIZE = int(os.environ.get("MARKETPLACE_PAGE_SIZE", "50"))


async def create_request(user_id: str, data: RequestCreate) -> MarketRequest:
    """Validate and post a new open request."""
    errors = data.validation_errors()
    if errors:
        raise ValidationFailedError("Request is incomplete", errors=errors)

    profile = await db.get_profile(user_id)
    if profile is None:
        raise NotFoundError("Set up your profile before posting")

    row = await db.create_request(data.to_row(user_id))
    logger.info(
        "Request posted",
        request_id=row.get("id"),
        user_id=user_id,
        request_type=data.request_type.value,
        category=data.category,
        has_prerequisite=data.has_prerequisite,
    )
    return MarketRequest(**row)


async def get_request(request_id: str) -> MarketRequest:
    row = await db.get_request(request_id)
    if row is None:
        raise NotFoundError(f"Request not found: {request_id}")
    return MarketRequest(**row)


async def browse_requests(
    search: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = MARKETPLACE_PAGE_SIZE,
) -> list[MarketRequest]:
    """Open requests, newest first, filtered by category and title/description text."""
    if category == ALL_CATEGORIES:
        category = None
    rows = await db.list_requests(
        status=RequestStatus.OPEN,
        category=category,
        search=search,
        limit=limit,
    )
    return [MarketRequest(**row) for row in rows]


async def list_user_requests(user_id: str, status: Optional[RequestStatus] = RequestStatus.OPEN) -> list[MarketRequest]:
    rows = await db.list_requests(status=status, user_id=user_id)
    return [MarketRequest(**row) for row in rows]


async def delete_request(request_id: str, user_id: str) -> None:
    """Owner-only delete; refused while a deal on the request is under way."""
    request = await get_request(request_id)
    if request.user_id != user_id:
        raise PermissionDeniedError("You can only delete your own requests")

    live_deals = await db.list_deals_for_request(request_id, statuses=LIVE_DEAL_STATUSES)
    if live_deals:
        raise ConflictError("This request has a deal in progress and cannot be deleted")

    await db.delete_request(request_id)
    logger.info("Request deleted", request_id=request_id, user_id=user_id)


async def get_request_detail(request_id: str, viewer_id: Optional[str] = None) -> dict:
    """Request plus owner profile/badges and the viewer's own interest and deal."""
    request = await get_request(request_id)
    owner = await db.get_profile(request.user_id)
    badges = [UserBadge(**row).to_display() for row in await db.list_badges(request.user_id)]

    detail = {
        "request": request.model_dump(mode="json"),
        "owner": owner,
        "owner_badges": badges,
        "is_owner": viewer_id == request.user_id,
        "my_interest": None,
        "my_deal": None,
    }

    if viewer_id and viewer_id != request.user_id:
        detail["my_interest"] = await db.get_user_interest(request_id, viewer_id)
        deals = await db.list_deals_for_request(request_id)
        detail["my_deal"] = next((d for d in deals if d.get("accepter_id") == viewer_id), None)

    return detail
