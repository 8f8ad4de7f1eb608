"""End-to-end deal workflows against the in-memory database."""

import pytest
from src.models.deal import DealStatus
from src.models.request import RequestCreate
from src.models.review import ReviewCreate
from src.services import deals, interests, market_requests, messaging, reviews
from src.utils.errors import InvalidTransitionError
from tests.utils.factories import create_request_input


@pytest.mark.integration
@pytest.mark.asyncio
async def test_request_with_prerequisite_to_completion(fake_db, alice, bob, carol):
    """Post -> apply -> accept -> prerequisite -> tasks -> verify -> rate -> completed."""
    request = await market_requests.create_request(alice["id"], RequestCreate(**create_request_input(
        request_type="skill_for_money",
        money_amount=80,
        has_prerequisite=True,
        prerequisite_description="Share the bakery photos and colour palette first",
    )))

    bob_interest = await interests.express_interest(request.id, bob["id"], "I design logos")
    carol_interest = await interests.express_interest(request.id, carol["id"], "Me too")

    deal = await interests.accept_interest(bob_interest.id, alice["id"])
    assert deal.status == DealStatus.PREREQUISITE_PENDING
    assert fake_db.row("request_interests", carol_interest.id)["status"] == "rejected"
    assert (await market_requests.browse_requests()) == []

    # Tasks cannot start before the prerequisite is done
    with pytest.raises(InvalidTransitionError):
        await deals.mark_task_complete(deal.id, bob["id"])

    deal = await deals.complete_prerequisite(deal.id, alice["id"])
    assert deal.status == DealStatus.ACTIVE

    await deals.mark_task_complete(deal.id, bob["id"])
    await deals.mark_task_complete(deal.id, alice["id"])
    await deals.verify_completion(deal.id, alice["id"])
    deal, ready = await deals.verify_completion(deal.id, bob["id"])
    assert ready

    conversations = await messaging.list_conversations(bob["id"])
    assert len(conversations) == 1
    assert conversations[0]["request_id"] == request.id

    first = await reviews.submit_review(deal.id, alice["id"], ReviewCreate(rating=5, comment="Beautiful work"))
    second = await reviews.submit_review(deal.id, bob["id"], ReviewCreate(rating=4))
    assert first["deal_completed"] is False
    assert second["deal_completed"] is True

    assert fake_db.row("deals", deal.id)["status"] == "completed"
    assert fake_db.row("requests", request.id)["status"] == "completed"
    bob_profile = fake_db.row("profiles", bob["id"])
    assert bob_profile["total_deals"] == 1
    assert bob_profile["completed_deals"] == 1
    assert bob_profile["reputation_score"] == 100
    assert fake_db.row("profiles", alice["id"])["reputation_score"] == 80
    assert await deals.list_active_deals(bob["id"]) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cancellation_puts_request_back_on_market(fake_db, alice, bob):
    request = await market_requests.create_request(alice["id"], RequestCreate(**create_request_input()))
    interest = await interests.express_interest(request.id, bob["id"])
    deal = await interests.accept_interest(interest.id, alice["id"])

    await deals.request_cancellation(deal.id, alice["id"])
    deal = await deals.request_cancellation(deal.id, bob["id"])

    assert deal.status == DealStatus.CANCELLED
    assert [r.id for r in await market_requests.browse_requests()] == [request.id]

    # Cancelled deals can still be rated, without counting as completed
    await reviews.submit_review(deal.id, alice["id"], ReviewCreate(rating=3))
    result = await reviews.submit_review(deal.id, bob["id"], ReviewCreate(rating=3))
    assert result["deal_completed"] is False
    assert fake_db.row("profiles", bob["id"])["completed_deals"] == 0
    assert fake_db.row("profiles", bob["id"])["total_deals"] == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_dispute_resumed_by_mediator(fake_db, alice, bob, carol):
    fake_db.add("user_roles", {"user_id": carol["id"], "role": "mediator"})
    request = await market_requests.create_request(alice["id"], RequestCreate(**create_request_input()))
    interest = await interests.express_interest(request.id, bob["id"])
    deal = await interests.accept_interest(interest.id, alice["id"])

    await deals.open_dispute(deal.id, alice["id"], "No reply for two weeks after approval")
    assert fake_db.row("requests", request.id)["status"] == "disputed"

    # Frozen while disputed
    with pytest.raises(InvalidTransitionError):
        await deals.mark_task_complete(deal.id, bob["id"])

    deal = await deals.resolve_dispute(deal.id, carol["id"], "Both agreed on a new timeline", "resume")

    assert deal.status == DealStatus.ACTIVE
    assert fake_db.row("requests", request.id)["status"] == "in_progress"
    deal = await deals.mark_task_complete(deal.id, bob["id"])
    assert deal.accepter_task_completed is True
