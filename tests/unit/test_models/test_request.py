"""Tests for marketplace request models."""

import pytest
from pydantic import ValidationError
from src.models.request import MarketRequest, RequestCreate, RequestStatus, RequestType
from tests.utils.factories import create_request_data, create_request_input


@pytest.mark.unit
def test_request_type_money_flag():
    assert RequestType.SKILL_FOR_MONEY.involves_money
    assert RequestType.ITEM_FOR_MONEY.involves_money
    assert not RequestType.SKILL_FOR_ITEM.involves_money
    assert not RequestType.ITEM_FOR_SKILL.involves_money


@pytest.mark.unit
def test_market_request_null_columns():
    request = MarketRequest(**create_request_data(has_prerequisite=None, status=None))

    assert request.has_prerequisite is False
    assert request.status == RequestStatus.OPEN


@pytest.mark.unit
def test_valid_request_has_no_errors():
    assert RequestCreate(**create_request_input()).validation_errors() == {}


@pytest.mark.unit
def test_request_validation_collects_every_failure():
    data = RequestCreate(**create_request_input(
        title="Logo",
        description="Too short",
        category="",
        offering="abc",
        seeking="    x    ",
    ))

    errors = data.validation_errors()

    assert set(errors) == {"title", "description", "category", "offering", "seeking"}


@pytest.mark.unit
def test_request_validation_unknown_category():
    errors = RequestCreate(**create_request_input(category="Gardening")).validation_errors()
    assert "category" in errors


@pytest.mark.unit
@pytest.mark.parametrize("amount", [None, 0, -5])
def test_money_request_needs_positive_amount(amount):
    data = RequestCreate(**create_request_input(request_type="skill_for_money", money_amount=amount))
    assert "money_amount" in data.validation_errors()


@pytest.mark.unit
def test_prerequisite_needs_description():
    data = RequestCreate(**create_request_input(has_prerequisite=True, prerequisite_description="Send files"))
    assert "prerequisite_description" in data.validation_errors()


@pytest.mark.unit
def test_to_row_drops_irrelevant_fields():
    """Money amount only kept for money types; prerequisite text only with a prerequisite."""
    data = RequestCreate(**create_request_input(
        title="   Logo design for my bakery   ",
        money_amount=40.0,
        prerequisite_description="Ignored because there is no prerequisite",
    ))

    row = data.to_row("user-1")

    assert row["user_id"] == "user-1"
    assert row["title"] == "Logo design for my bakery"
    assert row["money_amount"] is None
    assert row["prerequisite_description"] is None
    assert row["status"] == "open"
    assert row["request_type"] == "skill_for_skill"


@pytest.mark.unit
def test_to_row_keeps_money_amount():
    data = RequestCreate(**create_request_input(request_type="item_for_money", money_amount=25.5))
    assert data.to_row("user-1")["money_amount"] == 25.5


@pytest.mark.unit
def test_request_create_rejects_unknown_type():
    with pytest.raises(ValidationError):
        RequestCreate(**create_request_input(request_type="money_for_money"))
