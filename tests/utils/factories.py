"""Test data factories using Faker."""

from faker import Faker
from typing import Optional

fake = Faker()


def create_profile_data(user_id: Optional[str] = None, username: Optional[str] = None, **overrides) -> dict:
    """Create a profile row."""
    data = {
        "id": user_id or fake.uuid4(),
        "username": username or fake.lexify("user_??????"),
        "full_name": fake.name(),
        "bio": fake.sentence(nb_words=8),
        "location": fake.city(),
        "skills": ["Python", "Design"],
        "reputation_score": 0,
        "completed_deals": 0,
        "total_deals": 0,
    }
    data.update(overrides)
    return data


def create_request_input(**overrides) -> dict:
    """Valid body for posting a request (skill for skill, no prerequisite)."""
    data = {
        "title": "Logo design for my bakery",
        "description": "I need a friendly logo for a small neighbourhood bakery, delivered as SVG and PNG.",
        "request_type": "skill_for_skill",
        "category": "Design",
        "offering": "Two hours of Python tutoring",
        "seeking": "A finished logo",
    }
    data.update(overrides)
    return data


def create_request_data(user_id: Optional[str] = None, **overrides) -> dict:
    """Create a request row."""
    data = create_request_input()
    data.update({
        "id": fake.uuid4(),
        "user_id": user_id or fake.uuid4(),
        "money_amount": None,
        "has_prerequisite": False,
        "prerequisite_description": None,
        "status": "open",
    })
    data.update(overrides)
    return data


def create_interest_data(request_id: str, user_id: Optional[str] = None, **overrides) -> dict:
    """Create a request_interests row."""
    data = {
        "id": fake.uuid4(),
        "request_id": request_id,
        "user_id": user_id or fake.uuid4(),
        "message": fake.sentence(nb_words=6),
        "status": "pending",
    }
    data.update(overrides)
    return data


def create_deal_data(
    request_id: Optional[str] = None,
    requester_id: Optional[str] = None,
    accepter_id: Optional[str] = None,
    **overrides,
) -> dict:
    """Create a deal row (pending, nothing done yet)."""
    data = {
        "id": fake.uuid4(),
        "request_id": request_id or fake.uuid4(),
        "requester_id": requester_id or fake.uuid4(),
        "accepter_id": accepter_id or fake.uuid4(),
        "requester_task_completed": False,
        "accepter_task_completed": False,
        "requester_verified_accepter": False,
        "accepter_verified_requester": False,
        "prerequisite_completed": False,
        "cancellation_requested_by": None,
        "cancellation_agreed": False,
        "status": "pending",
    }
    data.update(overrides)
    return data


def create_review_data(deal_id: str, reviewer_id: str, reviewee_id: str, rating: int = 5, **overrides) -> dict:
    data = {
        "id": fake.uuid4(),
        "deal_id": deal_id,
        "reviewer_id": reviewer_id,
        "reviewee_id": reviewee_id,
        "rating": rating,
        "comment": fake.sentence(nb_words=5),
    }
    data.update(overrides)
    return data
