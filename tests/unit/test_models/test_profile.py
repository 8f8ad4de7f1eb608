"""Tests for Profile, message and badge models."""

import pytest
from pydantic import ValidationError
from src.models.badge import BadgeType, UserBadge
from src.models.conversation import Conversation, Message, MessageCreate
from src.models.profile import Profile, ProfileUpdate
from tests.utils.factories import create_profile_data


@pytest.mark.unit
def test_profile_null_counters():
    profile = Profile(**create_profile_data(
        reputation_score=None,
        completed_deals=None,
        total_deals=None,
    ))

    assert profile.reputation_score == 0
    assert profile.completed_deals == 0
    assert profile.total_deals == 0
    assert profile.completion_rate == 0.0


@pytest.mark.unit
def test_profile_reputation_bounds():
    with pytest.raises(ValidationError):
        Profile(**create_profile_data(reputation_score=101))


@pytest.mark.unit
def test_profile_completion_rate():
    profile = Profile(**create_profile_data(completed_deals=3, total_deals=4))
    assert profile.completion_rate == 0.75


@pytest.mark.unit
@pytest.mark.parametrize("username", ["ab", "has space", "dash-name", "x" * 31])
def test_profile_update_rejects_bad_username(username):
    with pytest.raises(ValidationError):
        ProfileUpdate(username=username)


@pytest.mark.unit
def test_profile_update_strips_username_and_dedupes_skills():
    update = ProfileUpdate(username="  maker_01 ", skills=["Python", " python", "Python ", "", "Go"])

    assert update.username == "maker_01"
    assert update.skills == ["Python", "python", "Go"]


@pytest.mark.unit
def test_profile_update_only_sent_fields():
    update = ProfileUpdate(bio="Hello", location=None)
    assert update.to_updates() == {"bio": "Hello", "location": None}


@pytest.mark.unit
def test_conversation_other_participant():
    conversation = Conversation(id="c1", participant1_id="a", participant2_id="b")

    assert conversation.other_participant("a") == "b"
    assert conversation.other_participant("b") == "a"
    assert conversation.has_participant("a")
    assert not conversation.has_participant("z")


@pytest.mark.unit
def test_message_null_read_flag():
    message = Message(id="m1", sender_id="a", receiver_id="b", subject="Hi", message="Hello", is_read=None)
    assert message.is_read is False


@pytest.mark.unit
def test_message_create_defaults_and_blank_text():
    assert MessageCreate(message="Hello").subject == "Conversation"
    with pytest.raises(ValidationError):
        MessageCreate(message="   ")


@pytest.mark.unit
def test_badge_display():
    badge = UserBadge(id="b1", user_id="u1", badge_type="trusted", earned_at="2024-12-09T12:00:00+00:00")

    display = badge.to_display()

    assert badge.badge_type == BadgeType.TRUSTED
    assert display["label"] == "Trusted"
    assert display["badge_type"] == "trusted"
    assert "5+ deals" in display["description"]
