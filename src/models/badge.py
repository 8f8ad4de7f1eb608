"""Badge models and catalogue."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


class BadgeType(str, Enum):
    TRUSTED = "trusted"
    FAST_RESPONDER = "fast_responder"
    SKILL_MASTER = "skill_master"
    FAIR_TRADER = "fair_trader"
    PREREQUISITE_READY = "prerequisite_ready"


BADGE_CATALOGUE = {
    BadgeType.TRUSTED: ("Trusted", "100% completion rate for 5+ deals"),
    BadgeType.FAST_RESPONDER: ("Fast Responder", "Replies quickly to messages"),
    BadgeType.SKILL_MASTER: ("Skill Master", "Multiple high ratings in one category"),
    BadgeType.FAIR_TRADER: ("Fair Trader", "Helped resolve disputes as mediator"),
    BadgeType.PREREQUISITE_READY: ("Prerequisite Ready", "Always fulfills prerequisite tasks"),
}


class UserBadge(BaseModel):
    id: str
    user_id: str
    badge_type: BadgeType
    earned_at: Optional[str] = None

    @property
    def label(self) -> str:
        return BADGE_CATALOGUE[self.badge_type][0]

    @property
    def description(self) -> str:
        return BADGE_CATALOGUE[self.badge_type][1]

    def to_display(self) -> dict:
        return {
            "badge_type": self.badge_type.value,
            "label": self.label,
            "description": self.description,
            "earned_at": self.earned_at,
        }
