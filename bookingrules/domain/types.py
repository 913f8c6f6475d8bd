"""
Enumerations shared by the policy engines.
"""

from enum import Enum


class MemberStatus(str, Enum):
    """Lifecycle status of a member account."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    WITHDRAWN = "withdrawn"

    def can_use_service(self) -> bool:
        return self is MemberStatus.ACTIVE


class ResourceType(str, Enum):
    """Kinds of bookable resources."""
    GYM = "gym"
    POOL = "pool"
    SAUNA = "sauna"
    YOGA = "yoga"
    PILATES = "pilates"
    STUDY_ROOM = "study_room"
    MEETING_ROOM = "meeting_room"
    TENNIS_COURT = "tennis_court"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()
