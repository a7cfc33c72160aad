# connectsphere/models/friend.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from connectsphere.utils.datetime_utils import DateTimeUtils

class RequestStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

class Relationship(Enum):
    """How a viewer relates to the profile they are looking at."""
    OWN_PROFILE = "own_profile"
    FRIENDS = "friends"
    SENT = "sent"          # viewer -> subject request pending
    RECEIVED = "received"  # subject -> viewer request pending
    NONE = "none"

@dataclass
class FriendEdge:
    """
    One half of a friendship, stored at 'users/{uid}/friends/{peer_uid}'.
    A friendship exists only when both halves do.
    """
    uid: str                  # the peer
    name: str
    avatar: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

@dataclass
class FriendRequest:
    """
    Document layout of the 'friend_requests' collection.
    Dict keys are 'from'/'to'; see to_document().
    """
    from_uid: str
    to_uid: str
    from_name: str
    from_avatar: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_document(self) -> dict:
        return {
            "from": self.from_uid,
            "to": self.to_uid,
            "from_name": self.from_name,
            "from_avatar": self.from_avatar,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
