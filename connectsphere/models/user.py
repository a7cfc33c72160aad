# connectsphere/models/user.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict

from connectsphere.utils.datetime_utils import DateTimeUtils

# Profile fields counted by the completion meter on the profile page.
COMPLETION_FIELDS = ('name', 'title', 'avatar', 'bio', 'location')

@dataclass
class User:
    """
    Document layout of the Firestore 'users' collection.
    The document id is the Firebase Auth uid.
    """
    uid: str
    name: str = ""
    email: str = ""
    title: str = ""
    bio: str = ""
    location: str = ""
    avatar: Optional[str] = None
    cover_image: Optional[str] = None
    socials: Dict[str, str] = field(default_factory=lambda: {"twitter": "", "linkedin": "", "github": ""})
    stats: Dict[str, int] = field(default_factory=lambda: {"posts": 0, "friends": 0})
    skills: List[str] = field(default_factory=list)
    join_date: datetime = field(default_factory=DateTimeUtils.now)
