# connectsphere/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from connectsphere.utils.datetime_utils import DateTimeUtils

@dataclass
class Post:
    """
    Document layout of 'users/{uid}/posts'.
    ``likes`` holds the uids of the users who liked the post.
    """
    title: str
    content: str
    photo_url: Optional[str] = None
    likes: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
