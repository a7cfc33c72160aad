# connectsphere/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime

from connectsphere.utils.datetime_utils import DateTimeUtils

@dataclass
class Comment:
    """
    Document layout of 'users/{uid}/posts/{post_id}/comments'.
    """
    text: str
    author: str      # display name at the time of writing
    author_id: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)
