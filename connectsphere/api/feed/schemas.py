# connectsphere/api/feed/schemas.py
from marshmallow import Schema, fields

from connectsphere.api.posts.schemas import CommentResponseSchema

class FeedPostSchema(Schema):
    """A post as shown in a feed: author details inline, comments oldest first."""
    post_id = fields.Str()
    user_id = fields.Str()
    user_name = fields.Str()
    avatar = fields.Str(allow_none=True)
    title = fields.Str()
    content = fields.Str()
    photo_url = fields.Str(allow_none=True)
    likes = fields.List(fields.Str())
    like_count = fields.Method("get_like_count")
    created_at = fields.DateTime()
    comments = fields.List(fields.Nested(CommentResponseSchema))

    def get_like_count(self, obj):
        return len(obj.get('likes') or [])
