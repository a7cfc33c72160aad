# connectsphere/api/posts/schemas.py
from marshmallow import Schema, fields, validate

# --- requests ---

class PostCreateSchema(Schema):
    """POST /api/posts (JSON body or multipart form fields)"""
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    content = fields.Str(required=True, validate=validate.Length(min=1, max=5000))

class PostUpdateSchema(Schema):
    """PATCH /api/posts/{owner_uid}/{post_id}"""
    title = fields.Str(validate=validate.Length(min=1, max=200))
    content = fields.Str(validate=validate.Length(min=1, max=5000))

class CommentCreateSchema(Schema):
    text = fields.Str(required=True, validate=validate.Length(min=1, max=1000))

# --- responses ---

class CommentResponseSchema(Schema):
    comment_id = fields.Str(dump_only=True)
    post_id = fields.Str()
    text = fields.Str(required=True)
    author = fields.Str()
    author_id = fields.Str()
    created_at = fields.DateTime()

class PostResponseSchema(Schema):
    post_id = fields.Str(dump_only=True)
    user_id = fields.Str()
    title = fields.Str(required=True)
    content = fields.Str(required=True)
    photo_url = fields.Str(allow_none=True)
    likes = fields.List(fields.Str())
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
