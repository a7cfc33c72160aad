# connectsphere/api/users/schemas.py
from marshmallow import Schema, fields, validate

class SocialsSchema(Schema):
    twitter = fields.Str(load_default="")
    linkedin = fields.Str(load_default="")
    github = fields.Str(load_default="")

class StatsSchema(Schema):
    posts = fields.Int()
    friends = fields.Int()

class ProfileUpdateSchema(Schema):
    """
    PATCH /api/users/me
    Every field is optional; only the given ones are written.
    """
    name = fields.Str(validate=validate.Length(max=100))
    title = fields.Str(validate=validate.Length(max=120))
    bio = fields.Str(validate=validate.Length(max=1000))
    location = fields.Str(validate=validate.Length(max=120))
    avatar = fields.Str(allow_none=True)
    cover_image = fields.Str(allow_none=True)
    socials = fields.Nested(SocialsSchema)
    # A list or a comma-separated string; normalized by the service.
    skills = fields.Raw()

class ProfileImageSchema(Schema):
    """PATCH /api/users/me/avatar and /api/users/me/cover-image"""
    file_path = fields.Str(required=True, error_messages={"required": "file_path is required."})

class UserPublicResponseSchema(Schema):
    """
    Public profile. The email is only included for the owner (see routes).
    """
    uid = fields.Str(required=True)
    name = fields.Str()
    email = fields.Str()
    title = fields.Str()
    bio = fields.Str()
    location = fields.Str()
    avatar = fields.Str(allow_none=True)
    cover_image = fields.Str(allow_none=True)
    socials = fields.Nested(SocialsSchema)
    stats = fields.Nested(StatsSchema)
    skills = fields.List(fields.Str())
    join_date = fields.DateTime(allow_none=True)
    completion = fields.Int()
    relationship = fields.Str()

class UserSummarySchema(Schema):
    """Entry of the friend suggestions list."""
    uid = fields.Str(required=True)
    name = fields.Str()
    email = fields.Str()
    bio = fields.Str()
    avatar = fields.Str(allow_none=True)
