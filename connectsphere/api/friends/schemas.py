# connectsphere/api/friends/schemas.py
from marshmallow import Schema, fields

class FriendSchema(Schema):
    uid = fields.Str(required=True)
    name = fields.Str()
    avatar = fields.Str(allow_none=True)
    created_at = fields.DateTime()

class FriendRequestSchema(Schema):
    request_id = fields.Str(dump_only=True)
    from_uid = fields.Str(data_key="from", attribute="from")
    to_uid = fields.Str(data_key="to", attribute="to")
    from_name = fields.Str()
    from_avatar = fields.Str(allow_none=True)
    status = fields.Str()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
