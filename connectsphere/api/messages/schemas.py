# connectsphere/api/messages/schemas.py
from marshmallow import Schema, fields, validate

class MessageCreateSchema(Schema):
    text = fields.Str(required=True, validate=validate.Length(min=1, max=2000))

class GroupCreateSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))

class DirectMessageSchema(Schema):
    message_id = fields.Str()
    chat_id = fields.Str()
    sender_id = fields.Str(data_key="from", attribute="from")
    sender_name = fields.Str()
    sender_avatar = fields.Str(allow_none=True)
    recipient_id = fields.Str()
    text = fields.Str()
    created_at = fields.DateTime(allow_none=True)

class GroupMessageSchema(Schema):
    message_id = fields.Str()
    group_id = fields.Str()
    sender_id = fields.Str()
    sender_name = fields.Str()
    text = fields.Str()
    created_at = fields.DateTime(allow_none=True)

class GroupSchema(Schema):
    group_id = fields.Str()
    name = fields.Str()
    created_by = fields.Str()
    created_at = fields.DateTime(allow_none=True)
