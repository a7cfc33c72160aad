# connectsphere/api/auth/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError

class PasswordSignInSchema(Schema):
    """POST /api/auth/login"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=1))

class SignUpSchema(Schema):
    """POST /api/auth/signup"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=6))
    display_name = fields.Str(validate=validate.Length(max=100))

class SocialLoginSchema(Schema):
    """
    POST /api/auth/social
    Either the provider credential itself or, for Google, an authorization
    code the server exchanges for the ID token.
    """
    provider = fields.Str(required=True, validate=validate.OneOf(["google", "github"]))
    credential = fields.Str()
    auth_code = fields.Str()

    @validates_schema
    def validate_credential(self, data, **kwargs):
        if not data.get('credential') and not data.get('auth_code'):
            raise ValidationError("credential or auth_code is required.", "credential")
        if data.get('auth_code') and data.get('provider') != 'google':
            raise ValidationError("auth_code is only supported for google.", "auth_code")

class LogoutRequestSchema(Schema):
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)
