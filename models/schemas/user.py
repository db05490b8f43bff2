import re

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    pre_load,
    validate,
    validates,
    validates_schema,
)

USERNAME_RE = r"^[a-zA-Z0-9_-]+$"
FULL_NAME_RE = r"^[a-zA-Z\s]+$"

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "Password must contain at least one special character"),
)


def _strip_strings(data):
    if not isinstance(data, dict):
        return data
    return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


def _norm_lower(data, *keys):
    if not isinstance(data, dict):
        return data
    for key in keys:
        if isinstance(data.get(key), str):
            data[key] = data[key].lower()
    return data


def check_password_strength(value: str):
    if len(value) < 8:
        raise ValidationError("Password must contain at least 8 characters")
    if len(value) > 128:
        raise ValidationError("Password is too long")
    errors = [message for pattern, message in _PASSWORD_RULES if not pattern.search(value)]
    if errors:
        raise ValidationError(errors)


def username_field(**kw):
    return fields.String(
        validate=[
            validate.Length(min=3, max=30, error="Username must be 3 to 30 characters"),
            validate.Regexp(USERNAME_RE, error="Username can only contain letters, numbers, underscores, and hyphens"),
        ],
        **kw,
    )


def full_name_field(**kw):
    return fields.String(
        validate=[
            validate.Length(min=3, error="Name is too short"),
            validate.Regexp(FULL_NAME_RE, error="Name can only contain letters and spaces"),
        ],
        **kw,
    )


class RegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    full_name = full_name_field(required=True)
    email = fields.Email(required=True, error_messages={"invalid": "Invalid email address"})
    username = username_field(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        return _norm_lower(_strip_strings(data), "email", "username")

    @validates("password")
    def validate_password(self, value, **kwargs):
        check_password_strength(value)


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(load_default=None, error_messages={"invalid": "Invalid email address"})
    username = fields.String(load_default=None)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        return _norm_lower(_strip_strings(data), "email", "username")

    @validates_schema
    def require_identifier(self, data, **kwargs):
        if not data.get("email") and not data.get("username"):
            raise ValidationError("Either email or username is required", field_name="_schema")


class ChangePasswordSchema(Schema):
    old_password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        check_password_strength(value)


class UpdateDetailsSchema(Schema):
    email = fields.Email(error_messages={"invalid": "Invalid email address"})
    full_name = full_name_field()

    @pre_load
    def normalize(self, data, **kwargs):
        return _norm_lower(_strip_strings(data), "email")

    @validates_schema
    def require_one(self, data, **kwargs):
        if not data.get("email") and not data.get("full_name"):
            raise ValidationError("Either email or name is required", field_name="_schema")


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String()
    full_name = fields.String()
    avatar = fields.String(allow_none=True)
    cover_image = fields.String(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)
