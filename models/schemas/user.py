from marshmallow import Schema, fields, pre_load, validate

from models.schemas.common import normalize_email, validate_password_strength

GENDERS = ("male", "female", "other")


class _EmailNormalizingSchema(Schema):
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=normalize_email(data["email"]))
        return data


class RegisterSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate_password_strength)
    first_name = fields.String(data_key="firstName", allow_none=True, validate=validate.Length(max=100))
    last_name = fields.String(data_key="lastName", allow_none=True, validate=validate.Length(max=100))
    age = fields.Integer(allow_none=True, validate=validate.Range(min=13, max=120))
    gender = fields.String(allow_none=True, validate=validate.OneOf(GENDERS))


class LoginSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)


class RefreshTokenSchema(Schema):
    refresh_token = fields.String(data_key="refreshToken", required=True, validate=validate.Length(min=1))


class ForgotPasswordSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)


class ResetPasswordSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1))
    new_password = fields.String(
        data_key="newPassword", required=True, load_only=True, validate=validate_password_strength
    )


class ChangePasswordSchema(Schema):
    current_password = fields.String(data_key="currentPassword", required=True, load_only=True)
    new_password = fields.String(
        data_key="newPassword", required=True, load_only=True, validate=validate_password_strength
    )


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    first_name = fields.String(data_key="firstName", allow_none=True)
    last_name = fields.String(data_key="lastName", allow_none=True)
    age = fields.Integer(allow_none=True)
    gender = fields.String(allow_none=True)
    roles = fields.List(fields.String())
    created_at = fields.DateTime(data_key="createdAt")
    last_login_at = fields.DateTime(data_key="lastLoginAt", allow_none=True)
