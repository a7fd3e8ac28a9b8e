"""
Request-body schemas, looked up by operation name.

utils.decorators.validate_body(name) loads the incoming JSON through
SCHEMAS[name]; an unknown name is a programming error and raises KeyError
at decoration time.
"""
from marshmallow import Schema

from models.schemas.item import ItemCreateSchema, ItemSearchSchema
from models.schemas.task import TaskCreateSchema
from models.schemas.user import (
    ChangePasswordSchema,
    ForgotPasswordSchema,
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
)

SCHEMAS: dict[str, Schema] = {
    "register": RegisterSchema(),
    "login": LoginSchema(),
    "refresh_token": RefreshTokenSchema(),
    "revoke_token": RefreshTokenSchema(),
    "forgot_password": ForgotPasswordSchema(),
    "reset_password": ResetPasswordSchema(),
    "change_password": ChangePasswordSchema(),
    "create_task": TaskCreateSchema(),
    "create_item": ItemCreateSchema(),
    "search_items": ItemSearchSchema(),
}
