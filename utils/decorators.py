from __future__ import annotations
from functools import wraps
from flask import request, g, abort

from api.context import get_storage
from models.schemas import SCHEMAS
from models.user import User
from utils.security import decode_access_token, TokenError


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Access token is required")
            token = auth.split(" ", 1)[1].strip()
            try:
                decoded = decode_access_token(token)
            except TokenError as e:
                abort(401, description=str(e))

            user = get_storage().get(User, decoded.get("sub"))
            if not user:
                abort(401, description="User not found")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the user has ANY of the required roles.
    Roles are read from the user row, so a promotion applies without re-login.
    """
    req = set(required_roles or [])

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if not any(g.current_user.has_role(role) for role in req):
                abort(403, description="Insufficient permissions")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def validate_body(schema_name: str):
    """
    Load the JSON body through SCHEMAS[schema_name] before the view runs.
    The cleaned data lands on g.body; marshmallow's ValidationError is left
    to the app error handlers.
    """
    schema = SCHEMAS[schema_name]

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            payload = request.get_json(silent=True)
            if payload is None:
                payload = {}
            if not isinstance(payload, dict):
                abort(400, description="Request body must be a JSON object")
            g.body = schema.load(payload)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
