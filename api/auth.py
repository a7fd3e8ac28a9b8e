"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh-token
- POST /auth/revoke-token
- POST /auth/forgot-password
- POST /auth/reset-password
- GET  /auth/profile
- POST /auth/change-password

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived JWT access tokens and opaque refresh tokens stored in the DB
- Rotates refresh tokens on every refresh (utils.tokens)
"""
from __future__ import annotations

import logging
from functools import lru_cache

from flask import Blueprint, jsonify, g, abort, current_app

from api.context import get_storage
from models.base_model import utcnow
from models.user import User
from models.schemas.user import UserOutSchema
from utils.decorators import jwt_required, validate_body
from utils.security import hash_password, verify_password, generate_opaque_token
from utils.tokens import (
    InvalidRefreshToken,
    find_refresh_token,
    issue_token_pair,
    revoke_refresh_token,
    rotate_refresh_token,
)

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

user_out_schema = UserOutSchema()

RESET_TOKEN_BYTES = 32
INVALID_CREDENTIALS = "Invalid credentials"
FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, you will receive password reset instructions"


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Verified against when the email is unknown.
    return hash_password("timing-equalizer")


def _find_user_by_email(email: str) -> User | None:
    session = get_storage().get_session()
    return session.query(User).filter(User.email == email).first()


def _deliver_reset_token(user: User, token: str) -> None:
    logger.info("password reset requested for user %s", user.id)
    sender = current_app.config.get("RESET_TOKEN_SENDER")
    if sender is not None:
        sender(user.email, token)


@bp.post("/register")
@validate_body("register")
def register():
    """
    Register a new user and return a token pair.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string, format: email }
            password: { type: string, format: password }
            firstName: { type: string }
            lastName: { type: string }
            age: { type: integer, minimum: 13, maximum: 120 }
            gender: { type: string, enum: [male, female, other] }
    responses:
      201:
        description: Created (returns tokens and user)
      400:
        description: Validation error
      409:
        description: Email already registered
    """
    data = g.body
    storage = get_storage()

    if _find_user_by_email(data["email"]):
        abort(409, description="User already exists")

    user = User(
        email=data["email"],
        password_hash=hash_password(data.pop("password")),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        age=data.get("age"),
        gender=data.get("gender"),
        roles=["user"],
    )
    storage.new(user)
    storage.save()

    tokens = issue_token_pair(storage.get_session(), user)
    logger.info("user registered: %s", user.id)

    return jsonify(
        {
            "success": True,
            "message": "User registered successfully",
            "data": {**tokens, "user": user_out_schema.dump(user)},
        }
    ), 201


@bp.post("/login")
@validate_body("login")
def login():
    """
    Login: return accessToken and refreshToken
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Unauthorized
    """
    data = g.body
    storage = get_storage()

    user = _find_user_by_email(data["email"])
    if user is None:
        verify_password(data["password"], _dummy_hash())
        logger.info("login failed: unknown email")
        abort(401, description=INVALID_CREDENTIALS)
    if not verify_password(data["password"], user.password_hash):
        logger.info("login failed: bad password for user %s", user.id)
        abort(401, description=INVALID_CREDENTIALS)

    user.last_login_at = utcnow()
    storage.new(user)
    storage.save()

    tokens = issue_token_pair(storage.get_session(), user)

    return jsonify(
        {
            "success": True,
            "message": "Login successful",
            "data": {**tokens, "user": user_out_schema.dump(user)},
        }
    ), 200


@bp.post("/refresh-token")
@validate_body("refresh_token")
def refresh_token():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Invalid, expired or revoked refresh token
    """
    session = get_storage().get_session()
    try:
        _, tokens = rotate_refresh_token(session, g.body["refresh_token"])
    except InvalidRefreshToken as exc:
        abort(401, description=str(exc))

    return jsonify({"success": True, "message": "Token refreshed", "data": tokens}), 200


@bp.post("/revoke-token")
@jwt_required()
@validate_body("revoke_token")
def revoke_token():
    """
    Revoke one of the caller's refresh tokens (logout)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: Token revoked
      401:
        description: Unauthorized
      404:
        description: Refresh token not found
    """
    session = get_storage().get_session()
    rt = find_refresh_token(session, g.body["refresh_token"])
    # Another user's token is reported exactly like an unknown one
    if rt is None or rt.user_id != g.current_user.id:
        abort(404, description="Refresh token not found")

    if revoke_refresh_token(session, rt):
        logger.info("refresh token revoked by user %s", g.current_user.id)

    return jsonify({"success": True, "message": "Token revoked successfully"}), 200


@bp.post("/forgot-password")
@validate_body("forgot_password")
def forgot_password():
    """
    Request a password reset token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      200:
        description: Always the same acknowledgement
    """
    storage = get_storage()
    user = _find_user_by_email(g.body["email"])
    if user is not None:
        token = generate_opaque_token(RESET_TOKEN_BYTES)
        user.reset_token = token
        user.reset_token_expires_at = utcnow() + current_app.config["RESET_TOKEN_EXPIRES"]
        storage.new(user)
        storage.save()
        _deliver_reset_token(user, token)

    return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE}), 200


@bp.post("/reset-password")
@validate_body("reset_password")
def reset_password():
    """
    Reset a password with a token from /auth/forgot-password
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             token: { type: string }
             newPassword: { type: string, format: password }
    responses:
      200:
        description: Password reset
      400:
        description: Weak password, or invalid / expired token
    """
    storage = get_storage()
    session = storage.get_session()
    user = (
        session.query(User)
        .filter(User.reset_token == g.body["token"], User.reset_token_expires_at > utcnow())
        .first()
    )
    if user is None:
        abort(400, description="Invalid or expired reset token")

    user.password_hash = hash_password(g.body["new_password"])
    user.reset_token = None
    user.reset_token_expires_at = None
    storage.new(user)
    storage.save()
    logger.info("password reset for user %s", user.id)

    return jsonify({"success": True, "message": "Password has been reset successfully"}), 200


@bp.get("/profile")
@jwt_required()
def profile():
    """
    Get the current user's profile
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"success": True, "data": user_out_schema.dump(g.current_user)}), 200


@bp.post("/change-password")
@jwt_required()
@validate_body("change_password")
def change_password():
    """
    Change the current user's password
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             currentPassword: { type: string, format: password }
             newPassword: { type: string, format: password }
    responses:
      200:
        description: Password changed
      400:
        description: Weak password or wrong current password
    """
    user = g.current_user
    if not verify_password(g.body["current_password"], user.password_hash):
        abort(400, description="Current password is incorrect")

    storage = get_storage()
    user.password_hash = hash_password(g.body["new_password"])
    storage.new(user)
    storage.save()

    return jsonify({"success": True, "message": "Password changed successfully"}), 200
