"""
Refresh-token lifecycle: issue, rotate, revoke.

Refresh tokens are opaque random strings persisted in ``refresh_tokens``.
A token moves one way, active -> revoked, and never comes back.

Rotation revokes the presented token with one conditional UPDATE
(``revoked_at IS NULL AND expires_at > now``) and inserts its replacement
in the same transaction. When two requests race on the same token only one
UPDATE matches a row; the other call sees rowcount 0 and is refused.
"""
from __future__ import annotations

import logging
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.base_model import utcnow
from models.refresh_token import RefreshToken, REASON_REPLACED, REASON_REVOKED_BY_USER
from models.user import User
from utils.security import create_access_token, access_token_lifetime, generate_opaque_token

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 40


class InvalidRefreshToken(Exception):
    """The presented refresh token is unknown, expired, revoked or lost a rotation race."""


def _new_refresh_token(user_id: str) -> RefreshToken:
    return RefreshToken(
        token=generate_opaque_token(REFRESH_TOKEN_BYTES),
        user_id=user_id,
        expires_at=utcnow() + current_app.config["REFRESH_TOKEN_EXPIRES"],
    )


def _pair(user: User, refresh_token: RefreshToken) -> dict:
    return {
        "accessToken": create_access_token(user),
        "refreshToken": refresh_token.token,
        "expiresIn": access_token_lifetime(),
    }


def issue_refresh_token(session: Session, user: User) -> RefreshToken:
    """Persist and return a fresh refresh token for ``user``."""
    rt = _new_refresh_token(user.id)
    session.add(rt)
    session.commit()
    return rt


def issue_token_pair(session: Session, user: User) -> dict:
    """Issue an access token plus a persisted refresh token."""
    return _pair(user, issue_refresh_token(session, user))


def find_refresh_token(session: Session, token: str) -> Optional[RefreshToken]:
    return session.query(RefreshToken).filter(RefreshToken.token == token).first()


def _revoke_if_active(session: Session, token: str, **values) -> bool:
    """Conditionally revoke ``token``; True only if this call flipped it."""
    now = utcnow()
    stmt = (
        update(RefreshToken)
        .where(
            RefreshToken.token == token,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now,
        )
        .values(revoked_at=now, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount == 1


def rotate_refresh_token(session: Session, token: str) -> tuple[User, dict]:
    """
    Exchange ``token`` for a new access/refresh pair.

    The old token is revoked with reason "Replaced by new token" and linked to
    its successor through ``replaced_by_token``. Raises InvalidRefreshToken if
    the token is unknown, inactive, or another request rotated it first.
    """
    current = find_refresh_token(session, token)
    if current is None:
        raise InvalidRefreshToken("Invalid refresh token")
    if current.is_revoked:
        # Replay of an already rotated/revoked token; see DESIGN.md open question.
        logger.warning("refresh token reuse detected for user %s", current.user_id)
        raise InvalidRefreshToken("Invalid refresh token")

    user = session.get(User, current.user_id)
    replacement = _new_refresh_token(current.user_id)
    try:
        won = _revoke_if_active(
            session,
            token,
            replaced_by_token=replacement.token,
            reason_revoked=REASON_REPLACED,
        )
        if won:
            session.add(replacement)
            session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    if not won:
        session.rollback()
        raise InvalidRefreshToken("Invalid refresh token")

    session.expire(current)
    return user, _pair(user, replacement)


def revoke_refresh_token(session: Session, rt: RefreshToken) -> bool:
    """
    Revoke ``rt`` on behalf of its owner. Returns False when it was already
    inactive (nothing changes; revoked is terminal).
    """
    revoked = _revoke_if_active(session, rt.token, reason_revoked=REASON_REVOKED_BY_USER)
    session.commit()
    session.expire(rt)
    return revoked
