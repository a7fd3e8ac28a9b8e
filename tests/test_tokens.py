"""
Tests for refresh-token issuance, rotation and revocation.
"""
from datetime import timedelta

import pytest

from models.base_model import utcnow
from models.refresh_token import RefreshToken, REASON_REPLACED, REASON_REVOKED_BY_USER
from models.user import User
from utils.security import decode_access_token, hash_password
from utils.tokens import (
    InvalidRefreshToken,
    _revoke_if_active,
    find_refresh_token,
    issue_refresh_token,
    issue_token_pair,
    revoke_refresh_token,
    rotate_refresh_token,
)


@pytest.fixture
def user(session):
    u = User(email="owner@example.com", password_hash=hash_password("Abc12345!"), roles=["user"])
    session.add(u)
    session.commit()
    return u


class TestIssue:
    def test_fresh_token_is_active(self, session, user):
        rt = issue_refresh_token(session, user)
        assert rt.is_active
        assert rt.revoked_at is None
        assert len(rt.token) == 80
        assert rt.user_id == user.id

    def test_expiry_uses_config(self, app, session, user):
        rt = issue_refresh_token(session, user)
        expected = utcnow() + app.config["REFRESH_TOKEN_EXPIRES"]
        assert abs((rt.expires_at - expected).total_seconds()) < 5

    def test_timestamps_are_naive_utc(self, session, user):
        for table in (RefreshToken.__table__, User.__table__):
            for column in table.columns:
                if hasattr(column.type, "timezone"):
                    assert column.type.timezone is False, column.name

        token = issue_refresh_token(session, user).token
        session.expire_all()
        stored = find_refresh_token(session, token)
        assert stored.expires_at.tzinfo is None
        assert stored.created_at.tzinfo is None

    def test_pair(self, app, session, user):
        pair = issue_token_pair(session, user)
        assert set(pair) == {"accessToken", "refreshToken", "expiresIn"}
        assert pair["expiresIn"] == 15 * 60
        assert decode_access_token(pair["accessToken"])["sub"] == user.id
        assert find_refresh_token(session, pair["refreshToken"]).is_active


class TestRotate:
    def test_rotation_links_and_revokes(self, session, user):
        old = issue_refresh_token(session, user)
        rotated_user, pair = rotate_refresh_token(session, old.token)

        assert rotated_user.id == user.id
        old = find_refresh_token(session, old.token)
        assert old.is_revoked
        assert not old.is_active
        assert old.reason_revoked == REASON_REPLACED
        assert old.replaced_by_token == pair["refreshToken"]
        assert find_refresh_token(session, pair["refreshToken"]).is_active

    def test_old_token_cannot_be_reused(self, session, user):
        old = issue_refresh_token(session, user)
        rotate_refresh_token(session, old.token)
        with pytest.raises(InvalidRefreshToken):
            rotate_refresh_token(session, old.token)

    def test_chain(self, session, user):
        first = issue_refresh_token(session, user).token
        _, second = rotate_refresh_token(session, first)
        _, third = rotate_refresh_token(session, second["refreshToken"])
        assert find_refresh_token(session, first).replaced_by_token == second["refreshToken"]
        assert find_refresh_token(session, second["refreshToken"]).replaced_by_token == third["refreshToken"]

    def test_unknown_token(self, session, user):
        with pytest.raises(InvalidRefreshToken):
            rotate_refresh_token(session, "nope")

    def test_expired_token_is_not_extended(self, session, user):
        rt = issue_refresh_token(session, user)
        rt.expires_at = utcnow() - timedelta(seconds=1)
        session.commit()

        with pytest.raises(InvalidRefreshToken):
            rotate_refresh_token(session, rt.token)

        rt = find_refresh_token(session, rt.token)
        assert rt.revoked_at is None
        assert rt.replaced_by_token is None
        assert session.query(RefreshToken).count() == 1

    def test_only_one_conditional_revoke_wins(self, session, user):
        rt = issue_refresh_token(session, user)
        first = _revoke_if_active(session, rt.token, reason_revoked=REASON_REPLACED)
        second = _revoke_if_active(session, rt.token, reason_revoked=REASON_REPLACED)
        session.commit()
        assert (first, second) == (True, False)

    def test_loser_of_race_gets_no_new_token(self, session, user):
        rt = issue_refresh_token(session, user)
        # another request already revoked it between our lookup and update
        _revoke_if_active(session, rt.token, reason_revoked=REASON_REPLACED)
        session.commit()

        with pytest.raises(InvalidRefreshToken):
            rotate_refresh_token(session, rt.token)
        assert session.query(RefreshToken).count() == 1


class TestRevoke:
    def test_revoke(self, session, user):
        rt = issue_refresh_token(session, user)
        assert revoke_refresh_token(session, rt) is True

        rt = find_refresh_token(session, rt.token)
        assert rt.is_revoked
        assert rt.reason_revoked == REASON_REVOKED_BY_USER
        with pytest.raises(InvalidRefreshToken):
            rotate_refresh_token(session, rt.token)

    def test_revoked_is_terminal(self, session, user):
        rt = issue_refresh_token(session, user)
        revoke_refresh_token(session, rt)
        revoked_at = find_refresh_token(session, rt.token).revoked_at

        assert revoke_refresh_token(session, rt) is False
        assert find_refresh_token(session, rt.token).revoked_at == revoked_at
