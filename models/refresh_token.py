"""
RefreshToken model: stores opaque refresh tokens so we can revoke and rotate them.
Fields:
- token (unique, 80 hex chars)
- user_id (String(36)) - FK to users.id
- expires_at, revoked_at
- replaced_by_token: the token issued when this one was rotated
- reason_revoked
A token is active iff it is not revoked and not yet expired.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, utcnow, as_naive_utc

REASON_REPLACED = "Replaced by new token"
REASON_REVOKED_BY_USER = "Revoked by user"


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(), nullable=False)
    revoked_at = Column(DateTime(), nullable=True)
    replaced_by_token = Column(String(128), nullable=True)
    reason_revoked = Column(String(255), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    @property
    def is_expired(self) -> bool:
        return utcnow() >= as_naive_utc(self.expires_at)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def is_active(self) -> bool:
        return not self.is_revoked and not self.is_expired

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} active={self.is_active}>"
