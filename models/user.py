from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel


class User(BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(16), nullable=True)
    roles = Column(JSON, nullable=True, default=lambda: ["user"])
    last_login_at = Column(DateTime(), nullable=True)

    # Password reset (single outstanding token per user)
    reset_token = Column(String(64), nullable=True, unique=True, index=True)
    reset_token_expires_at = Column(DateTime(), nullable=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        passive_deletes=True,
    )
    tasks = relationship("Task", back_populates="user", passive_deletes=True)

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])
