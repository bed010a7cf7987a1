from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from qyou.database import Base


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True)  # uuid4
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(64), primary_key=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False)
