from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from qyou.database import Base


class Profile(Base):
    """A claimed bracelet code and the public card shown when it is scanned.

    The row doubles as the claim record: the unique index on ``code`` is what
    stops two accounts from binding the same bracelet.
    """
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), unique=True, nullable=False, index=True)  # claimed_by
    email = Column(String(255))
    code = Column(String(64), unique=True, index=True, nullable=False)  # set once, never reassigned

    name = Column(String(100))
    age = Column(Integer)
    bio = Column(Text)
    instagram = Column(String(100))
    tiktok = Column(String(100))
    twitter = Column(String(100))
    photo_url = Column(String(500))  # public URL + ?t= cache buster

    claimed_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

