"""
User model - customer accounts
"""

from sqlalchemy import Column, String, DateTime, Integer
from sqlalchemy.sql import func
from cloche.utils.database import Base, utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
