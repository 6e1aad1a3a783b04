"""
Boutique model - represents each seller account
"""

from sqlalchemy import Column, String, DateTime, Integer
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cloche.utils.database import Base, utcnow
import enum

class PlanTier(str, enum.Enum):
    BASIC = "Basic"
    PROFESSIONAL = "Professional"
    PREMIUM = "Premium"

class Boutique(Base):
    __tablename__ = "boutiques"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    boutique_name = Column(String(255), nullable=False)
    owner_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lower-cased
    phone = Column(String(20), unique=True, index=True, nullable=False)
    city = Column(String(100), nullable=False)

    # Authoritative for every quota decision; empty/unknown values resolve to Basic
    plan = Column(String(50), nullable=False, default=PlanTier.BASIC.value)

    # Authentication
    password_hash = Column(String(255), nullable=False)  # bcrypt hash

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    showcase = relationship("BoutiqueShowcase", back_populates="boutique", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    products = relationship("Product", back_populates="boutique", cascade="all, delete-orphan", passive_deletes=True)
    leads = relationship("Lead", back_populates="boutique", cascade="all, delete-orphan", passive_deletes=True)
    conversations = relationship("Conversation", back_populates="boutique", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Boutique(id={self.id}, name='{self.boutique_name}', plan='{self.plan}')>"
