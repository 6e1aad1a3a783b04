"""
Boutique showcase model - public display profile
"""

from sqlalchemy import Column, String, DateTime, Integer, Numeric, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cloche.utils.database import Base, utcnow

DEFAULT_SHOWCASE_RATING = 5.0

class BoutiqueShowcase(Base):
    __tablename__ = "boutique_showcase"

    id = Column(Integer, primary_key=True, autoincrement=True)
    boutique_id = Column(Integer, ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    district = Column(String(100))
    area = Column(String(255))
    tags = Column(String(255))  # comma separated
    image_url = Column(String(500))
    rating = Column(Numeric(2, 1), default=DEFAULT_SHOWCASE_RATING)

    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    boutique = relationship("Boutique", back_populates="showcase")

    def __repr__(self):
        return f"<BoutiqueShowcase(boutique_id={self.boutique_id}, district='{self.district}', rating={self.rating})>"
