"""
Lead model - represents captured customer inquiries
"""

from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cloche.utils.database import Base, utcnow

class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    boutique_id = Column(Integer, ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False, index=True)

    # Contact info
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255))
    customer_phone = Column(String(20))

    # Inquiry details
    product_name = Column(String(255))
    message = Column(Text)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    # Relationships
    boutique = relationship("Boutique", back_populates="leads")

    def __repr__(self):
        return f"<Lead(id={self.id}, email='{self.customer_email}', boutique_id={self.boutique_id})>"
