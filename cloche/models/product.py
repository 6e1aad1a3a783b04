"""
Product models - catalog entries with image galleries
"""

from sqlalchemy import Column, String, DateTime, Integer, Numeric, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cloche.utils.database import Base, utcnow

DEFAULT_CATEGORY = "Uncategorized"

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    boutique_id = Column(Integer, ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False, index=True)

    # Product details
    product_name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    category = Column(String(100), default=DEFAULT_CATEGORY, nullable=False)
    description = Column(Text, default="")
    location = Column(String(255), default="")
    image_url = Column(String(500))  # primary image

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    # Relationships
    boutique = relationship("Boutique", back_populates="products")
    images = relationship("ProductImage", back_populates="product", cascade="all, delete-orphan", passive_deletes=True, order_by="ProductImage.id")

    __table_args__ = (
        UniqueConstraint("boutique_id", "product_name", name="uq_products_boutique_name"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.product_name}', boutique_id={self.boutique_id})>"


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationship
    product = relationship("Product", back_populates="images")

    def __repr__(self):
        return f"<ProductImage(id={self.id}, product_id={self.product_id})>"
