"""
Product Store Service
Plan-gated product catalog with image galleries
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, NamedTuple, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from cloche.models.boutique import Boutique
from cloche.models.product import Product, ProductImage, DEFAULT_CATEGORY
from cloche.models.showcase import BoutiqueShowcase, DEFAULT_SHOWCASE_RATING
from cloche.config.plan_limits import ResourceKind
from cloche.services.image_storage import ImageStorage, ImageUpload
from cloche.services.quota_guard import QuotaGuard, quota_guard
from cloche.utils.database import commit_or_rollback
from cloche.utils.errors import Conflict, NotFound, StorageError, ValidationError

logger = logging.getLogger(__name__)

DUPLICATE_PRODUCT_MESSAGE = "This product is already registered in your boutique."


class ProductCreated(NamedTuple):
    product_id: int
    image_urls: List[str]


def _parse_price(price: Any) -> Decimal:
    try:
        value = Decimal(str(price).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Price must be a number")
    if not value.is_finite() or value < 0:
        raise ValidationError("Price must be a non-negative number")
    return value.quantize(Decimal("0.01"))


def _parse_stock(stock: Any) -> int:
    if stock is None or str(stock).strip() == "":
        return 0
    try:
        value = int(str(stock).strip())
    except ValueError:
        raise ValidationError("Stock must be a whole number")
    if value < 0:
        raise ValidationError("Stock must be a whole number")
    return value


def serialize_product(product: Product, gallery: Optional[List[str]] = None) -> Dict[str, Any]:
    return {
        "id": product.id,
        "boutique_id": product.boutique_id,
        "product_name": product.product_name,
        "price": float(product.price) if product.price is not None else None,
        "stock": product.stock,
        "category": product.category,
        "description": product.description or "",
        "location": product.location or "",
        "image_url": product.image_url,
        "created_at": product.created_at,
        "gallery": gallery if gallery is not None else [],
    }


class ProductStore:
    """Catalog operations; inserts are checked against the boutique's plan"""

    def __init__(self, guard: Optional[QuotaGuard] = None):
        self.guard = guard or quota_guard

    async def _name_taken(
        self,
        boutique_id: int,
        product_name: str,
        db: AsyncSession,
        exclude_id: Optional[int] = None
    ) -> bool:
        query = select(Product.id).where(
            Product.boutique_id == boutique_id,
            Product.product_name == product_name
        )
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    async def add_product(
        self,
        boutique_id: int,
        product_name: str,
        price: Any,
        db: AsyncSession,
        storage: ImageStorage,
        images: Optional[List[ImageUpload]] = None,
        stock: Any = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None
    ) -> ProductCreated:
        """
        Add a product to a boutique's catalog

        The duplicate-name check and the plan check both run before anything is
        written to the database or to file storage. The first uploaded image
        becomes the primary image; all of them go to the gallery.

        Raises:
            Conflict: name already used in this boutique
            QuotaExceeded: plan product limit reached
        """
        safe_name = str(product_name or "").strip()
        if not boutique_id or not safe_name or price is None or str(price).strip() == "":
            raise ValidationError("boutiqueId, name and price are required")

        parsed_price = _parse_price(price)
        parsed_stock = _parse_stock(stock)
        uploads = list(images or [])
        storage.validate_images(uploads)

        if await self._name_taken(boutique_id, safe_name, db):
            logger.info(f"Duplicate product rejected: boutique={boutique_id}, name={safe_name!r}")
            raise Conflict(DUPLICATE_PRODUCT_MESSAGE)

        await self.guard.ensure(boutique_id, ResourceKind.PRODUCT, db)

        image_urls = storage.save_all(uploads, folder=f"products/{boutique_id}")

        product = Product(
            boutique_id=boutique_id,
            product_name=safe_name,
            price=parsed_price,
            stock=parsed_stock,
            category=str(category or "").strip() or DEFAULT_CATEGORY,
            description=str(description or "").strip(),
            location=str(location or "").strip(),
            image_url=image_urls[0] if image_urls else None
        )
        db.add(product)
        try:
            await commit_or_rollback(db, "add product", conflict_message=DUPLICATE_PRODUCT_MESSAGE)
        except (Conflict, StorageError):
            for url in image_urls:
                storage.delete(url)
            raise

        product_id = product.id
        logger.info(f"Product added: product_id={product_id}, boutique={boutique_id}, images={len(image_urls)}")

        if image_urls:
            await self._insert_gallery(product_id, image_urls, db)

        return ProductCreated(product_id, image_urls)

    async def _insert_gallery(self, product_id: int, image_urls: List[str], db: AsyncSession):
        """Gallery rows are best-effort; the product itself is already committed"""
        for url in image_urls:
            db.add(ProductImage(product_id=product_id, image_url=url))
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to save gallery images: product_id={product_id}, count={len(image_urls)}: {e}")

    async def _get_product(self, product_id: int, db: AsyncSession) -> Product:
        result = await db.execute(select(Product).where(Product.id == product_id))
        product = result.scalar_one_or_none()
        if not product:
            raise NotFound("Product not found")
        return product

    async def _gallery(self, product_ids: List[int], db: AsyncSession) -> Dict[int, List[str]]:
        galleries: Dict[int, List[str]] = {product_id: [] for product_id in product_ids}
        if not product_ids:
            return galleries

        result = await db.execute(
            select(ProductImage.product_id, ProductImage.image_url)
            .where(ProductImage.product_id.in_(product_ids))
            .order_by(ProductImage.id.asc())
        )
        for product_id, image_url in result.all():
            galleries[product_id].append(image_url)
        return galleries

    async def get_product_detail(self, product_id: int, db: AsyncSession) -> Dict[str, Any]:
        """Product with its boutique, showcase and gallery for the public product page"""
        result = await db.execute(
            select(Product, Boutique.boutique_name, Boutique.city, BoutiqueShowcase)
            .join(Boutique, Boutique.id == Product.boutique_id)
            .outerjoin(BoutiqueShowcase, BoutiqueShowcase.boutique_id == Product.boutique_id)
            .where(Product.id == product_id)
        )
        row = result.first()
        if row is None:
            raise NotFound("Product not found")

        product, boutique_name, city, showcase = row
        galleries = await self._gallery([product.id], db)

        area = showcase.area if showcase else None
        district = showcase.district if showcase else None
        has_rating = bool(showcase and showcase.rating)

        if product.location:
            store_location = product.location
        elif area and district:
            store_location = f"{area}, {district}"
        else:
            store_location = area or district or city

        detail = serialize_product(product, galleries[product.id])
        detail.update({
            "boutique_name": boutique_name,
            "city": city,
            "area": area,
            "district": district,
            "tags": showcase.tags if showcase else None,
            "showcase_image": showcase.image_url if showcase else None,
            "showcase_rating": float(showcase.rating) if has_rating else DEFAULT_SHOWCASE_RATING,
            "review_count": 1 if has_rating else 0,
            "store_location": store_location,
        })
        return detail

    async def list_for_boutique(self, boutique_id: int, db: AsyncSession) -> List[Dict[str, Any]]:
        """A boutique's products, newest first"""
        result = await db.execute(
            select(Product)
            .where(Product.boutique_id == boutique_id)
            .order_by(Product.created_at.desc(), Product.id.desc())
        )
        products = result.scalars().all()
        galleries = await self._gallery([product.id for product in products], db)
        return [serialize_product(product, galleries[product.id]) for product in products]

    async def update_product(
        self,
        product_id: int,
        db: AsyncSession,
        storage: ImageStorage,
        product_name: Optional[str] = None,
        price: Any = None,
        stock: Any = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        images: Optional[List[ImageUpload]] = None
    ) -> Dict[str, Any]:
        """
        Partial update of a product

        Only provided fields change. New images are appended to the gallery and
        the first one becomes primary when the product has no primary image.
        """
        product = await self._get_product(product_id, db)
        uploads = list(images or [])
        storage.validate_images(uploads)

        if product_name is not None:
            safe_name = str(product_name).strip()
            if not safe_name:
                raise ValidationError("Product name cannot be empty")
            if safe_name != product.product_name and await self._name_taken(
                product.boutique_id, safe_name, db, exclude_id=product.id
            ):
                raise Conflict(DUPLICATE_PRODUCT_MESSAGE)
            product.product_name = safe_name
        if price is not None and str(price).strip() != "":
            product.price = _parse_price(price)
        if stock is not None and str(stock).strip() != "":
            product.stock = _parse_stock(stock)
        if category is not None:
            product.category = str(category).strip() or DEFAULT_CATEGORY
        if description is not None:
            product.description = str(description).strip()
        if location is not None:
            product.location = str(location).strip()

        image_urls = storage.save_all(uploads, folder=f"products/{product.boutique_id}")
        for url in image_urls:
            db.add(ProductImage(product_id=product.id, image_url=url))
        if image_urls and not product.image_url:
            product.image_url = image_urls[0]

        try:
            await commit_or_rollback(db, "update product", conflict_message=DUPLICATE_PRODUCT_MESSAGE)
        except (Conflict, StorageError):
            for url in image_urls:
                storage.delete(url)
            raise

        logger.info(f"Product updated: product_id={product_id}, new_images={len(image_urls)}")
        return await self.get_product_detail(product_id, db)

    async def delete_product(self, product_id: int, db: AsyncSession, storage: Optional[ImageStorage] = None):
        """Delete a product and its gallery rows; stored files are removed best-effort"""
        product = await self._get_product(product_id, db)
        galleries = await self._gallery([product.id], db)
        urls = set(galleries[product.id])
        if product.image_url:
            urls.add(product.image_url)

        await db.delete(product)
        await commit_or_rollback(db, "delete product")
        logger.info(f"Product deleted: product_id={product_id}")

        if storage:
            for url in urls:
                if not storage.delete(url):
                    logger.warning(f"Stored image not removed: product_id={product_id}, url={url}")

    async def delete_image(self, product_id: int, image_url: str, db: AsyncSession, storage: ImageStorage) -> Optional[str]:
        """
        Remove one image from a product

        Returns:
            The product's primary image URL after the removal (None when no image is left)
        """
        if not product_id or not image_url:
            raise ValidationError("productId and imageUrl are required")

        product = await self._get_product(product_id, db)

        result = await db.execute(
            select(ProductImage).where(
                ProductImage.product_id == product_id,
                ProductImage.image_url == image_url
            )
        )
        gallery_rows = result.scalars().all()
        if not gallery_rows and product.image_url != image_url:
            raise NotFound("Image not found")

        for row in gallery_rows:
            await db.delete(row)

        if product.image_url == image_url:
            next_image = await db.execute(
                select(ProductImage.image_url)
                .where(
                    ProductImage.product_id == product_id,
                    ProductImage.image_url != image_url
                )
                .order_by(ProductImage.id.asc())
                .limit(1)
            )
            product.image_url = next_image.scalar_one_or_none()

        await commit_or_rollback(db, "delete image")
        primary = product.image_url

        if not storage.delete(image_url):
            logger.warning(f"Stored image not removed: product_id={product_id}, url={image_url}")

        logger.info(f"Product image removed: product_id={product_id}, primary={primary}")
        return primary


# Global instance
product_store = ProductStore()
