"""
Product API endpoints
Catalog management with multipart image uploads
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional

from cloche.utils.database import get_db
from cloche.services.image_storage import ImageStorage, ImageUpload, get_image_storage
from cloche.services.product_store import product_store

router = APIRouter(tags=["products"])

# Pydantic models
class DeleteImageRequest(BaseModel):
    productId: Optional[int] = None
    imageUrl: Optional[str] = None


async def read_uploads(files: Optional[List[UploadFile]]) -> List[ImageUpload]:
    """Read multipart files into memory; empty file parts are skipped"""
    uploads = []
    for upload_file in files or []:
        if not upload_file.filename:
            continue
        data = await upload_file.read()
        uploads.append(ImageUpload(data, upload_file.filename, upload_file.content_type))
    return uploads


@router.post("/add")
async def add_product(
    boutiqueId: Optional[int] = Form(None),
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    """Add a product; rejected on duplicate name or when the plan's product limit is reached"""
    uploads = await read_uploads(images)

    created = await product_store.add_product(
        boutiqueId,
        name,
        price,
        db,
        storage,
        images=uploads,
        stock=stock,
        category=category,
        description=description,
        location=location
    )

    if created.image_urls:
        message = f"Product added with {len(created.image_urls)} images!"
    else:
        message = "Product added successfully!"
    return {"success": True, "message": message, "productId": created.product_id}


@router.get("/boutique/{boutique_id}")
async def list_boutique_products(
    boutique_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await product_store.list_for_boutique(boutique_id, db)


@router.post("/delete-image")
async def delete_product_image(
    request: DeleteImageRequest,
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    """Remove one gallery image, promoting the next one to primary when needed"""
    primary = await product_store.delete_image(request.productId, request.imageUrl, db, storage)
    return {"success": True, "message": "Image removed", "nextPrimary": primary}


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await product_store.get_product_detail(product_id, db)


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    uploads = await read_uploads(images)

    product = await product_store.update_product(
        product_id,
        db,
        storage,
        product_name=name,
        price=price,
        stock=stock,
        category=category,
        description=description,
        location=location,
        images=uploads
    )

    message = "Product updated and new images added!" if uploads else "Product details updated!"
    return {"success": True, "message": message, "product": product}


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    await product_store.delete_product(product_id, db, storage)
    return {"success": True, "message": "Product deleted successfully!"}
