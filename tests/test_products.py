from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from conftest import image_bytes, png_upload
from cloche.models.product import DEFAULT_CATEGORY, Product, ProductImage
from cloche.services.image_storage import ImageUpload
from cloche.services.product_store import DUPLICATE_PRODUCT_MESSAGE, product_store
from cloche.services.showcase_store import showcase_store
from cloche.utils.errors import Conflict, NotFound, QuotaExceeded, StorageError, ValidationError


async def product_count(db, boutique_id):
    result = await db.execute(select(func.count(Product.id)).where(Product.boutique_id == boutique_id))
    return result.scalar()


def stored_path(storage, url):
    return Path(storage.upload_dir) / url[len("/uploads/"):]


async def test_quota_then_duplicate_walkthrough(db, storage, make_boutique):
    boutique = await make_boutique()

    for name in ["A", "B", "C"]:
        await product_store.add_product(boutique.id, name, 10, db, storage)
    assert await product_count(db, boutique.id) == 3

    with pytest.raises(QuotaExceeded):
        await product_store.add_product(boutique.id, "D", 10, db, storage)
    assert await product_count(db, boutique.id) == 3

    with pytest.raises(Conflict) as exc_info:
        await product_store.add_product(boutique.id, "A", 10, db, storage)
    assert exc_info.value.message == DUPLICATE_PRODUCT_MESSAGE
    assert await product_count(db, boutique.id) == 3


async def test_same_name_allowed_in_other_boutique(db, storage, make_boutique):
    first = await make_boutique()
    second = await make_boutique()

    await product_store.add_product(first.id, "Linen Shirt", 25, db, storage)
    await product_store.add_product(second.id, "Linen Shirt", 25, db, storage)

    assert await product_count(db, second.id) == 1


async def test_denied_add_writes_no_files(db, storage, make_boutique):
    boutique = await make_boutique()
    for name in ["A", "B", "C"]:
        await product_store.add_product(boutique.id, name, 10, db, storage)

    with pytest.raises(QuotaExceeded):
        await product_store.add_product(boutique.id, "D", 10, db, storage, images=[png_upload()])

    upload_dir = Path(storage.upload_dir)
    assert not upload_dir.exists() or not any(p.is_file() for p in upload_dir.rglob("*"))


async def test_add_with_images_sets_primary_and_gallery(db, storage, make_boutique):
    boutique = await make_boutique()
    created = await product_store.add_product(
        boutique.id,
        "Silk Saree",
        "120.50",
        db,
        storage,
        images=[png_upload("front.png"), ImageUpload(image_bytes("JPEG"), "back.jpg", "image/jpeg")],
        stock="4",
        description="Hand woven"
    )

    detail = await product_store.get_product_detail(created.product_id, db)
    assert detail["image_url"] == created.image_urls[0]
    assert detail["gallery"] == created.image_urls
    assert detail["price"] == 120.5
    assert detail["stock"] == 4
    assert detail["category"] == DEFAULT_CATEGORY
    for url in created.image_urls:
        assert url.startswith(f"/uploads/products/{boutique.id}/")
        assert stored_path(storage, url).exists()


async def test_rejects_non_images(db, storage, make_boutique):
    boutique = await make_boutique()

    with pytest.raises(ValidationError):
        await product_store.add_product(
            boutique.id, "Notes", 10, db, storage, images=[ImageUpload(b"not an image", "notes.png", "image/png")]
        )
    with pytest.raises(ValidationError):
        await product_store.add_product(
            boutique.id, "Doc", 10, db, storage, images=[ImageUpload(image_bytes(), "doc.gif", "image/gif")]
        )
    with pytest.raises(ValidationError):
        await product_store.add_product(boutique.id, "Free", "abc", db, storage)
    assert await product_count(db, boutique.id) == 0


async def test_detail_store_location_and_rating(db, storage, make_boutique):
    boutique = await make_boutique(city="Kandy")
    created = await product_store.add_product(boutique.id, "Batik Dress", 40, db, storage)

    detail = await product_store.get_product_detail(created.product_id, db)
    assert detail["store_location"] == "Kandy"
    assert detail["showcase_rating"] == 5.0
    assert detail["review_count"] == 0
    assert detail["boutique_name"] == boutique.boutique_name

    await showcase_store.save_showcase(boutique.id, db, district="Kandy", area="Peradeniya", rating="4.5")
    detail = await product_store.get_product_detail(created.product_id, db)
    assert detail["store_location"] == "Peradeniya, Kandy"
    assert detail["showcase_rating"] == 4.5
    assert detail["review_count"] == 1

    with pytest.raises(NotFound):
        await product_store.get_product_detail(9999, db)


async def test_list_newest_first(db, storage, make_boutique):
    boutique = await make_boutique()
    for name in ["First", "Second", "Third"]:
        await product_store.add_product(boutique.id, name, 10, db, storage)

    products = await product_store.list_for_boutique(boutique.id, db)
    assert [p["product_name"] for p in products] == ["Third", "Second", "First"]
    assert all(p["gallery"] == [] for p in products)


async def test_update_appends_images_and_promotes_primary(db, storage, make_boutique):
    boutique = await make_boutique()
    created = await product_store.add_product(boutique.id, "Kurta", 30, db, storage)

    detail = await product_store.update_product(
        created.product_id, db, storage, price="35", location="Galle Fort", images=[png_upload("new.png")]
    )
    assert detail["price"] == 35.0
    assert detail["location"] == "Galle Fort"
    assert detail["store_location"] == "Galle Fort"
    assert detail["product_name"] == "Kurta"
    assert len(detail["gallery"]) == 1
    assert detail["image_url"] == detail["gallery"][0]


async def test_update_rename_conflict(db, storage, make_boutique):
    boutique = await make_boutique()
    await product_store.add_product(boutique.id, "Kurta", 30, db, storage)
    created = await product_store.add_product(boutique.id, "Saree", 30, db, storage)

    with pytest.raises(Conflict):
        await product_store.update_product(created.product_id, db, storage, product_name="Kurta")


async def test_delete_image_promotes_next(db, storage, make_boutique):
    boutique = await make_boutique()
    created = await product_store.add_product(
        boutique.id, "Gown", 99, db, storage, images=[png_upload("one.png"), png_upload("two.png")]
    )
    first, second = created.image_urls

    primary = await product_store.delete_image(created.product_id, first, db, storage)
    assert primary == second
    assert not stored_path(storage, first).exists()

    primary = await product_store.delete_image(created.product_id, second, db, storage)
    assert primary is None

    with pytest.raises(NotFound):
        await product_store.delete_image(created.product_id, second, db, storage)


async def test_delete_product_cascades_gallery(db, storage, make_boutique):
    boutique = await make_boutique()
    created = await product_store.add_product(boutique.id, "Gown", 99, db, storage, images=[png_upload()])

    await product_store.delete_product(created.product_id, db, storage)

    result = await db.execute(select(func.count(ProductImage.id)))
    assert result.scalar() == 0
    assert not stored_path(storage, created.image_urls[0]).exists()
    with pytest.raises(NotFound):
        await product_store.delete_product(created.product_id, db, storage)


async def test_gallery_failure_keeps_product(db, storage, make_boutique, monkeypatch):
    boutique = await make_boutique()
    real_commit = db.commit

    async def failing_gallery_commit():
        if any(isinstance(obj, ProductImage) for obj in db.new):
            raise OperationalError("INSERT INTO product_images", {}, Exception("disk I/O error"))
        await real_commit()

    monkeypatch.setattr(db, "commit", failing_gallery_commit)

    created = await product_store.add_product(boutique.id, "Gown", 99, db, storage, images=[png_upload()])

    assert created.product_id
    assert await product_count(db, boutique.id) == 1
    result = await db.execute(select(func.count(ProductImage.id)))
    assert result.scalar() == 0


async def test_partial_upload_failure_removes_saved_files(db, storage, make_boutique, monkeypatch):
    boutique = await make_boutique()
    real_save = storage.save
    calls = {"n": 0}

    def flaky_save(upload, folder="", prefix=""):
        calls["n"] += 1
        if calls["n"] == 2:
            raise StorageError("Failed to upload image")
        return real_save(upload, folder=folder, prefix=prefix)

    monkeypatch.setattr(storage, "save", flaky_save)

    with pytest.raises(StorageError):
        await product_store.add_product(
            boutique.id, "Gown", 99, db, storage, images=[png_upload("one.png"), png_upload("two.png")]
        )

    assert calls["n"] == 2
    assert await product_count(db, boutique.id) == 0
    upload_dir = Path(storage.upload_dir)
    assert not any(p.is_file() for p in upload_dir.rglob("*"))
