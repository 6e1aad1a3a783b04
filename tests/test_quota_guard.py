from decimal import Decimal

import pytest
from sqlalchemy import func, insert, select

from cloche.config.plan_limits import ResourceKind
from cloche.models.boutique import PlanTier
from cloche.models.product import Product
from cloche.services.account_store import account_store
from cloche.services.lead_store import lead_store
from cloche.services.product_store import product_store
from cloche.services.quota_guard import AdmissionStrategy, QuotaGuard, quota_guard
from cloche.utils.errors import NotFound, QuotaExceeded


async def product_count(db, boutique_id):
    result = await db.execute(select(func.count(Product.id)).where(Product.boutique_id == boutique_id))
    return result.scalar()


async def add_products(db, storage, boutique_id, count):
    for i in range(count):
        await product_store.add_product(boutique_id, f"Dress {i}", "49.99", db, storage)


async def test_basic_fourth_product_denied(db, storage, make_boutique):
    boutique = await make_boutique()
    await add_products(db, storage, boutique.id, 3)

    with pytest.raises(QuotaExceeded) as exc_info:
        await product_store.add_product(boutique.id, "Dress 3", "49.99", db, storage)

    assert exc_info.value.limit == 3
    assert exc_info.value.current == 3
    assert exc_info.value.plan_tier == "Basic"
    assert "3 products" in exc_info.value.message
    assert await product_count(db, boutique.id) == 3


async def test_professional_allows_twenty_products(db, storage, make_boutique):
    boutique = await make_boutique(plan=PlanTier.PROFESSIONAL)
    await add_products(db, storage, boutique.id, 20)

    with pytest.raises(QuotaExceeded):
        await product_store.add_product(boutique.id, "Dress 20", "49.99", db, storage)
    assert await product_count(db, boutique.id) == 20


async def test_premium_is_never_denied(db, storage, make_boutique):
    boutique = await make_boutique(plan=PlanTier.PREMIUM)
    await db.execute(insert(Product), [
        {"boutique_id": boutique.id, "product_name": f"Dress {i}", "price": Decimal("49.99")}
        for i in range(10000)
    ])
    await db.commit()

    decision = await quota_guard.check(boutique.id, ResourceKind.PRODUCT, db)
    assert decision.allowed
    assert decision.current is None

    await product_store.add_product(boutique.id, "Dress 10000", "49.99", db, storage)
    assert await product_count(db, boutique.id) == 10001


async def test_check_reports_usage(db, storage, make_boutique):
    boutique = await make_boutique()
    await add_products(db, storage, boutique.id, 2)

    decision = await quota_guard.check(boutique.id, ResourceKind.PRODUCT, db)
    assert decision.allowed
    assert decision.current == 2
    assert decision.limit == 3


async def test_basic_sixth_lead_denied(db, make_boutique):
    boutique = await make_boutique()
    for i in range(5):
        await lead_store.capture_lead(boutique.id, f"Customer {i}", db, customer_email=f"c{i}@gmail.com")

    with pytest.raises(QuotaExceeded, match="5 leads. Upgrade to receive more."):
        await lead_store.capture_lead(boutique.id, "Late", db, customer_email="late@gmail.com")

    leads = await lead_store.list_for_boutique(boutique.id, db)
    assert len(leads) == 5


async def test_upgrade_lifts_the_limit(db, storage, make_boutique):
    boutique = await make_boutique()
    await add_products(db, storage, boutique.id, 3)
    await account_store.update_plan(boutique.id, "Professional", db)

    await product_store.add_product(boutique.id, "Dress 3", "49.99", db, storage)
    assert await product_count(db, boutique.id) == 4


async def test_row_lock_strategy_gives_same_decisions(db, storage, make_boutique):
    guard = QuotaGuard(strategy=AdmissionStrategy.ROW_LOCK)
    boutique = await make_boutique()
    await add_products(db, storage, boutique.id, 3)

    decision = await guard.check(boutique.id, ResourceKind.PRODUCT, db)
    assert not decision.allowed
    assert decision.current == 3


async def test_unknown_boutique_is_not_found(db):
    with pytest.raises(NotFound):
        await quota_guard.check(9999, ResourceKind.LEAD, db)


async def test_usage_stats(db, storage, make_boutique):
    boutique = await make_boutique(plan=PlanTier.PROFESSIONAL)
    await add_products(db, storage, boutique.id, 2)

    stats = await quota_guard.usage_stats(boutique, db)
    assert stats["plan"] == "Professional"
    assert stats["products"] == {"current": 2, "limit": 20}
    assert stats["leads"] == {"current": 0, "limit": None}
