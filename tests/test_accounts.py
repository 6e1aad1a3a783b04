import pytest

from cloche.models.boutique import PlanTier
from cloche.services.account_store import account_store
from cloche.services.showcase_store import showcase_store
from cloche.utils.errors import AuthenticationError, Conflict, NotFound, ValidationError


async def test_boutique_starts_on_basic(db, make_boutique):
    boutique = await make_boutique()
    assert boutique.plan == PlanTier.BASIC.value
    assert boutique.password_hash != "secret123"


async def test_duplicate_boutique_rejected(db, make_boutique):
    boutique = await make_boutique()
    with pytest.raises(Conflict, match="Boutique already exists"):
        await account_store.create_boutique(
            "Copy", "Owner", boutique.email.upper(), "0719999999", "Colombo", "secret123", db
        )
    with pytest.raises(Conflict):
        await account_store.create_boutique(
            "Copy", "Owner", "other@gmail.com", boutique.phone, "Colombo", "secret123", db
        )


async def test_authenticate_by_email_or_phone(db, make_boutique):
    boutique = await make_boutique()

    by_email = await account_store.authenticate_boutique(boutique.email.upper(), "secret123", db)
    by_phone = await account_store.authenticate_boutique(boutique.phone, "secret123", db)
    wrong = await account_store.authenticate_boutique(boutique.email, "nope", db)

    assert by_email.id == boutique.id
    assert by_phone.id == boutique.id
    assert wrong is None


async def test_user_signup_and_login(db):
    user = await account_store.create_user("Nimali", "Nimali@gmail.com", "pass1234", db)
    assert user.email == "nimali@gmail.com"

    assert (await account_store.authenticate_user("nimali@gmail.com", "pass1234", db)).id == user.id
    assert await account_store.authenticate_user("nimali@gmail.com", "wrong", db) is None
    with pytest.raises(Conflict, match="User already exists"):
        await account_store.create_user("Again", "nimali@gmail.com", "pass1234", db)


async def test_update_profile_rules(db, make_boutique):
    boutique = await make_boutique()
    other = await make_boutique()

    with pytest.raises(ValidationError, match="Only Gmail"):
        await account_store.update_profile(boutique.id, db, "B", "O", "shop@yahoo.com", "0771234567", "Galle")
    with pytest.raises(ValidationError, match="10 digits"):
        await account_store.update_profile(boutique.id, db, "B", "O", "shop@gmail.com", "07712", "Galle")
    with pytest.raises(Conflict):
        await account_store.update_profile(boutique.id, db, "B", "O", other.email, "0771234567", "Galle")

    updated = await account_store.update_profile(boutique.id, db, "New Name", "O", "Shop@gmail.com", "0771234567", "Galle")
    assert updated.boutique_name == "New Name"
    assert updated.email == "shop@gmail.com"
    assert updated.city == "Galle"


async def test_change_password(db, make_boutique):
    boutique = await make_boutique()

    with pytest.raises(ValidationError, match="at least 6"):
        await account_store.change_password(boutique.id, "secret123", "abc", db)
    with pytest.raises(AuthenticationError):
        await account_store.change_password(boutique.id, "wrong-one", "newsecret", db)

    await account_store.change_password(boutique.id, "secret123", "newsecret", db)
    assert await account_store.authenticate_boutique(boutique.email, "newsecret", db)


async def test_update_plan_is_strict(db, make_boutique):
    boutique = await make_boutique()

    assert await account_store.update_plan(boutique.id, "premium", db) is PlanTier.PREMIUM
    with pytest.raises(ValidationError, match="Invalid plan"):
        await account_store.update_plan(boutique.id, "Gold", db)
    with pytest.raises(NotFound):
        await account_store.update_plan(9999, "Premium", db)


async def test_list_boutiques_filters_by_district_then_city(db, make_boutique):
    colombo = await make_boutique(name="Alpha", city="Colombo")
    kandy = await make_boutique(name="Beta", city="Kandy")
    await showcase_store.save_showcase(kandy.id, db, district="Nuwara Eliya", area="Town", rating=4)

    everything = await account_store.list_boutiques(db)
    assert [b["boutique_name"] for b in everything] == ["Alpha", "Beta"]
    assert everything[0]["rating"] == 5.0

    assert [b["id"] for b in await account_store.list_boutiques(db, city="colombo")] == [colombo.id]
    assert [b["id"] for b in await account_store.list_boutiques(db, city="Nuwara Eliya")] == [kandy.id]
    assert await account_store.list_boutiques(db, city="Kandy") == []


async def test_update_user_gmail_only(db):
    user = await account_store.create_user("Nimali", "nimali@gmail.com", "pass1234", db)

    with pytest.raises(ValidationError):
        await account_store.update_user(user.id, "Nimali", "nimali@outlook.com", db)

    updated = await account_store.update_user(user.id, "Nimali P", "nimali.p@gmail.com", db)
    assert updated.email == "nimali.p@gmail.com"
    with pytest.raises(NotFound):
        await account_store.get_user(9999, db)


async def test_showcase_defaults_and_upsert(db, make_boutique):
    boutique = await make_boutique()

    empty = await showcase_store.get_showcase(boutique.id, db)
    assert empty == {"district": "", "area": "", "tags": "", "image_url": "", "rating": 5.0}

    saved = await showcase_store.save_showcase(boutique.id, db, district="Galle", area="", tags="bridal, silk", rating=0)
    assert saved["rating"] == 5.0
    assert saved["area"] == ""
    assert saved["tags"] == "bridal, silk"

    previous = await showcase_store.set_showcase_image(boutique.id, "/uploads/showcase/1/a.png", db)
    assert previous is None
    previous = await showcase_store.set_showcase_image(boutique.id, "/uploads/showcase/1/b.png", db)
    assert previous == "/uploads/showcase/1/a.png"

    showcase = await showcase_store.get_showcase(boutique.id, db)
    assert showcase["district"] == "Galle"
    assert showcase["image_url"] == "/uploads/showcase/1/b.png"

    with pytest.raises(NotFound):
        await showcase_store.get_showcase(9999, db)
