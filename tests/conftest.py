import io
import os
import tempfile

# Configure before any cloche module reads the environment
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="cloche-uploads-")
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cloche.main import app
from cloche.models.boutique import PlanTier
from cloche.services.account_store import account_store
from cloche.services.image_storage import ImageStorage, ImageUpload, get_image_storage
from cloche.utils.database import create_tables, get_db


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return ImageStorage(backend="local", upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
async def client(session_factory, storage):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_boutique(db):
    """Create boutiques with unique email/phone on a given plan"""
    counter = {"n": 0}

    async def _make(plan=PlanTier.BASIC, name=None, city="Colombo"):
        counter["n"] += 1
        n = counter["n"]
        boutique = await account_store.create_boutique(
            name or f"Boutique {n}",
            f"Owner {n}",
            f"owner{n}@gmail.com",
            f"07{n:08d}",
            city,
            "secret123",
            db
        )
        if plan is not PlanTier.BASIC:
            await account_store.update_plan(boutique.id, plan.value, db)
        return boutique

    return _make


def image_bytes(fmt="PNG", size=(8, 8), color=(200, 30, 90)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def png_upload(filename="look.png"):
    return ImageUpload(image_bytes(), filename, "image/png")
