"""Fixtures de test / Test fixtures (SQLite temporaire, stockage temporaire, profils, client HTTP)."""

import os
import shutil
import tempfile

_TMP = tempfile.mkdtemp(prefix="dk_automotive_tests_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/test.db"
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "storage")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEBUG"] = "true"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

import dk_automotive.models  # noqa: E402,F401
from dk_automotive.config import settings  # noqa: E402
from dk_automotive.database import Base, async_session, engine  # noqa: E402
from dk_automotive.main import app  # noqa: E402
from dk_automotive.models.user import Profile, UserRole  # noqa: E402
from dk_automotive.services.blob_store import BlobStore  # noqa: E402
from dk_automotive.utils.auth import create_access_token, hash_password  # noqa: E402
from dk_automotive.utils.seed import seed_pricing  # noqa: E402

MISSION_PAYLOAD = {
    "vehicle_category": "citadine",
    "pickup_address": {"street": "1 rue de Rivoli", "city": "Paris", "postal_code": "75001"},
    "delivery_address": {"street": "2 quai Saint-Antoine", "city": "Lyon", "postal_code": "69002"},
    "distance_km": "100",
    "vehicle_make": "Renault",
    "vehicle_model": "Clio",
    "vehicle_registration": "AB-123-CD",
    "contact_pickup_name": "Jean Dupont",
    "contact_delivery_name": "Marie Martin",
}

PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


@pytest.fixture(autouse=True)
async def schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    shutil.rmtree(settings.STORAGE_DIR, ignore_errors=True)


@pytest.fixture
async def db():
    async with async_session() as session:
        yield session


@pytest.fixture
async def pricing(db):
    """TVA 20 % et grille de départ (0-150 km forfait 50 € HT) / 20% VAT and starter grid."""
    await seed_pricing(db)
    await db.commit()


@pytest.fixture
def make_profile(db):
    counter = {"n": 0}

    async def _make(role: UserRole, email: str | None = None, **fields) -> Profile:
        counter["n"] += 1
        profile = Profile(
            email=email or f"{role.value}{counter['n']}@example.com",
            hashed_password=hash_password("secret123"),
            full_name=fields.pop("full_name", f"{role.value.title()} {counter['n']}"),
            role=role,
            profile_completed=True,
            active=True,
            **fields,
        )
        db.add(profile)
        await db.commit()
        return profile

    return _make


@pytest.fixture
async def admin(make_profile):
    return await make_profile(UserRole.ADMIN)


@pytest.fixture
async def client_user(make_profile):
    return await make_profile(UserRole.CLIENT)


@pytest.fixture
async def driver(make_profile):
    return await make_profile(UserRole.CHAUFFEUR)


def headers_for(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(profile.id, profile.role.value)}"}


@pytest.fixture
def store():
    return BlobStore(settings.STORAGE_DIR)


@pytest.fixture
async def http():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
