import asyncio
from datetime import date, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from caisse.database import get_db
from caisse.main import app
from caisse.models import Base, Depense, Recette, Rubrique
from caisse.models.user import UserRole
from caisse.schemas.user import UserCreate
from caisse.services import auth_service
from caisse.utils.cache import TTLCache, get_ledger_cache

ADMIN_PASSWORD = "admin@123"
USER_PASSWORD = "secret123"


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'caisse-test.db'}",
        poolclass=NullPool,
    )

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    run(_create())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    run(engine.dispose())


@pytest.fixture
def in_session(session_factory):
    """Run ``fn(db)`` in a fresh committed session and return its result."""

    def _run(fn):
        async def _go():
            async with session_factory() as db:
                result = await fn(db)
                await db.commit()
                return result

        return run(_go())

    return _run


@pytest.fixture
def cache():
    return TTLCache()


@pytest.fixture
def users(in_session):
    """Seeded admin plus one instructeur and one observateur."""

    async def _seed(db):
        admin = await auth_service.seed_admin(db)
        instructeur = await auth_service.create_user(
            db, UserCreate(username="Lumuba", password=USER_PASSWORD, role=UserRole.INSTRUCTEUR)
        )
        observateur = await auth_service.create_user(
            db, UserCreate(username="guest", password=USER_PASSWORD)
        )
        return {"admin": admin, "instructeur": instructeur, "observateur": observateur}

    return in_session(_seed)


@pytest.fixture
def client(session_factory, cache):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger_cache] = lambda: cache
    # No context manager: the lifespan would touch the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client: TestClient, username: str, password: str):
    return client.post(
        "/api/v1/auth/login", json={"username": username, "password": password}
    )


@pytest.fixture
def admin_client(client, users):
    assert login(client, "admin", ADMIN_PASSWORD).status_code == 200
    return client


@pytest.fixture
def writer_client(client, users):
    assert login(client, "lumuba", USER_PASSWORD).status_code == 200
    return client


@pytest.fixture
def reader_client(client, users):
    assert login(client, "guest", USER_PASSWORD).status_code == 200
    return client


# --- Plain row builders for the pure report functions ---


def make_recette(seq, day, amount, motive="Versement", provenance="Bureau Kasumbalesa"):
    return Recette(
        id=seq,
        sequence_number=seq,
        transaction_date=date.fromisoformat(day),
        transaction_time=time(9, 0),
        motive=motive,
        provenance=provenance,
        amount=Decimal(str(amount)),
    )


def make_depense(seq, day, amount, rubrique=None, motive="Achat", beneficiary="Fournisseur"):
    return Depense(
        id=seq,
        sequence_number=seq,
        transaction_date=date.fromisoformat(day),
        transaction_time=time(10, 0),
        motive=motive,
        beneficiary=beneficiary,
        amount=Decimal(str(amount)),
        rubrique=rubrique,
    )


def make_rubrique(code, libelle):
    return Rubrique(code=code, libelle=libelle)
