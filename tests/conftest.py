"""Fixtures de test / Test fixtures.

Base SQLite en memoire par test, sessions partagees via StaticPool.
In-memory SQLite database per test, sessions shared through StaticPool.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import ltipn.models  # noqa: F401
from ltipn.database import Base, get_db
from ltipn.main import app
from ltipn.models.camion import Camion
from ltipn.models.society import Society, SocietyTransp
from ltipn.models.user import User, UserRole
from ltipn.rate_limit import limiter
from ltipn.services.identity import Principal
from ltipn.utils.auth import create_access_token, hash_password

PASSWORD = "secret"
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(engine):
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# --- Fabriques / Factories ---

async def create_user(db, username: str, role: UserRole, society_id: int | None = None, **kwargs) -> User:
    user = User(
        username=username,
        first_name=username.capitalize(),
        last_name="Test",
        email=f"{username}@ltipn.ma",
        hashed_password=_PASSWORD_HASH,
        role=role,
        society_id=society_id,
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db.add(user)
    await db.commit()
    return user


async def create_society(db, name: str = "Atlantic Fish", is_active: bool = True) -> Society:
    society = Society(society_name=name, city="Agadir", is_active=is_active)
    db.add(society)
    await db.commit()
    return society


async def create_carrier(db, name: str = "Trans Sud") -> SocietyTransp:
    carrier = SocietyTransp(society_transp_name=name, city="Agadir", is_active=True)
    db.add(carrier)
    await db.commit()
    return carrier


async def create_camion(db, matricule: str, carrier: SocietyTransp | None = None, is_active: bool = True) -> Camion:
    camion = Camion(
        camion_matricule=matricule,
        driver_name="Driss",
        driver_phone="0600000000",
        camion_type="FRIGO",
        society_transp_id=carrier.id if carrier else None,
        is_active=is_active,
    )
    db.add(camion)
    await db.commit()
    return camion


def as_principal(user: User) -> Principal:
    return Principal(user_id=user.id, username=user.username, role=user.role, society_id=user.society_id)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


# --- Acteurs / Actors ---

@pytest.fixture
async def society(db):
    return await create_society(db)


@pytest.fixture
async def admin(db):
    return await create_user(db, "admin", UserRole.ADMIN)


@pytest.fixture
async def agent(db, society):
    return await create_user(db, "agent", UserRole.BOOKING_AGENT, society_id=society.id)


@pytest.fixture
async def validator(db):
    return await create_user(db, "validator", UserRole.TRANS_RESPO)


@pytest.fixture
async def carrier(db):
    return await create_carrier(db)


@pytest.fixture
async def camion(db, carrier):
    return await create_camion(db, "12345-A-1", carrier)
