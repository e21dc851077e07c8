"""Shared test fixtures — async SQLite DB, in-memory providers, test client."""

import secrets
import uuid
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, select

# Import all models so metadata is populated
import app.models  # noqa: F401
from app.api.deps import get_asset_store, get_identity_gateway
from app.core.config import Settings
from app.core.database import get_session_factory
from app.core.errors import AssetUploadFailed, EmailTaken
from app.main import app
from app.services.donor_store import DonorStore
from app.services.identity import Identity
from app.services.onboarding import OnboardingSaga
from app.services.tenant_store import TenantStore


class FakeIdentityGateway:
    """In-memory stand-in for the identity provider."""

    def __init__(self) -> None:
        self.identities: dict[uuid.UUID, Identity] = {}
        self.tokens: dict[str, uuid.UUID] = {}
        self.deleted: list[uuid.UUID] = []
        self.fail_create: Exception | None = None
        self.fail_delete: Exception | None = None

    async def create_identity(self, email: str, password: str) -> Identity:
        if self.fail_create is not None:
            raise self.fail_create
        if any(i.email == email for i in self.identities.values()):
            raise EmailTaken()
        identity = Identity(id=uuid.uuid4(), email=email)
        self.identities[identity.id] = identity
        return identity

    async def delete_identity(self, identity_id: uuid.UUID) -> None:
        if self.fail_delete is not None:
            raise self.fail_delete
        self.identities.pop(identity_id, None)
        self.deleted.append(identity_id)

    async def verify(self, token: str) -> Identity | None:
        identity_id = self.tokens.get(token)
        return self.identities.get(identity_id) if identity_id else None

    def add_identity(self, email: str) -> Identity:
        identity = Identity(id=uuid.uuid4(), email=email)
        self.identities[identity.id] = identity
        return identity

    def issue_token(self, identity: Identity) -> str:
        token = secrets.token_urlsafe(16)
        self.tokens[token] = identity.id
        return token

    def token_for_email(self, email: str) -> str:
        identity = next(i for i in self.identities.values() if i.email == email)
        return self.issue_token(identity)


class FakeAssetStore:
    """In-memory stand-in for object storage."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_upload = False

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_upload:
            raise AssetUploadFailed(retryable=True)
        self.objects[path] = (data, content_type)
        return path

    def public_url(self, path: str) -> str:
        return f"https://storage.test/org-logos/{path}"


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def settings() -> Settings:
    return Settings(store_timeout_seconds=5.0)


@pytest.fixture
def identity() -> FakeIdentityGateway:
    return FakeIdentityGateway()


@pytest.fixture
def assets() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture
def tenant_store(session_factory) -> TenantStore:
    return TenantStore(session_factory)


@pytest.fixture
def donor_store(session_factory) -> DonorStore:
    return DonorStore(session_factory)


@pytest.fixture
def saga(identity, tenant_store, assets, settings) -> OnboardingSaga:
    return OnboardingSaga(identity, tenant_store, assets, settings=settings)


@pytest.fixture
async def client(session_factory, identity, assets) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with store and provider overrides."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_identity_gateway] = lambda: identity
    app.dependency_overrides[get_asset_store] = lambda: assets

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def count_rows(session_factory):
    """Return an async helper counting the rows of a table."""

    async def _count(model) -> int:
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    return _count
