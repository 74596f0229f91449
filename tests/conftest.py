import os

# Settings are read at import time, so point them at test values first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["PRESENCE_BACKEND"] = "memory"
os.environ["SECRET_KEY"] = "test-secret"
os.environ.pop("SENDGRID_API_KEY", None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from app.core.security import create_access_token
from app.db.models import Specialist, User
from app.db.session import get_session
from app.main import app
from app.services.storage_service import StorageService, get_storage_service

class FakeS3:
    """Stands in for the boto3 client; records uploads in memory."""

    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[Key] = {"bucket": Bucket, "body": Body, "content_type": ContentType}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://{Params['Bucket']}.s3.test/{Params['Key']}?expires={ExpiresIn}"

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session

@pytest.fixture
def s3():
    return FakeS3()

@pytest.fixture
def storage(s3):
    return StorageService(client=s3, bucket="test-bucket")

@pytest.fixture
async def client(session_factory, storage):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_storage_service] = lambda: storage
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

@pytest.fixture
def auth_headers():
    def build(user_id, role="user"):
        token = create_access_token({"sub": str(user_id), "role": role})
        return {"Authorization": f"Bearer {token}"}
    return build

@pytest.fixture
def make_user(session_factory):
    async def create(name="Jane Doe", email="jane@example.com", **fields):
        async with session_factory() as session:
            user = User(name=name, email=email, **fields)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user
    return create

@pytest.fixture
def make_specialist(session_factory):
    async def create(first_name="Amina", last_name="Njoya", email="amina@example.com", **fields):
        async with session_factory() as session:
            specialist = Specialist(
                first_name=first_name,
                last_name=last_name,
                email=email,
                telephone=fields.pop("telephone", "+237600000000"),
                **fields,
            )
            session.add(specialist)
            await session.commit()
            await session.refresh(specialist)
            return specialist
    return create
