import pytest_asyncio
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.membership_repository import MembershipRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import init_models, make_engine
from tests.fixtures.json_loader import TestDataLoader


@pytest_asyncio.fixture
def test_data():
    return TestDataLoader()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine, test_data):
    Session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with Session() as session:
        session.add_all(test_data.memberships())
        await session.commit()
    return Session


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def repository(db_session):
    return MembershipRepository(db_session)


@pytest_asyncio.fixture
async def uow(db_session):
    async with SqlAlchemyUnitOfWork(db_session) as uow:
        yield uow
