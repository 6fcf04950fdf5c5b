import logging
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    SQLite drivers never emit BEGIN themselves, which breaks SAVEPOINT
    (used by MembershipRepository.create). For SQLite the driver's own
    transaction handling is switched off and SQLAlchemy emits BEGIN.
    """
    engine = create_async_engine(url, echo=echo, future=True)

    if make_url(url).get_backend_name() == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


engine = make_engine(ApplicationConfig.DB_URI, echo=ApplicationConfig.DB_ECHO)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


def configure_logging(level=None, fmt=None) -> None:
    """Apply LOG_LEVEL / LOG_FORMAT to the root logger"""
    level = level or ApplicationConfig.LOG_LEVEL
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(
        level=level, format=fmt or ApplicationConfig.LOG_FORMAT, force=True
    )


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create missing tables. Real deployments provision the schema themselves."""
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)
