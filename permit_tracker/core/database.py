"""
Database engine, session factory and FastAPI session dependency
"""
from typing import AsyncIterator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from starlette.requests import HTTPConnection
from permit_tracker.core.config import settings

Base = declarative_base()


def build_engine(database_url: str):
    """Create an async engine for the given URL"""
    return create_async_engine(database_url, future=True)


def build_session_factory(bind) -> async_sessionmaker:
    """Session factory shared by HTTP routes and the collaboration hub"""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)
async_session = build_session_factory(engine)


async def init_models(bind) -> None:
    """Create all tables registered on Base.metadata"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(connection: HTTPConnection) -> AsyncIterator[AsyncSession]:
    """
    Yield a session bound to the application's session factory.

    Services commit explicitly so that broadcasts can follow a successful
    commit; anything left uncommitted is rolled back on close.
    """
    session_factory = getattr(connection.app.state, "session_factory", async_session)
    async with session_factory() as session:
        yield session
