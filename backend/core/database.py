"""
Async SQLModel engine and session maker.
"""

from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.config import settings


def make_engine(database_url: str | None = None, *, pooled: bool = True) -> AsyncEngine:
    """
    Celery tasks call ``asyncio.run`` once per beat, so their engine must be
    unpooled: pooled connections stay bound to a loop that is already closed.
    """
    url = database_url or settings.DATABASE_URL
    kwargs = {"pool_pre_ping": True} if pooled else {"poolclass": NullPool}
    return create_async_engine(url, echo=settings.ENV == "development", **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine()
async_session_factory = make_session_factory(engine)


async def create_tables(bind: AsyncEngine) -> None:
    import models  # noqa: F401  (registers every table on SQLModel.metadata)

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def init_db() -> None:
    """
    Called once at startup (**dev only**) to create tables.
    In production you should run migrations instead.
    """
    await create_tables(engine)


async def get_session() -> AsyncSession:  # FastAPI dependency
    async with async_session_factory() as session:
        yield session
