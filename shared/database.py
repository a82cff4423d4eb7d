"""Async SQLAlchemy plumbing shared by the repositories and migrations."""
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def get_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, echo=echo)


def get_session(engine: AsyncEngine) -> async_sessionmaker:
    # rows stay readable after commit; repositories convert them to schemas then
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create any missing tables. Alembic owns schema changes after that."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
