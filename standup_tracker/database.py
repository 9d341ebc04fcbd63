from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from .models.stored_object import Base


def create_session_factory(
    database_url: str,
    echo: bool = False
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create an async engine and its session factory"""
    engine_kwargs = {"echo": echo}

    # In-memory SQLite must share one connection across sessions
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(database_url, **engine_kwargs)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
    return engine, session_factory


async def init_models(engine: AsyncEngine) -> None:
    """Create the record store tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
