from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import MetaData
from typing import Optional

from teachease.core.config import settings


class Base(DeclarativeBase):
    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s"
        }
    )


def create_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """Create an async engine, defaulting to the configured database."""
    return create_async_engine(
        url or settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO if echo is None else echo,
        future=True
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False
    )


# Default engine for the configured database
engine = create_engine()


async def init_db(bind: Optional[AsyncEngine] = None):
    # Import models so their tables are registered on Base.metadata
    from teachease.models import kv_entry  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
