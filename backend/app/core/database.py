"""
Travel desk settlement - database setup
SQLAlchemy async engine/session, declarative Base and the unit-of-work helper.
"""

from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


T = TypeVar("T")

# Async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # SQL logging only in DEBUG
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """SQLAlchemy Base model"""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped database session.
    Used through FastAPI Depends(); commits on success, rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def run_in_transaction(
    db: AsyncSession,
    work: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """
    Run ``work`` as one unit of work.

    A SAVEPOINT is opened around the callable: every write it performs is
    kept if it returns, and all of them are rolled back if it raises. The
    exception is re-raised to the caller.
    """
    async with db.begin_nested():
        result = await work(db)
        await db.flush()
    return result


async def init_db() -> None:
    """Create tables (development only)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
