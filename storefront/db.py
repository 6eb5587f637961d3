# storefront/db.py
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from collections.abc import AsyncGenerator

from .config import clean_env

DATABASE_URL = clean_env("DATABASE_URL", "sqlite+aiosqlite:///./storefront.db")

def clean_database_url(url: str, drop_keys=("sslmode", "channel_binding")) -> str:
    # asyncpg takes neither libpq option; sqlite URLs pass through untouched
    if url.startswith("sqlite"):
        return url
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    parsed = make_url(url).difference_update_query(list(drop_keys))
    return parsed.render_as_string(hide_password=False)

CLEAN_DATABASE_URL = clean_database_url(DATABASE_URL)

ENGINE_KWARGS = {"echo": False, "pool_pre_ping": True}
# sqlite pools reject sizing arguments
if not CLEAN_DATABASE_URL.startswith("sqlite"):
    ENGINE_KWARGS.update(pool_recycle=1800, pool_size=5, max_overflow=10)

engine = create_async_engine(CLEAN_DATABASE_URL, **ENGINE_KWARGS)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)

class Base(DeclarativeBase):
    pass

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
