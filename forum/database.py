from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from forum.config import settings
from forum.middleware import install_query_counter


def _connect_args(url: str) -> dict:
    # asyncpg enforces a per-statement timeout; other drivers take no such option.
    if url.startswith("postgresql+asyncpg"):
        return {"command_timeout": settings.DB_COMMAND_TIMEOUT}
    return {}


# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def atomic(session: AsyncSession):
    """
    Commit everything written inside the block, or nothing.

    GraphQL resolvers report their exceptions inside the response body
    instead of letting them reach ``get_db``, so multi-row writes cannot
    rely on the request-level rollback and must commit on their own.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
