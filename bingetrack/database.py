from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from bingetrack.config import settings


class Base(DeclarativeBase):
    """Declarative base for the watch log, onboarding and settings tables."""
    pass


engine = create_async_engine(settings.database_url, echo=False)

# Shared by WatchLogStore and the settings loader; each operation opens its own session
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def init_db():
    """Create the watch log, onboarding and settings tables if missing."""
    from bingetrack.models import watched_episode, onboarded_show, settings  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
