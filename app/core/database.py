from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from app.core.config import settings


def pool_options(url: str) -> dict:
    # SQLite engines pick their own pool class and reject sizing arguments
    if url.startswith("sqlite"):
        return {}
    options = {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": 0,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }
    if "+asyncpg" in url:
        options["connect_args"] = {"timeout": settings.DB_CONNECT_TIMEOUT}
    return options


engine = create_async_engine(
    settings.DATABASE_URL, echo=settings.SQL_ECHO, **pool_options(settings.DATABASE_URL)
)

# Sessions for the entity tools; expire_on_commit off so records stay readable after close
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


# All the models are "stored" in the Base class will be processed by the Engine
class Base(DeclarativeBase):
    pass
