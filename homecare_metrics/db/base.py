"""Database engine and session factory for the hosted record store."""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from homecare_metrics.core.config import settings


def create_engine_from_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite URLs skip the pool options it does not support."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,   # Verify connections before use
        pool_recycle=300,     # Recycle connections every 5 minutes
    )


# No connection is opened until the first query
engine = create_engine_from_url(settings.database_url, echo=settings.debug)

# Create session factory
SessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)
