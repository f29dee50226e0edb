"""Database connection and session management."""
from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from sessionlens.config import settings

if settings.database_url.startswith("sqlite"):
    # In-memory SQLite must share one connection or every checkout sees an empty database
    in_memory = settings.database_url in ("sqlite://", "sqlite:///:memory:")
    engine = create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool if in_memory else None,
        echo=False,
    )
elif "pooler.supabase.com" in settings.database_url or settings.database_url.endswith(":6543"):
    # Pooler connections must not be pooled again on our side
    engine = create_engine(
        settings.database_url,
        poolclass=NullPool,
        echo=settings.environment == "development",
    )
else:
    engine = create_engine(
        settings.database_url,
        pool_size=20,
        max_overflow=10,
        echo=settings.environment == "development",
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
