from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from dailyreminder.core.config import settings

# SQLite needs cross-thread access disabled for the session factory
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    pool_pre_ping=True,    # Validate connections before use
    echo=settings.DATABASE_ECHO,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(bind=None) -> None:
    """Create all tables registered on the declarative base."""
    from dailyreminder.db.base import Base
    from dailyreminder.reminders import models  # noqa: F401  registers the reminders table

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
