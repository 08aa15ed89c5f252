# backend/core/database.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

settings = get_settings()

DATABASE_URL = settings.DATABASE_URL

# Create engine with optional echo for development
engine_kwargs = {
    "echo": settings.LOG_SQL_QUERIES,
    "pool_pre_ping": True,
}

if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in {"sqlite://", "sqlite:///:memory:"}:
        engine_kwargs["poolclass"] = StaticPool
else:
    engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
    engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW

engine = create_engine(
    DATABASE_URL,
    **engine_kwargs,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables registered on ``Base``."""
    # Model modules register themselves on import
    from modules.settings.models import workflow_settings_models  # noqa: F401
    from modules.menu.models import menu_models  # noqa: F401
    from modules.tables.models import table_models  # noqa: F401
    from modules.orders.models import order_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
