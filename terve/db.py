from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
import os
import structlog

from terve import models  # noqa: F401  registers the tables on SQLModel.metadata

logger = structlog.get_logger()

# Prefer DATABASE_URL (e.g., Postgres in production). Fallback to local SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./terve.db")
SEED_CATALOG = os.getenv("SEED_CATALOG", "true").lower() in ("1", "true", "yes")

_engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
    # In-memory databases only live as long as their single connection
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, echo=False, **_engine_kwargs)


def init_db() -> None:
    """
    Initializes the database tables.
    Also loads the starter catalog into an empty database when SEED_CATALOG is on.
    """
    SQLModel.metadata.create_all(engine)

    if SEED_CATALOG:
        from terve.seed import seed_catalog

        with Session(engine) as session:
            added = seed_catalog(session)
        if added:
            logger.info("catalog_seeded", **added)


def get_session():
    with Session(engine) as session:
        yield session
