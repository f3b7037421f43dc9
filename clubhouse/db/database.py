"""
Database engine and session management.

Builds the SQLAlchemy engine from environment configuration with a test
fallback (SQLite in-memory) and exposes the FastAPI session dependency.
"""
import os
import sys
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def _get_database_url() -> str:
    # If DATABASE_URL is explicitly set, use it
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")

    # Otherwise, generate from individual components (all must be set)
    components = {
        "POSTGRES_USER": os.getenv("POSTGRES_USER"),
        "POSTGRES_PASSWORD": os.getenv("POSTGRES_PASSWORD"),
        "POSTGRES_HOST": os.getenv("POSTGRES_HOST"),
        "POSTGRES_PORT": os.getenv("POSTGRES_PORT"),
        "POSTGRES_DB": os.getenv("POSTGRES_DB"),
    }
    missing = [name for name, value in components.items() if not value]
    if missing:
        raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")

    return (
        f"postgresql://{components['POSTGRES_USER']}:{components['POSTGRES_PASSWORD']}"
        f"@{components['POSTGRES_HOST']}:{components['POSTGRES_PORT']}/{components['POSTGRES_DB']}"
    )


def _is_pytest_runtime() -> bool:
    """Best-effort detection that we're executing under pytest.

    ``PYTEST_CURRENT_TEST`` is only set while a test runs, so module import
    during collection relies on pytest already being in ``sys.modules``.
    ``PYTEST_RUNNING=1`` forces the behaviour explicitly.
    """
    if os.getenv("PYTEST_RUNNING") == "1":
        return True
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    return "pytest" in sys.modules


# Test override strategy:
# 1. CLUBHOUSE_TEST_DB wins when set.
# 2. TEST_DATABASE_URL (integration tests against a Postgres container) is never replaced by sqlite.
# 3. Under pytest with neither set, use an in-memory sqlite database shared through StaticPool.
explicit_test_db = os.getenv("CLUBHOUSE_TEST_DB")
explicit_integration_db = os.getenv("TEST_DATABASE_URL")

_engine_kwargs: dict = {}
if explicit_test_db:
    DATABASE_URL = explicit_test_db
    if DATABASE_URL.startswith("sqlite"):
        _engine_kwargs = {"connect_args": {"check_same_thread": False}}
elif explicit_integration_db:
    DATABASE_URL = explicit_integration_db
elif _is_pytest_runtime():
    DATABASE_URL = "sqlite+pysqlite:///:memory:"
    _engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
else:
    DATABASE_URL = _get_database_url()

engine = create_engine(DATABASE_URL, **_engine_kwargs)

# Objects handed back by services stay readable after the RLS transaction commits.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_sqlite_schema(bind=None) -> None:
    """Create all tables on a sqlite engine (tests and local experiments)."""
    target = bind or engine
    if not str(target.url).startswith("sqlite"):
        return
    from clubhouse.db import models  # local import to avoid a cycle at module load

    models.Base.metadata.create_all(bind=target)


# Each new connection of the in-memory database reuses the StaticPool
# connection, so the schema must exist before the first request.
if DATABASE_URL.startswith("sqlite") and ":memory:" in DATABASE_URL:
    init_sqlite_schema()


def get_db():
    """Dependency to get a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
