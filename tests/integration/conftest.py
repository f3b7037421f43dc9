import os
import shutil
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clubhouse.db import models

ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(scope="session")
def _test_postgres():
    if os.getenv("SKIP_DOCKER_TESTS") == "1":
        pytest.skip("SKIP_DOCKER_TESTS=1")
    if not shutil.which("docker"):
        pytest.skip("Docker CLI is not available; skipping PostgreSQL integration tests")

    from testcontainers.postgres import PostgresContainer

    image = os.getenv("TEST_POSTGRES_IMAGE", "postgres:16-alpine")
    with PostgresContainer(image, driver=None) as pg:
        url = pg.get_connection_url()
        previous = os.environ.get("TEST_DATABASE_URL")
        os.environ["TEST_DATABASE_URL"] = url
        yield url
        if previous is None:
            os.environ.pop("TEST_DATABASE_URL", None)
        else:
            os.environ["TEST_DATABASE_URL"] = previous


@pytest.fixture(scope="session")
def _migrated_db(_test_postgres):
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", _test_postgres)
    command.upgrade(cfg, "head")
    return _test_postgres


@pytest.fixture(scope="session")
def pg_engine(_migrated_db):
    engine = create_engine(_migrated_db, future=True)
    yield engine
    engine.dispose()


@pytest.fixture
def pg_session(pg_engine):
    SessionLocal = sessionmaker(bind=pg_engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Owner connection, not subject to row level security
        with pg_engine.begin() as conn:
            for table in reversed(models.Base.metadata.sorted_tables):
                if table.name != "settings":
                    conn.execute(table.delete())
