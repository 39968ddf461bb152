import os
from pathlib import Path

import pytest
from alembic.config import Config
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from testcontainers.postgres import PostgresContainer

SERVICE_ROOT = Path(__file__).resolve().parents[2]


def pytest_collection_modifyitems(config, items):
    if os.getenv("RUN_E2E") == "1":
        return
    skip = pytest.mark.skip(reason="set RUN_E2E=1 to run tests against a Postgres container")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def postgres_url():
    image = os.getenv("E2E_POSTGRES_IMAGE", "postgres:16-alpine")
    with PostgresContainer(image, driver="psycopg2") as pg:
        yield pg.get_connection_url()


@pytest.fixture
def alembic_config(postgres_url, monkeypatch):
    # migrations/env.py prefers TEST_DATABASE_URL over everything else
    monkeypatch.setenv("TEST_DATABASE_URL", postgres_url)
    cfg = Config(str(SERVICE_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(SERVICE_ROOT / "migrations"))
    return cfg


@pytest.fixture
def pg_engine(postgres_url):
    engine = create_engine(postgres_url, pool_pre_ping=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def pg_session(pg_engine):
    session = sessionmaker(bind=pg_engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
