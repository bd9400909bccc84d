"""Shared pytest configuration.

PostgreSQL-backed tests carry the ``e2e_suite`` marker and run only with
RUN_E2E_TESTS=1 (or --run-e2e-tests) and UPSERT_TEST_DATABASE_URI pointing
at a server where the test user may create databases. Every such test
works in a freshly created database that is dropped afterwards.
"""

from __future__ import annotations

import os
import re
import uuid
from contextlib import contextmanager
from typing import Iterator

import psycopg2
import pytest
import sqlalchemy as sa
from psycopg2 import sql
from sqlalchemy.engine.url import URL, make_url

from upsert_all.config.settings import pin_psycopg2_driver

E2E_MARK = "e2e_suite"
TEST_DATABASE_ENV = "UPSERT_TEST_DATABASE_URI"
SAFE_DATABASE_NAME = re.compile(r"test|tmp|dev|local|sandbox", re.IGNORECASE)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e-tests",
        action="store_true",
        dest="run_e2e_tests",
        default=os.getenv("RUN_E2E_TESTS") == "1",
        help="Run the PostgreSQL end-to-end suite (same as RUN_E2E_TESTS=1).",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("run_e2e_tests"):
        return
    skip = pytest.mark.skip(reason="PostgreSQL suite disabled; pass --run-e2e-tests")
    for item in items:
        if E2E_MARK in item.keywords:
            item.add_marker(skip)


def _validate_test_database(url: URL) -> None:
    """Refuse to drop a database whose name does not look disposable.

    UPSERT_SKIP_DB_VALIDATION=1 disables the check.
    """
    if os.getenv("UPSERT_SKIP_DB_VALIDATION") == "1":
        return
    if not url.database or not SAFE_DATABASE_NAME.search(url.database):
        raise RuntimeError(
            f"Refusing to drop non-test database {url.database!r}; its name must "
            "contain test, tmp, dev, local or sandbox"
        )


def _base_url() -> URL:
    raw = os.environ.get(TEST_DATABASE_ENV, "")
    if not raw.startswith("postgres"):
        pytest.skip(f"{TEST_DATABASE_ENV} must point at PostgreSQL")
    return make_url(pin_psycopg2_driver(raw))


def _libpq_dsn(url: URL) -> str:
    return url.set(drivername="postgresql").render_as_string(hide_password=False)


@contextmanager
def _admin_cursor(url: URL) -> Iterator:
    conn = psycopg2.connect(_libpq_dsn(url.set(database="postgres")))
    conn.autocommit = True
    try:
        with conn.cursor() as cursor:
            yield cursor
    finally:
        conn.close()


@pytest.fixture
def postgres_url() -> Iterator[URL]:
    """URL of a throwaway database created for this test."""
    base = _base_url()
    url = base.set(database=f"{base.database or 'postgres'}_test_{uuid.uuid4().hex[:8]}")
    with _admin_cursor(base) as cursor:
        cursor.execute(
            sql.SQL("CREATE DATABASE {} TEMPLATE template0").format(
                sql.Identifier(url.database)
            )
        )
    try:
        yield url
    finally:
        _validate_test_database(url)
        with _admin_cursor(base) as cursor:
            cursor.execute(
                "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                "WHERE datname = %s AND pid <> pg_backend_pid()",
                (url.database,),
            )
            cursor.execute(
                sql.SQL("DROP DATABASE IF EXISTS {}").format(sql.Identifier(url.database))
            )


@pytest.fixture
def postgres_engine(postgres_url: URL) -> Iterator[sa.engine.Engine]:
    engine = sa.create_engine(postgres_url)
    try:
        yield engine
    finally:
        engine.dispose()
