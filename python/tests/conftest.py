"""Shared fixtures for the processor test suite.

Uses an in-memory SQLite database with StaticPool so every session shares the same
connection (committed data is visible across sessions). The `per_schema` placeholder
is translated to no schema, since SQLite has none.
"""

import pytest
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from processors.auctionhouse import models  # noqa: F401 registers tables on Base
from processors.auctionhouse.materializer import ListingMaterializer
from processors.auctionhouse.store import ListingStore
from utils.models.general_models import Base
from utils.session import init_engine

from event_builders import MARKETPLACE

TEST_PROCESSOR_NAME = "test_auctionhouse_processor"


@pytest.fixture()
def engine():
    engine = init_engine(
        "sqlite://",
        None,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture()
def file_engine(tmp_path):
    """File backed SQLite with a connection per thread, for concurrent writers."""
    engine = init_engine(
        f"sqlite:///{tmp_path / 'auctionhouse.db'}",
        None,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    # Writers take the database lock up front and queue on the busy timeout
    @event.listens_for(engine, "begin")
    def begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def materializer():
    return ListingMaterializer(MARKETPLACE)


@pytest.fixture()
def store(engine, materializer):
    return ListingStore(materializer, TEST_PROCESSOR_NAME)
