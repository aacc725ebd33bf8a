import pytest
from unittest.mock import Mock
from sqlalchemy import text
from randomwalk.config import Properties
from randomwalk.db import make_engine
from randomwalk.state import State


@pytest.fixture
def db_path(tmp_path):
    """Path of a file-backed SQLite database with two empty tables."""
    path = tmp_path / "walk.db"
    engine = make_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE nodes (id INTEGER, name TEXT)"))
        conn.execute(text("CREATE TABLE edges (src INTEGER, dst INTEGER, weight REAL)"))
    engine.dispose()
    return path


@pytest.fixture
def sqlite_props(db_path):
    """Complete property set pointing at the SQLite database."""
    return Properties(
        {
            "INSTANCE": str(db_path),
            "ZOOKEEPERS": "localhost:2181",
            "DRIVER": "sqlite",
            "USERNAME": "root",
            "PASSWORD": "secret",
            "MAX_MEM": "1000000",
            "MAX_LATENCY": "60000",
            "NUM_THREADS": "2",
        }
    )


@pytest.fixture
def state(sqlite_props):
    """State bound to the SQLite database; closed after the test."""
    st = State(sqlite_props)
    yield st
    st.close()


@pytest.fixture
def mock_connector():
    """Connector double whose writer factory returns a fresh Mock."""
    connector = Mock()
    connector.create_multi_table_batch_writer.side_effect = lambda config: Mock(config=config)
    return connector


@pytest.fixture
def row_count(db_path):
    """Function counting rows of a table in the SQLite database."""

    def _count(table):
        engine = make_engine(f"sqlite:///{db_path}")
        try:
            with engine.connect() as conn:
                return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
        finally:
            engine.dispose()

    return _count
