"""Database engine creation and query utilities."""

from typing import Any, Dict, Iterable, List, Optional, Union
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, URL, make_url

import pandas as pd


def make_engine(db_url: Union[str, URL], echo: bool = False, **options: Any) -> Engine:
    """Create SQLAlchemy engine with connection pooling.

    SQLite uses its own pool classes, which do not accept sizing options.
    """
    url = make_url(db_url)
    kwargs: Dict[str, Any] = {"future": True, "echo": echo, "pool_pre_ping": True}
    if url.get_backend_name() != "sqlite":
        kwargs.update(pool_size=20, max_overflow=30, pool_recycle=3600)
    kwargs.update(options)
    return create_engine(url, **kwargs)


def fetch_one(engine: Engine, sql: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Execute SQL and return first row as dict."""
    with engine.connect() as conn:
        row = conn.execute(text(sql), params or {}).mappings().first()
        return dict(row or {})


def fetch_all(engine: Engine, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Execute SQL and return all rows as list of dicts."""
    with engine.connect() as conn:
        rows = conn.execute(text(sql), params or {}).mappings().all()
        return [dict(r) for r in rows]


def execute(engine: Engine, sql: str, params: Optional[Dict[str, Any]] = None) -> int:
    """Execute a statement in its own transaction and return the rowcount."""
    with engine.begin() as conn:
        return conn.execute(text(sql), params or {}).rowcount


def fetch_dataframe(
    engine: Engine,
    sql: str,
    params: Optional[Dict[str, Any]] = None,
    chunksize: Optional[int] = None
) -> Union["pd.DataFrame", Iterable["pd.DataFrame"]]:
    """Execute SQL and return results as pandas DataFrame.

    Args:
        engine: SQLAlchemy engine
        sql: SQL query string
        params: Query parameters
        chunksize: If specified, return iterator of DataFrames

    Returns:
        DataFrame or iterator of DataFrames
    """
    return pd.read_sql_query(text(sql), engine, params=params, chunksize=chunksize)
