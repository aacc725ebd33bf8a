"""Buffered writer that inserts rows into many tables from a thread pool."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from sqlalchemy import MetaData, Table, insert
from sqlalchemy.engine import Engine

from randomwalk.exceptions import MutationsRejectedError, ResourceClosedError
from randomwalk.logging_config import get_logger

logger = get_logger("writer")

DEFAULT_MAX_MEMORY = 50 * 1024 * 1024
DEFAULT_MAX_LATENCY_MS = 120_000
DEFAULT_MAX_WRITE_THREADS = 3

# Per-row bookkeeping overhead added to the payload estimate
ROW_OVERHEAD_BYTES = 64


@dataclass(frozen=True)
class BatchWriterConfig:
    """Tuning for a MultiTableBatchWriter."""

    max_memory: int = DEFAULT_MAX_MEMORY
    max_latency_ms: int = DEFAULT_MAX_LATENCY_MS
    max_write_threads: int = DEFAULT_MAX_WRITE_THREADS

    def __post_init__(self):
        if self.max_memory <= 0:
            raise ValueError(f"max_memory must be positive, got {self.max_memory}")
        if self.max_latency_ms <= 0:
            raise ValueError(f"max_latency_ms must be positive, got {self.max_latency_ms}")
        if self.max_write_threads <= 0:
            raise ValueError(
                f"max_write_threads must be positive, got {self.max_write_threads}"
            )


def estimate_row_size(row: Mapping[str, Any]) -> int:
    size = ROW_OVERHEAD_BYTES
    for key, value in row.items():
        size += len(key)
        if isinstance(value, (bytes, bytearray)):
            size += len(value)
        elif value is not None:
            size += len(str(value))
    return size


class BatchWriter:
    """Per-table view of a MultiTableBatchWriter."""

    def __init__(self, parent: "MultiTableBatchWriter", table: str):
        self._parent = parent
        self.table = table

    def add_mutation(self, row: Mapping[str, Any]) -> None:
        self._parent._add(self.table, [dict(row)])

    def add_mutations(self, rows: Iterable[Mapping[str, Any]]) -> None:
        self._parent._add(self.table, [dict(r) for r in rows])

    def add_dataframe(self, df: "pd.DataFrame") -> None:
        """Queue every row of a DataFrame; NaN becomes NULL."""
        records = df.astype(object).where(pd.notna(df), None).to_dict("records")
        self._parent._add(self.table, records)

    def flush(self) -> None:
        self._parent.flush()

    def close(self) -> None:
        """Flush pending rows; the shared writer stays open."""
        self._parent.flush()


class MultiTableBatchWriter:
    """Buffers inserts for many tables and writes them in the background.

    Rows are written when the buffered size reaches max_memory (in the
    caller's thread), every max_latency_ms (from a daemon thread), and on
    flush() or close(). Failures are sticky: once a write has failed, every
    later call raises MutationsRejectedError.
    """

    def __init__(self, engine: Engine, config: Optional[BatchWriterConfig] = None):
        self.engine = engine
        self.config = config or BatchWriterConfig()
        self._lock = threading.Lock()
        # Serializes flushes so rows for one table are written in order
        self._flush_lock = threading.Lock()
        self._buffers: Dict[str, List[Dict[str, Any]]] = {}
        self._buffered_bytes = 0
        self._writers: Dict[str, BatchWriter] = {}
        self._tables: Dict[str, Table] = {}
        self._metadata = MetaData()
        self._reflect_lock = threading.Lock()
        self._failures: List[Tuple[str, BaseException]] = []
        self._closed = False
        self._stop = threading.Event()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_write_threads,
            thread_name_prefix="batch-writer",
        )
        self._flusher = threading.Thread(
            target=self._flush_periodically, name="batch-writer-latency", daemon=True
        )
        self._flusher.start()
        logger.debug(
            "Started multi-table batch writer",
            extra={
                "max_memory": self.config.max_memory,
                "max_latency_ms": self.config.max_latency_ms,
                "max_write_threads": self.config.max_write_threads,
            },
        )

    @property
    def buffered_bytes(self) -> int:
        return self._buffered_bytes

    def is_closed(self) -> bool:
        return self._closed

    def get_batch_writer(self, table: str) -> BatchWriter:
        with self._lock:
            self._check_open()
            writer = self._writers.get(table)
            if writer is None:
                writer = self._writers[table] = BatchWriter(self, table)
            return writer

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceClosedError("Batch writer has been closed")
        if self._failures:
            raise MutationsRejectedError(self._failures)

    def _add(self, table: str, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        size = sum(estimate_row_size(r) for r in rows)
        with self._lock:
            self._check_open()
            self._buffers.setdefault(table, []).extend(rows)
            self._buffered_bytes += size
            full = self._buffered_bytes >= self.config.max_memory
        if full:
            logger.debug(
                f"Buffer reached {self.config.max_memory} bytes, flushing",
                extra={"table": table},
            )
            self.flush()

    def flush(self) -> None:
        """Write every buffered row and wait for completion."""
        with self._flush_lock:
            with self._lock:
                if self._failures:
                    raise MutationsRejectedError(self._failures)
                buffers, self._buffers = self._buffers, {}
                self._buffered_bytes = 0
            if not buffers:
                return

            futures = {
                table: self._executor.submit(self._write, table, rows)
                for table, rows in buffers.items()
            }
            failures = []
            for table, future in futures.items():
                error = future.exception()
                if error is not None:
                    logger.error(
                        f"Write to table {table} failed: {error}",
                        extra={"table": table, "rows": len(buffers[table]), "error": str(error)},
                    )
                    failures.append((table, error))

            if failures:
                with self._lock:
                    self._failures.extend(failures)
                    raise MutationsRejectedError(self._failures)

            logger.debug(
                f"Flushed {sum(len(r) for r in buffers.values())} rows to {len(buffers)} tables"
            )

    def _table(self, name: str) -> Table:
        # MetaData is not thread-safe; reflect one table at a time
        with self._reflect_lock:
            table = self._tables.get(name)
            if table is None:
                schema, _, table_name = name.rpartition(".")
                table = self._tables[name] = Table(
                    table_name, self._metadata, schema=schema or None, autoload_with=self.engine
                )
            return table

    def _write(self, table: str, rows: List[Dict[str, Any]]) -> int:
        target = self._table(table)
        # executemany needs one key set per statement
        groups: Dict[Tuple[str, ...], List[Dict[str, Any]]] = {}
        for row in rows:
            groups.setdefault(tuple(sorted(row)), []).append(row)
        with self.engine.begin() as conn:
            for group in groups.values():
                conn.execute(insert(target), group)
        return len(rows)

    def _flush_periodically(self) -> None:
        interval = self.config.max_latency_ms / 1000.0
        while not self._stop.wait(interval):
            if not self._buffered_bytes:
                continue
            try:
                self.flush()
            except MutationsRejectedError as e:
                # Recorded; surfaced to the next caller
                logger.warning(f"Background flush failed: {e}")
                return

    def close(self) -> None:
        """Flush remaining rows and release the worker threads."""
        with self._lock:
            if self._closed:
                return
            # Rows added from here on are rejected; the final flush sees the rest
            self._closed = True
        try:
            self.flush()
        finally:
            self._stop.set()
            self._flusher.join()
            self._executor.shutdown(wait=True)
            logger.debug("Closed multi-table batch writer")
