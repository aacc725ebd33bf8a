"""Execution context shared by the nodes of one random walk."""

import os
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from randomwalk import config as cfg
from randomwalk.batch_writer import BatchWriterConfig, MultiTableBatchWriter
from randomwalk.budget import VisitBudget
from randomwalk.client import Connector, Credentials, Instance
from randomwalk.config import Properties
from randomwalk.exceptions import (
    AuthenticationError,
    ConnectorNotResolvedError,
    ResourceClosedError,
)
from randomwalk.lazy import SingleFlight
from randomwalk.logging_config import get_logger
from randomwalk.store import StateStore

logger = get_logger("state")

T = TypeVar("T")


class State:
    """Mutable context handed to every node of a walk.

    Holds the node-to-node value store, the visit budget, and lazily built
    database handles (instance, connector, multi-table batch writer) that
    are shared by all nodes of the run. Use it as a context manager, or
    call close(), to release the writer and connector.

    Args:
        props: Property source; plain mappings are wrapped in Properties
        resource_timeout: Seconds a caller waits on another caller's handle
            construction; defaults to the RESOURCE_TIMEOUT property, or
            DEFAULT_RESOURCE_TIMEOUT when that is unset
    """

    def __init__(
        self,
        props: Union[Properties, Mapping[str, Any]],
        resource_timeout: Optional[float] = None,
    ):
        self.props = props if isinstance(props, Properties) else Properties(props)
        if resource_timeout is None:
            resource_timeout = self.props.get_float(cfg.RESOURCE_TIMEOUT)
        if resource_timeout is None:
            resource_timeout = cfg.DEFAULT_RESOURCE_TIMEOUT
        self.resource_timeout = resource_timeout

        self._store = StateStore()
        self._budget = VisitBudget()
        self._instance = SingleFlight("instance", self._build_instance, resource_timeout)
        self._connector = SingleFlight("connector", self._build_connector, resource_timeout)
        self._writer = SingleFlight(
            "multi-table batch writer", self._build_writer, resource_timeout
        )
        self._closed = False

    # -- state store -----------------------------------------------------

    def set(self, key: str, value: Any) -> None:
        self._store.set(key, value)

    def get(self, key: str) -> Any:
        """Return the value for key; raises MissingKeyError if never set."""
        return self._store.get(key)

    def get_typed(self, key: str, type_: Type[T]) -> Optional[T]:
        """Return the value if set and of type_, else None."""
        return self._store.get_typed(key, type_)

    def get_string(self, key: str) -> Optional[str]:
        return self._store.get_string(key)

    def get_long(self, key: str) -> Optional[int]:
        return self._store.get_long(key)

    def get_map(self) -> Dict[str, Any]:
        """Copy of the whole store, e.g. for logging at the end of a run."""
        return self._store.snapshot()

    # -- visit budget ----------------------------------------------------

    @property
    def visit_count(self) -> int:
        return self._budget.count

    @property
    def max_visits(self) -> Optional[int]:
        return self._budget.limit

    def set_max_visits(self, num: Optional[int]) -> None:
        self._budget.set_limit(num)

    def visited_node(self) -> int:
        """Count a node visit; raises VisitBudgetExceededError past the limit."""
        return self._budget.record_visit()

    # -- properties and process ------------------------------------------

    def get_property(self, key: str) -> Optional[str]:
        return self.props.get(key)

    def get_pid(self) -> int:
        return os.getpid()

    # -- lazily built handles --------------------------------------------

    def get_instance(self) -> Instance:
        return self._instance.get()

    def get_credentials(self) -> Credentials:
        """Derive credentials for the configured user; built on every call."""
        instance = self.get_instance()
        username = self.props.get(cfg.USERNAME)
        password = self.props.get(cfg.PASSWORD)
        try:
            return Credentials.create(username, password, instance.instance_id)
        except AuthenticationError:
            logger.error(
                f"Unable to build credentials for {username!r}",
                extra={"instance": instance.name},
            )
            raise

    def get_connector(self) -> Connector:
        return self._connector.get()

    def get_multi_table_batch_writer(self) -> MultiTableBatchWriter:
        """Return the shared writer.

        The connector must have been obtained through get_connector() first;
        this accessor never connects on its own.
        """
        return self._writer.get()

    def _build_instance(self) -> Instance:
        name = self.props.require(cfg.INSTANCE)
        hosts = self.props.require(cfg.ZOOKEEPERS)
        driver = self.props.get(cfg.DRIVER) or cfg.DEFAULT_DRIVER
        connect_timeout = self.props.get_float(cfg.CONNECT_TIMEOUT)
        if connect_timeout is None:
            connect_timeout = cfg.DEFAULT_CONNECT_TIMEOUT
        return Instance(name, hosts, driver=driver, connect_timeout=connect_timeout)

    def _build_connector(self) -> Connector:
        return self.get_instance().get_connector(self.get_credentials())

    def _build_writer(self) -> MultiTableBatchWriter:
        max_mem = self.props.get_int(cfg.MAX_MEM, minimum=1)
        max_latency = self.props.get_int(cfg.MAX_LATENCY, minimum=1)
        num_threads = self.props.get_int(cfg.NUM_THREADS, minimum=1)

        connector = self._connector.peek()
        if connector is None:
            raise ConnectorNotResolvedError(
                "Connector has not been created; call get_connector() first"
            )
        return connector.create_multi_table_batch_writer(
            BatchWriterConfig(
                max_memory=max_mem,
                max_latency_ms=max_latency,
                max_write_threads=num_threads,
            )
        )

    # -- lifecycle -------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the writer, then the connector. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        writer = self._writer.close()
        connector = self._connector.close()
        self._instance.close()
        try:
            if writer is not None:
                writer.close()
        finally:
            if connector is not None:
                connector.close()
        logger.info(
            f"Closed state after {self.visit_count} visits",
            extra={"visit_count": self.visit_count, "keys": len(self._store)},
        )

    def __enter__(self) -> "State":
        if self._closed:
            raise ResourceClosedError("State has already been closed")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
