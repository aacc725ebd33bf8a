"""Database client handles: instance, credentials and connector."""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import text
from sqlalchemy.engine import Engine, URL

import pandas as pd

from randomwalk import db
from randomwalk.config import DEFAULT_DRIVER
from randomwalk.exceptions import AuthenticationError, ConfigurationError
from randomwalk.logging_config import get_logger

logger = get_logger("client")


class PasswordToken:
    """Password wrapper that keeps the secret out of reprs and logs."""

    __slots__ = ("_password",)

    def __init__(self, password: str):
        if password is None:
            raise AuthenticationError("Password must not be None")
        self._password = str(password)

    @property
    def password(self) -> str:
        return self._password

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PasswordToken) and other._password == self._password

    def __hash__(self) -> int:
        return hash(self._password)

    def __repr__(self) -> str:
        return "PasswordToken(***)"


@dataclass(frozen=True)
class Credentials:
    """Principal and token, bound to the instance they were issued for."""

    principal: str
    token: PasswordToken = field(repr=False)
    instance_id: str

    @classmethod
    def create(cls, principal: Optional[str], password: Optional[str], instance_id: str) -> "Credentials":
        if not principal:
            raise AuthenticationError("Principal must be set to build credentials")
        if password is None:
            raise AuthenticationError(f"No password given for principal {principal}")
        return cls(principal=principal, token=PasswordToken(password), instance_id=instance_id)


def parse_hosts(hosts: str) -> List[Tuple[str, Optional[int]]]:
    """Split a 'host[:port],host[:port]' list."""
    parsed = []
    for entry in hosts.split(","):
        entry = entry.strip()
        if not entry:
            continue
        host, sep, port = entry.rpartition(":")
        if not sep:
            parsed.append((entry, None))
            continue
        try:
            parsed.append((host, int(port)))
        except ValueError as e:
            raise ConfigurationError(f"Invalid port in host entry {entry!r}") from e
    if not parsed:
        raise ConfigurationError(f"No hosts found in {hosts!r}")
    return parsed


class Instance:
    """Reference to a named database on a set of hosts.

    Building an instance is a pure function of its arguments; nothing is
    contacted until a connector is requested.
    """

    def __init__(
        self,
        name: str,
        hosts: str,
        driver: str = DEFAULT_DRIVER,
        connect_timeout: Optional[float] = None,
        echo: bool = False,
    ):
        if not name:
            raise ConfigurationError("Instance name must be set")
        if not hosts:
            raise ConfigurationError("Instance hosts must be set")
        self.name = name
        self.hosts = hosts
        self.driver = driver
        self.connect_timeout = connect_timeout
        self.echo = echo
        self._host_list = parse_hosts(hosts)

    @property
    def instance_id(self) -> str:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{self.driver}://{self.hosts}/{self.name}"))

    @property
    def backend(self) -> str:
        return self.driver.split("+", 1)[0]

    def url(self, credentials: Optional[Credentials] = None) -> URL:
        if self.backend == "sqlite":
            return URL.create(self.driver, database=self.name)

        username = credentials.principal if credentials else None
        password = credentials.token.password if credentials else None
        if len(self._host_list) == 1:
            host, port = self._host_list[0]
            return URL.create(
                self.driver, username=username, password=password,
                host=host, port=port, database=self.name,
            )
        # libpq style multi-host: ?host=a:1&host=b:2
        hosts = tuple(h if p is None else f"{h}:{p}" for h, p in self._host_list)
        return URL.create(
            self.driver, username=username, password=password,
            database=self.name, query={"host": hosts},
        )

    def _engine_options(self) -> Dict[str, Any]:
        if self.connect_timeout is None:
            return {}
        if self.backend == "sqlite":
            return {"connect_args": {"timeout": self.connect_timeout}}
        return {"connect_args": {"connect_timeout": int(self.connect_timeout)}}

    def get_connector(self, credentials: Credentials) -> "Connector":
        """Authenticate and return a verified connector.

        Connectivity and authentication failures from the driver propagate
        as raised by SQLAlchemy.
        """
        if credentials.instance_id != self.instance_id:
            raise AuthenticationError(
                f"Credentials for {credentials.principal} were issued for instance "
                f"{credentials.instance_id}, not {self.instance_id}"
            )
        engine = db.make_engine(self.url(credentials), echo=self.echo, **self._engine_options())
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            engine.dispose()
            raise
        logger.info(
            f"Connected to instance {self.name} as {credentials.principal}",
            extra={"instance": self.name, "instance_id": self.instance_id},
        )
        return Connector(self, credentials.principal, engine)

    def __repr__(self) -> str:
        return f"Instance(name={self.name!r}, hosts={self.hosts!r}, driver={self.driver!r})"


class Connector:
    """Authenticated session factory for one instance."""

    def __init__(self, instance: Instance, principal: str, engine: Engine):
        self.instance = instance
        self.principal = principal
        self.engine = engine
        self._closed = False

    def fetch_one(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return db.fetch_one(self.engine, sql, params)

    def fetch_all(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return db.fetch_all(self.engine, sql, params)

    def fetch_dataframe(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
        chunksize: Optional[int] = None,
    ) -> Union["pd.DataFrame", Iterable["pd.DataFrame"]]:
        return db.fetch_dataframe(self.engine, sql, params, chunksize)

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> int:
        return db.execute(self.engine, sql, params)

    def create_multi_table_batch_writer(self, config):
        from randomwalk.batch_writer import MultiTableBatchWriter

        return MultiTableBatchWriter(self.engine, config)

    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.engine.dispose()
        logger.info(f"Released connector for instance {self.instance.name}")
