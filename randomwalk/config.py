"""Configuration management: .env loading and the read-only property source."""

import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, Mapping, Optional, Union

from randomwalk.exceptions import ConfigurationError


def load_env_file():
    """Load environment variables from .env file if it exists."""
    env_file = Path(__file__).parent.parent / ".env"
    if env_file.exists():
        with open(env_file, "r") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    if key not in os.environ:  # Don't override existing env vars
                        os.environ[key] = value


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(name, default)


# Load .env file on import
load_env_file()

# Property keys
INSTANCE = "INSTANCE"
"""str: Logical name of the target database (file path for sqlite)."""

ZOOKEEPERS = "ZOOKEEPERS"
"""str: Comma-separated host[:port] list of the coordination endpoints."""

USERNAME = "USERNAME"
PASSWORD = "PASSWORD"

MAX_MEM = "MAX_MEM"
"""str: Batch writer memory buffer size in bytes."""

MAX_LATENCY = "MAX_LATENCY"
"""str: Batch writer flush latency in milliseconds."""

NUM_THREADS = "NUM_THREADS"
"""str: Batch writer worker thread count."""

DRIVER = "DRIVER"
CONNECT_TIMEOUT = "CONNECT_TIMEOUT"
RESOURCE_TIMEOUT = "RESOURCE_TIMEOUT"

ALL_KEYS = (
    INSTANCE,
    ZOOKEEPERS,
    USERNAME,
    PASSWORD,
    MAX_MEM,
    MAX_LATENCY,
    NUM_THREADS,
    DRIVER,
    CONNECT_TIMEOUT,
    RESOURCE_TIMEOUT,
)

DEFAULT_DRIVER = "postgresql"

DEFAULT_CONNECT_TIMEOUT = 30.0
"""float: Seconds the DBAPI may spend connecting when CONNECT_TIMEOUT is unset."""

DEFAULT_RESOURCE_TIMEOUT = 300.0
"""float: Seconds a caller waits on a shared handle when RESOURCE_TIMEOUT is unset."""

# Prefix for reading properties from the environment, e.g. RW_INSTANCE
ENV_PREFIX = "RW_"


class Properties(Mapping[str, str]):
    """Immutable string-keyed property lookup.

    Values are copied at construction; later changes to the source mapping
    are not observed.
    """

    def __init__(self, values: Optional[Mapping[str, object]] = None):
        self._values: Dict[str, str] = {
            str(k): str(v) for k, v in (values or {}).items() if v is not None
        }

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        shown = {
            k: ("***" if k == PASSWORD else v) for k, v in sorted(self._values.items())
        }
        return f"Properties({shown!r})"

    def require(self, key: str) -> str:
        """Return the property value or raise ConfigurationError if unset."""
        value = self._values.get(key)
        if value is None or value.strip() == "":
            raise ConfigurationError(f"Required property {key} is not set")
        return value

    def get_int(self, key: str, minimum: Optional[int] = None) -> int:
        """Parse a required integer property."""
        raw = self.require(key)
        try:
            value = int(raw.strip())
        except ValueError as e:
            raise ConfigurationError(
                f"Property {key} is not a number: {raw!r}"
            ) from e
        if minimum is not None and value < minimum:
            raise ConfigurationError(
                f"Property {key} must be >= {minimum}, got {value}"
            )
        return value

    def get_float(self, key: str) -> Optional[float]:
        """Parse an optional float property; None when unset."""
        raw = self._values.get(key)
        if raw is None or raw.strip() == "":
            return None
        try:
            return float(raw.strip())
        except ValueError as e:
            raise ConfigurationError(
                f"Property {key} is not a number: {raw!r}"
            ) from e

    @classmethod
    def from_env(
        cls, keys: Iterable[str] = ALL_KEYS, prefix: str = ENV_PREFIX
    ) -> "Properties":
        """Build properties from environment variables such as RW_INSTANCE."""
        values = {}
        for key in keys:
            value = get_env(f"{prefix}{key}")
            if value is not None:
                values[key] = value
        return cls(values)


def parse_properties(lines: Iterable[str]) -> Properties:
    """Parse Java-style properties lines (key=value or key: value)."""
    values = {}
    for raw in lines:
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        # First separator wins
        positions = [p for p in (line.find("="), line.find(":")) if p != -1]
        if not positions:
            values[line] = ""
            continue
        sep = min(positions)
        values[line[:sep].strip()] = line[sep + 1 :].strip()
    return Properties(values)


def load_properties(path: Union[str, Path]) -> Properties:
    """Load a properties file from disk."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Properties file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return parse_properties(f)
