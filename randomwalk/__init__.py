"""Shared execution context for random-walk database test drivers."""

__version__ = "0.1.0"

from randomwalk.state import State
from randomwalk.store import StateStore
from randomwalk.budget import VisitBudget
from randomwalk.lazy import SingleFlight
from randomwalk.config import Properties, load_properties
from randomwalk.client import Instance, Credentials, PasswordToken, Connector
from randomwalk.batch_writer import BatchWriter, BatchWriterConfig, MultiTableBatchWriter
from randomwalk.exceptions import (
    RandomWalkError,
    MissingKeyError,
    VisitBudgetExceededError,
    ConfigurationError,
    AuthenticationError,
    ConnectorNotResolvedError,
    ResourceClosedError,
    ResourceTimeoutError,
    MutationsRejectedError,
)

__all__ = [
    # Version
    "__version__",
    # Context
    "State",
    "StateStore",
    "VisitBudget",
    "SingleFlight",
    "Properties",
    "load_properties",
    # Client handles
    "Instance",
    "Credentials",
    "PasswordToken",
    "Connector",
    "BatchWriter",
    "BatchWriterConfig",
    "MultiTableBatchWriter",
    # Errors
    "RandomWalkError",
    "MissingKeyError",
    "VisitBudgetExceededError",
    "ConfigurationError",
    "AuthenticationError",
    "ConnectorNotResolvedError",
    "ResourceClosedError",
    "ResourceTimeoutError",
    "MutationsRejectedError",
]
