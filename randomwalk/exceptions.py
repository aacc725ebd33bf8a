"""Custom exception hierarchy for the random-walk execution context."""


class RandomWalkError(Exception):
    """Base exception for all random-walk context errors."""

    pass


class MissingKeyError(RandomWalkError, KeyError):
    """Raised when a strict state read asks for a key that was never set."""

    def __init__(self, key: str):
        super().__init__(f"State does not contain {key}")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class VisitBudgetExceededError(RandomWalkError):
    """Raised when a walk visits more nodes than its limit allows.

    This is the expected way for a walk to stop, not a fault.
    """

    def __init__(self, limit: int):
        super().__init__(f"Visited max number ({limit}) of nodes")
        self.limit = limit


class ConfigurationError(RandomWalkError):
    """Raised when a required property is missing or cannot be parsed."""

    pass


class AuthenticationError(RandomWalkError):
    """Raised when credentials cannot be derived or do not match the instance."""

    pass


class ConnectorNotResolvedError(RandomWalkError):
    """Raised when a handle needs a connector that has not been built yet."""

    pass


class ResourceClosedError(RandomWalkError):
    """Raised when a handle is requested or used after it was released."""

    pass


class ResourceTimeoutError(RandomWalkError):
    """Raised when waiting on another caller's construction takes too long."""

    pass


class MutationsRejectedError(RandomWalkError):
    """Raised when buffered writes could not be applied to their tables."""

    def __init__(self, failures):
        self.failures = list(failures)
        tables = sorted({table for table, _ in self.failures})
        super().__init__(
            f"{len(self.failures)} write failure(s) for tables: {', '.join(tables)}"
        )
