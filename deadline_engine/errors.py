"""Exception types raised by the notification engine."""


class DeadlineEngineError(Exception):
    """Base class for engine errors."""


class StoreError(DeadlineEngineError):
    """A store was used before it was opened, or after it was closed."""


class DismissalWriteError(DeadlineEngineError):
    """Persisting a snooze or dismissal failed."""

    def __init__(self, key: str, cause: BaseException):
        super().__init__(f"Could not persist dismissal for '{key}': {cause}")
        self.key = key
        self.cause = cause
