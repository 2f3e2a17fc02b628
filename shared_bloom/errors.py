from typing import Any


class BloomStoreError(Exception):
    """Base class for failures coming from the shared bitmap store."""


class StoreTransportError(BloomStoreError):
    """Redis could not be reached (connection refused, reset, timed out)."""


class ScriptExecutionError(BloomStoreError):
    """The atomic script itself failed while reading or writing a bit."""


class UnexpectedResultError(BloomStoreError):
    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"resp: {value!r}")
