class PayweekError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(PayweekError):
    """Requested resource does not exist."""


class ImportValidationError(PayweekError):
    """Import input rejected before any analysis or write (missing file, short sheet, bad override)."""


class ConfigurationError(PayweekError):
    """Structure-inference provider is unavailable or misconfigured."""


class InferenceError(PayweekError):
    """Structure-inference provider returned an unusable response."""


class ImportTimeoutError(PayweekError):
    """The import run outlived IMPORT_TIMEOUT_SECONDS before its writes started."""


class PersistenceError(PayweekError):
    """A batched write chunk failed to commit. Earlier chunks remain committed."""

    def __init__(self, message: str, *, chunk_index: int, chunks_committed: int) -> None:
        self.chunk_index = chunk_index
        self.chunks_committed = chunks_committed
        super().__init__(message)
