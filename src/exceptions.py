"""Custom exceptions for the possync service."""

RETRYABLE_STATUS_CODES = frozenset({408, 429})


class PosSyncError(Exception):
    """Base exception for possync errors."""

    retryable = False


class ConfigurationError(PosSyncError):
    """Required configuration (e.g. API credentials) is missing."""

    pass


class RemoteApiError(PosSyncError):
    """The POS API answered with a non-success status."""

    def __init__(self, status_code: int, body: str, message: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"POS API error: {status_code} - {body}")

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return (
            self.status_code in RETRYABLE_STATUS_CODES
            or 500 <= self.status_code <= 599
        )


class TransportError(PosSyncError):
    """Network-level failure talking to a remote service."""

    retryable = True


class NotFoundError(PosSyncError):
    """A local patient record does not exist."""

    pass


class MappingError(PosSyncError):
    """A patient could not be mapped to a POS customer."""

    pass


class StoreError(PosSyncError):
    """The primary patient store answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Patient store error: {status_code} - {body}")
