"""Errors raised while validating, probing and persisting scans."""


class ScanError(Exception):
    """Base class. Every subclass maps to a single user-facing message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ScanError):
    """The query URL was rejected before any network or cache activity."""

    status_code = 400


class RateLimitError(ScanError):
    """A fresh probe was needed but the client is still cooling down."""

    status_code = 429

    def __init__(self, identity: str, retry_after: int = 10):
        super().__init__(f"Rate limited: {identity} may request a new scan again in {retry_after}s.")
        self.identity = identity
        self.retry_after = retry_after


class ProbeError(ScanError):
    """The outbound fetch of the target site failed."""

    status_code = 502


class PersistenceError(ScanError):
    """The event log could not be read or written."""

    status_code = 500
