"""Error taxonomy shared by core and adapters."""

from __future__ import annotations


class DoppelError(Exception):
    """Base class for all errors raised on purpose by doppel."""


class UpstreamUnavailableError(DoppelError):
    """All retries against the social API were exhausted."""


class UpstreamRequestError(DoppelError):
    """The social API rejected a request with a non-retryable status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(DoppelError):
    """A query resolved to no user or no posts."""


class GenerationFailureError(DoppelError):
    """The generation backend errored, timed out, or returned nothing."""


class IndexUnavailableError(DoppelError):
    """The documentation index could not be loaded or ingested."""


class CacheCorruptionError(DoppelError):
    """A persisted record could not be parsed."""
