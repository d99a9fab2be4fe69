"""Error types for BazaarTrack.

Each error carries a machine-readable ``kind`` so the query layer can
report structured failures without leaking internals.
"""


class BazaarError(Exception):
    """Base class for all BazaarTrack errors."""

    kind = "internal_error"
    safe_message = "Internal server error"


class InvalidInput(BazaarError):
    """Missing or malformed query parameters.

    Raised before any store access. The message is safe to show to clients.
    """

    kind = "invalid_input"

    @property
    def safe_message(self) -> str:
        return str(self)


class FeedUnavailable(BazaarError):
    """The external price feed could not be reached or parsed."""

    kind = "feed_unavailable"


class StoreUnavailable(BazaarError):
    """A read or write failed at the storage boundary."""

    kind = "store_unavailable"


class QueryTimeout(StoreUnavailable):
    """A store query was abandoned after exceeding its deadline."""

    kind = "query_timeout"
    safe_message = "Query timed out"
