"""
exceptions.py — Error taxonomy of the sync service

Every failure raised by the clients and workflows derives from `SyncServiceError`,
so the HTTP layer can map them to status codes and the stock relay can swallow them.

    • AuthenticationFailure — webhook signature mismatch (HTTP 401)
    • RemoteFault           — the ERP or storefront reported an error (HTTP 500)
    • NoMatchFound          — no product / customer / SKU match
    • NoValidProductsError  — no order line matched an ERP product (HTTP 400)
    • TransportFailure      — network error or unexpected HTTP status (HTTP 500)
"""


class SyncServiceError(Exception):
    """Base class for all errors raised by the sync service."""


class AuthenticationFailure(SyncServiceError):
    """The webhook signature did not match the raw request body."""


class RemoteFault(SyncServiceError):
    """
    A remote system answered, but reported an error.

    Attributes:
        fault: The raw fault payload (e.g. the JSON-RPC `error` object), if any.
    """

    def __init__(self, message: str, fault=None):
        super().__init__(message)
        self.fault = fault


class NoMatchFound(SyncServiceError):
    """A business key (email, SKU) had no counterpart in the other system."""


class NoValidProductsError(NoMatchFound):
    """None of the order's line items matched an ERP product."""


class TransportFailure(SyncServiceError):
    """The request never produced a usable response (network error, HTTP status)."""
