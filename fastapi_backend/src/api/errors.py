"""Store error taxonomy shared by the data-access and HTTP layers."""


class StoreError(Exception):
    """Base class for row store failures.

    ``public_message`` is safe to return to API callers; ``detail`` holds the
    raw driver text and is only meant for logs.
    """

    public_message = "database error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.public_message)
        self.detail = detail


class StoreUnreachable(StoreError):
    public_message = "database unreachable"


class QueryFailed(StoreError):
    public_message = "database query failed"


class DecodeFailed(StoreError):
    public_message = "row could not be decoded"


class BootstrapError(RuntimeError):
    """Raised when the startup sequence cannot prepare the row store."""
