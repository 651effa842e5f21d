class RidePayError(Exception):
    """Base class for failures converted to structured responses."""


class ValidationError(RidePayError):
    """Missing or malformed input, rejected before any external call.

    ``kind`` is ``"missing"`` when required fields are absent or empty and
    ``"invalid"`` when they are present but have the wrong shape.
    """

    def __init__(self, message: str, kind: str = "missing", fields=None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.fields = list(fields or [])


class GatewayError(RidePayError):
    """Stripe rejected the request or could not be reached."""

    def __init__(self, message: str, code: str = None, http_status: int = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status


class StoreError(RidePayError):
    """The ride store failed to persist or read data."""
