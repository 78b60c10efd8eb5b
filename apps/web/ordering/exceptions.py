"""Ordering exceptions."""


class OrderingError(Exception):
    """Base exception for ordering errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class OrderingAPIError(OrderingError):
    """Request to the order/menu API failed."""


class NetworkUnavailable(OrderingAPIError):
    """The request could not be sent or no response was received."""


class RequestTimeout(OrderingAPIError):
    """The request was aborted after the client-side timeout."""

    def __init__(self, message: str, timeout: float | None = None) -> None:
        super().__init__(message)
        self.timeout = timeout


class HttpError(OrderingAPIError):
    """The API answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class MalformedResponse(HttpError):
    """The API answered 2xx but the body did not match the contract."""


class FetchError(OrderingAPIError):
    """The menu could not be fetched and no cached copy is available."""


class ValidationError(OrderingError):
    """Input rejected client-side before reaching the network."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class AccessDenied(OrderingError):
    """The client is not on the café network."""


class InvalidTransition(OrderingError):
    """An order session action is not allowed in the current state."""
