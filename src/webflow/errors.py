DEFAULT_CODE = -1


class WebflowError(Exception):
    """Base error for every failure surfaced by the client.

    `code` is the API's own error code for remote failures and
    `DEFAULT_CODE` (-1) for anything that went wrong on this side of the wire.
    """

    def __init__(self, message: str = "", code: int = DEFAULT_CODE) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"Webflow: {self.message} ({self.code})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, code={self.code!r})"


class MissingTokenError(WebflowError):
    """No access token was supplied to the constructor."""

    pass


class EncodeError(WebflowError):
    """The request body (JSON or multipart) could not be built."""

    pass


class TransportError(WebflowError):
    """Request construction, connection or response read failure."""

    pass


class TimeoutError(TransportError):
    """Deadline exceeded."""

    pass


class RateLimitHeaderError(WebflowError):
    """x-ratelimit-* headers missing, repeated or not integers."""

    pass


class DecodeError(WebflowError):
    """Malformed envelope, or data that does not fit the requested type."""

    pass


class APIError(WebflowError):
    """Failure reported by the remote service in the envelope's `errors`."""

    def __init__(self, message: str = "", code: int = DEFAULT_CODE, status_code: int | None = None) -> None:
        super().__init__(message, code)
        self.status_code = status_code
