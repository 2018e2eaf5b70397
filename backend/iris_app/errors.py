"""Exception types for the capture-to-description pipeline."""


class IrisError(Exception):
    """Base class for failures the pipeline turns into a state."""


class EncodingError(IrisError):
    """Raised when a captured image cannot be decoded or re-encoded."""


class RequestFailed(IrisError):
    """Raised when the provider answers with a status other than 200.

    The ``body_snippet`` keeps only the start of the response body so the
    error can be logged without dumping a whole provider payload.
    """

    def __init__(self, status_code: int, body_snippet: str = "") -> None:
        self.status_code = status_code
        self.body_snippet = body_snippet
        message = f"Provider request failed with status {status_code}"
        if body_snippet:
            message = f"{message}: {body_snippet}"
        super().__init__(message)


class ParseError(IrisError):
    """Raised when a provider body matches neither accepted envelope."""


class TransportError(IrisError):
    """Raised when the provider cannot be reached at all."""


class DescriptionCancelled(IrisError):
    """Raised to the waiter of a request that was cancelled or superseded."""

    def __init__(self, request_id: int | None = None) -> None:
        self.request_id = request_id
        message = "Description request cancelled"
        if request_id is not None:
            message = f"{message} (request {request_id})"
        super().__init__(message)
