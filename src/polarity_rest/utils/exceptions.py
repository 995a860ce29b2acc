"""Custom exceptions for the Polarity REST API client.

Exception Hierarchy:
-------------------
PolarityError (base)
├── PreconditionError           # Operation attempted while not connected
├── TagValidationError          # Tag or entity outside its length bounds
├── TransportError              # Network-level failure reaching the server
└── PolarityAPIError (base for unexpected HTTP status codes)
    ├── AuthenticationError     # POST /v1/authenticate rejected
    ├── ResourceNotFoundError   # Named resource (e.g. channel) not found
    ├── TagUploadError          # Tag batch rejected or not delivered
    │   └── PartialUploadError  # ...after earlier batches succeeded
    └── ClearChannelError       # Channel-empty check failed while polling

Usage Guidelines:
----------------
1. Every error carries a human readable ``detail``. Callers that only need
   to report a failure can print ``error.detail`` regardless of type.

2. API errors carry the HTTP ``status`` and the decoded response ``body``.

3. Nothing here is retried automatically. Upload errors and a stopping
   TagValidationError carry the partial BulkUploadResult as ``result``.
   A PartialUploadError means the batches before the failing one are
   already stored on the server; the caller must reconcile them.
"""

from typing import Any


class PolarityError(Exception):
    """Base exception for all Polarity client errors."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class PreconditionError(PolarityError):
    """Raised when an operation requires a connected client."""

    pass


class TagValidationError(PolarityError):
    """Raised when a tag or entity fails validation under stop-on-invalid-data."""

    def __init__(
        self,
        detail: str,
        value: str,
        field: str,
        row_index: int | None = None,
        column_index: int | None = None,
    ) -> None:
        """
        Initialize TagValidationError.

        Args:
            detail: Validation message, including the offending value.
            value: The rejected tag or entity value.
            field: Either "entity" or "tag".
            row_index: Zero-based index of the input row.
            column_index: Zero-based column of the value within the row.
        """
        super().__init__(detail)
        self.value = value
        self.field = field
        self.row_index = row_index
        self.column_index = column_index
        # Set by BulkTagUploader: what was stored before the invalid value was read
        self.result: Any = None


class TransportError(PolarityError):
    """Raised when the server cannot be reached."""

    def __init__(self, detail: str, cause: BaseException | None = None) -> None:
        super().__init__(detail)
        self.cause = cause


class PolarityAPIError(PolarityError):
    """Base exception for responses with an unexpected status code."""

    def __init__(self, detail: str, status: int | None = None, body: Any = None) -> None:
        """
        Initialize PolarityAPIError.

        Args:
            detail: Error message.
            status: HTTP status code returned by the server.
            body: Decoded response body (JSON or raw text).
        """
        super().__init__(detail)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.detail} (HTTP {self.status})"
        return self.detail


class AuthenticationError(PolarityAPIError):
    """Raised when the server rejects the supplied credentials."""

    def __init__(
        self,
        detail: str = "Could not authenticate to Polarity",
        status: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(detail, status=status, body=body)


class ResourceNotFoundError(PolarityAPIError):
    """Raised when a named resource does not exist."""

    def __init__(self, resource_type: str, identifier: str, status: int | None = None) -> None:
        super().__init__(f"Unable to find {resource_type} named {identifier}", status=status)
        self.resource_type = resource_type
        self.identifier = identifier


class TagUploadError(PolarityAPIError):
    """
    Raised when the server rejects a tag upload batch.

    ``failed_pairs`` is the rejected batch. ``batches_submitted`` and
    ``pairs_submitted`` describe what the server accepted before it, and
    ``result`` is the partial ``BulkUploadResult`` when raised by an upload.
    A network failure while sending the batch is reported the same way with
    ``status`` None and the ``TransportError`` as ``__cause__``.
    """

    def __init__(
        self,
        detail: str,
        status: int | None,
        body: Any,
        failed_pairs: list[Any],
        batch_index: int,
        batches_submitted: int = 0,
        pairs_submitted: int = 0,
    ) -> None:
        super().__init__(detail, status=status, body=body)
        self.failed_pairs = failed_pairs
        self.batch_index = batch_index
        self.batches_submitted = batches_submitted
        self.pairs_submitted = pairs_submitted
        self.result: Any = None


class PartialUploadError(TagUploadError):
    """
    Raised when a tag batch fails after earlier batches were stored.

    Earlier batches are not rolled back; the caller must reconcile them.
    """

    pass


class ClearChannelError(PolarityAPIError):
    """
    Raised when polling for the end of an asynchronous channel clear fails.

    ``response`` is the body of the original DELETE request so the caller
    still sees which deletion counters the server reported.
    """

    def __init__(
        self,
        detail: str,
        channel_id: int | str,
        response: Any = None,
        status: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(detail, status=status, body=body)
        self.channel_id = channel_id
        self.response = response
