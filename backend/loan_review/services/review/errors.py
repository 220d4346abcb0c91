"""Error taxonomy for review commands.

Every error reaches the caller. ``code`` is stable and safe to map onto a
transport status; ``message`` is human readable.
"""


class ReviewError(Exception):
    """Base exception for review core errors."""

    code = "review_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(ReviewError):
    """Malformed or missing command input. Nothing was mutated."""

    code = "validation_error"


class FieldLockedError(ReviewError):
    """The field was verified by an automated source and staff cannot change it."""

    code = "field_locked"

    def __init__(self, field: str, method: str | None = None):
        super().__init__(
            f"Field '{field}' was verified automatically ({method or 'KYC'}) and cannot be modified",
            field=field,
            method=method,
        )
        self.field = field
        self.method = method


class DocumentLockedError(ReviewError):
    """The document was approved by automated KYC matching."""

    code = "document_locked"

    def __init__(self, document_id: str, document_type: str | None = None):
        super().__init__(
            f"Document {document_id} ({document_type or 'unknown'}) is KYC-verified and cannot be modified",
            document_id=document_id,
            document_type=document_type,
        )
        self.document_id = document_id
        self.document_type = document_type


class PermissionDeniedError(ReviewError):
    """The actor lacks the capability the command requires."""

    code = "permission_denied"


class InvalidStateError(ReviewError):
    """The command is not permitted from the current state."""

    code = "invalid_state"


class TerminalStateError(InvalidStateError):
    """The application already reached a terminal status."""

    code = "terminal_state"


class NotFoundError(ReviewError):
    """Referenced application, document, reference or account does not exist."""

    code = "not_found"


class UpstreamFailure(ReviewError):
    """A persistence, timeline or storage collaborator call failed."""

    code = "upstream_failure"
