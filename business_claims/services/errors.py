"""Claim lifecycle error taxonomy.

Guard and state errors are business-rule rejections surfaced verbatim to the
caller and never retried automatically. ``ConversionFailed`` subclasses are
transient: the claim is left approved with ``convertedAt`` unset, and any later
conversion call is a complete recovery.
"""
from __future__ import annotations


class ClaimServiceError(Exception):
    """Base claim lifecycle error."""

    code: str = "ClaimServiceError"
    http_status: int = 400
    retryable: bool = False

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.__class__.__doc__ or self.code
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


class NotFound(ClaimServiceError):
    """Claim not found."""
    code = "NotFound"
    http_status = 404


class Unauthorized(ClaimServiceError):
    """Caller lacks the capability required for this operation."""
    code = "Unauthorized"
    http_status = 403


class VerificationRequired(ClaimServiceError):
    """A business phone or business email is required for verification."""
    code = "VerificationRequired"
    http_status = 422


class NotesRequired(ClaimServiceError):
    """Review notes are required when rejecting a claim."""
    code = "NotesRequired"
    http_status = 422


class DuplicatePending(ClaimServiceError):
    """You already have a pending claim for this business."""
    code = "DuplicatePending"
    http_status = 409


class TargetAlreadyClaimed(ClaimServiceError):
    """This business has already been claimed by another user."""
    code = "TargetAlreadyClaimed"
    http_status = 409


class InvalidState(ClaimServiceError):
    """Claim is not in a status that allows this transition."""
    code = "InvalidState"
    http_status = 409


class NotApproved(ClaimServiceError):
    """Claim must be approved before conversion."""
    code = "NotApproved"
    http_status = 409


class ConversionFailed(ClaimServiceError):
    """Conversion to a business account failed; the claim remains approved and convertible."""
    code = "ConversionFailed"
    http_status = 503
    retryable = True

    def __init__(self, message: str | None = None, *, cause: BaseException | None = None, **context):
        self.cause = cause
        if cause is not None:
            context.setdefault("cause", f"{type(cause).__name__}: {cause}")
        super().__init__(message, **context)


class LookupUnavailable(ConversionFailed):
    """The place-lookup service could not be reached; retry later."""
    code = "LookupUnavailable"


class PersistenceFailed(ConversionFailed):
    """Writing the business account failed; retrying immediately is reasonable."""
    code = "PersistenceFailed"


__all__ = [
    "ClaimServiceError",
    "NotFound",
    "Unauthorized",
    "VerificationRequired",
    "NotesRequired",
    "DuplicatePending",
    "TargetAlreadyClaimed",
    "InvalidState",
    "NotApproved",
    "ConversionFailed",
    "LookupUnavailable",
    "PersistenceFailed",
]
