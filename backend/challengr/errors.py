from __future__ import annotations


class CoreError(Exception):
    """Base for every error the validation engine raises on purpose.

    `code` is stable and safe to show to API clients; `status_code` is the
    HTTP status the API layer maps it to.
    """
    code = "core_error"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------- caller's fault ----------

class NotFound(CoreError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"

class NotEligible(CoreError):
    code = "not_eligible"
    status_code = 403
    default_message = "You are not eligible to validate this submission"

class AlreadyResolved(CoreError):
    code = "already_resolved"
    status_code = 409
    default_message = "Already resolved by another validator"

class DuplicatePending(CoreError):
    code = "duplicate_pending"
    status_code = 409
    default_message = "You already have a submission pending for this challenge"

class DuplicateReport(CoreError):
    code = "duplicate_report"
    status_code = 409
    default_message = "You already reported this submission"

class InvalidReason(CoreError):
    code = "invalid_reason"
    status_code = 422
    default_message = "A valid reason is required"

class UnsupportedMedia(CoreError):
    code = "unsupported_media"
    status_code = 415
    default_message = "Unsupported media type"


# ---------- collaborators ----------

class MediaUploadFailed(CoreError):
    code = "media_upload_failed"
    status_code = 502
    default_message = "Proof upload failed, please retry"


# ---------- should never happen ----------

class InvariantViolation(CoreError):
    code = "internal_error"
    status_code = 500
    default_message = "Something went wrong, please retry"
