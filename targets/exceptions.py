"""
Error kinds raised by the target validation pipeline.
"""


class TargetValidationError(Exception):
    """Base class for every error raised by this app."""


class EmptyInputError(TargetValidationError):
    """There is no document text to normalize."""


class DocumentReadError(TargetValidationError):
    """No text extraction method could read the uploaded PDF."""


class VerdictError(TargetValidationError):
    """The verifier answered, but the answer could not be used."""


class MalformedVerifierResponse(VerdictError):
    """The verifier answer has no balanced outer JSON object."""


class VerifierParseError(VerdictError):
    """The sanitized answer is not valid JSON or lacks required keys."""


class TransportError(TargetValidationError):
    """A call to an external service failed."""
