"""
Error taxonomy for the upload -> process -> download lifecycle.

ValidationError and NotFoundError are terminal for a request,
ProcessingError aborts only that request's pipeline, and CleanupError
is always caught and logged by the component that raised it.
"""


class PipelineError(Exception):
    """Base exception for all lifecycle errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PipelineError):
    """Raised when an upload is missing or is not an allowed image type."""

    status_code = 400
    default_message = "Only image files are allowed (jpeg, jpg, png, gif)"


class ProcessingError(PipelineError):
    """Raised when the removal engine fails or the result cannot be saved."""

    status_code = 500
    default_message = "Error processing the image"


class EngineTimeoutError(ProcessingError):
    """Raised when the removal engine does not answer in time."""

    default_message = "Background removal timed out"


class CleanupError(PipelineError):
    """Raised when a file in the storage area cannot be deleted."""


class NotFoundError(PipelineError):
    """Raised when a download id does not resolve to an available result."""

    status_code = 404
    default_message = "File not found"
