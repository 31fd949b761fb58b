class UploadPipelineError(Exception):
    """Base error for the recording upload pipeline."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(UploadPipelineError):
    """Raised when an upload request is malformed."""

    status_code = 400


class ConfigurationError(UploadPipelineError):
    """Raised when storage is not configured or could not be initialized."""

    status_code = 500


class TransferError(UploadPipelineError):
    """Raised when moving bytes into storage fails for a given key."""

    status_code = 500

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class NotFoundError(UploadPipelineError):
    """Raised when a probed object does not exist."""

    status_code = 404

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class CleanupError(UploadPipelineError):
    """Temporary file removal failed. Logged, never surfaced to callers."""
