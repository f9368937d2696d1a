"""Custom exceptions for funcdeploy."""

from typing import Optional


class FunctionDeployError(Exception):
    """Base exception for all deployment errors.

    ``operation`` is filled in by the orchestrator with the step that failed
    and is prepended to the message.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.operation: Optional[str] = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.operation:
            return f"{self.operation}: {message}"
        return message


class ResourceNotFoundError(FunctionDeployError):
    """Namespace or function lookup returned nothing."""
    pass


class ResourceNotOwnedError(FunctionDeployError):
    """Resource does not carry the ownership tag of this tool."""
    pass


class DirectoryNotFoundError(FunctionDeployError):
    """Source or destination directory does not exist."""
    pass


class RuntimeUnsupportedError(FunctionDeployError):
    """Runtime is unknown to the Functions API."""
    pass


class ArchiveError(FunctionDeployError):
    """Archive could not be created or extracted."""
    pass


class ArchiveTooLargeError(ArchiveError):
    """Decompressed archive content exceeds the extraction ceiling."""
    pass


class PathTraversalRejectedError(ArchiveError):
    """Archive entry or source file escapes its root directory."""
    pass


class TransferError(FunctionDeployError):
    """Upload or download of a code archive failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.status_code = status_code


class UploadFailedError(TransferError):
    """Upload to the presigned URL did not return HTTP 200."""
    pass


class DownloadFailedError(TransferError):
    """Download from the presigned URL did not return HTTP 200."""
    pass


class OperationCancelledError(FunctionDeployError):
    """Caller requested cancellation while an operation was in flight."""
    pass


class DeadlineExceededError(OperationCancelledError):
    """Operation did not finish before its deadline."""
    pass


class RemoteAPIError(FunctionDeployError):
    """Functions API returned an error."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.status_code = status_code


class ConfigurationError(FunctionDeployError):
    """Configuration error."""
    pass
