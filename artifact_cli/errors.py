"""
Artifact operation exceptions

Configuration problems are raised before any network call, compatibility
problems when a reference is not the kind of artifact an operation expects,
and cancellation separately from failure so callers can tell a user-requested
stop from an error.
"""

from enum import Enum


class CancelReason(str, Enum):
    """Why a unit of work was cancelled."""

    TIMEOUT = "timeout"
    USER_INTERRUPT = "user-interrupt"
    ERROR = "error"


class ArtifactError(Exception):
    """Base exception for artifact operations"""

    pass


class ConfigurationError(ArtifactError):
    """Invalid user input or configuration document"""

    pass


class InvalidPlatformError(ConfigurationError):
    """Platform string is malformed or not supported"""

    pass


class CompatibilityError(ArtifactError):
    """Reference is not an artifact of the kind the operation expects"""

    pass


class NoFolderLayerError(CompatibilityError):
    """Manifest carries no layer with a supported folder media type"""

    pass


class NoMatchingPlatformError(ArtifactError):
    """Index has no manifest for the requested platform"""

    pass


class ArchiveError(ArtifactError):
    """Folder could not be packed or a layer could not be unpacked"""

    pass


class SyncError(ArtifactError):
    """A sync run failed on one of its artifacts"""

    pass


class OperationCancelled(ArtifactError):
    """Operation stopped by timeout, user interrupt or a propagated error"""

    def __init__(self, operation: str, reason: CancelReason):
        self.operation = operation
        self.reason = reason
        if reason == CancelReason.USER_INTERRUPT:
            message = f"operation '{operation}' was cancelled by user"
        elif reason == CancelReason.TIMEOUT:
            message = f"operation '{operation}' timed out"
        else:
            message = f"operation '{operation}' was cancelled"
        super().__init__(message)

    @property
    def user_requested(self) -> bool:
        return self.reason == CancelReason.USER_INTERRUPT
