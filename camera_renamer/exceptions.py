"""
Custom exception hierarchy for the camera renamer.

Fatal conditions are raised as these types and surface in main() as a
non-zero exit. Per-file problems are logged as warnings instead.
"""


class CameraRenamerError(Exception):
    """Base exception for all camera renamer errors."""
    pass


class ValidationError(CameraRenamerError):
    """Raised when run options are invalid."""
    pass


class InvalidEventError(ValidationError):
    """Raised when the event descriptor is empty, too long or contains spaces."""
    pass


class InvalidSidecarModeError(ValidationError):
    """Raised when the sidecar mode is not one of backup/skip/overwrite."""
    pass


class NoEligibleFilesError(CameraRenamerError):
    """Raised when the inventory scan finds no supported files."""
    pass


class MetadataToolError(CameraRenamerError):
    """Raised when exiftool is missing or a call to it fails."""
    pass


class BackupError(CameraRenamerError):
    """Raised when the backup root cannot be created."""
    pass


class RenameCollisionError(CameraRenamerError):
    """Raised when two planned renames resolve to the same target."""
    pass
