class OldTrailsError(Exception):
    pass


class MissingSourceError(OldTrailsError):
    """
    Raised when a required archive payload does not exist on disk.

    A missing save slot is never reported with this error, it only means
    the version has not been played yet.
    """

    pass


class LaunchFailure(OldTrailsError):
    pass


class PartialRestoreFailure(OldTrailsError):
    """
    Raised when restoring the canonical directories from the backup failed.

    The canonical directories may be left in a non-factory state, so the
    modification flag has to stay set.
    """

    pass


class BackupNotReadyError(OldTrailsError):
    """
    Raised when an install is attempted before the factory backup exists,
    or when a backup would be taken of directories that are not in factory state
    """

    pass


class SessionBusyError(OldTrailsError):
    """
    Raised when another running OldTrails process owns the session in progress
    """

    pass
