class PlantLogError(Exception):
    """Base class for errors raised by plantlog."""


class StorageError(PlantLogError):
    """A write to the local keyed store failed."""


class RemoteStoreError(PlantLogError):
    """The remote relational mirror could not be read or written."""


class SyncError(PlantLogError):
    """A local/remote operation could not be completed as a whole."""


class AuthError(PlantLogError):
    """Credentials or session token were rejected."""
