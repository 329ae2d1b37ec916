"""Error types raised across the locator services."""


class LocatorError(Exception):
    """Base class for locator errors."""


class StorageParseError(LocatorError):
    """The persisted settings record could not be read or decoded."""


class PermissionDenied(LocatorError):
    """Location permission was not granted."""


class FixUnavailable(LocatorError):
    """No location fix could be obtained."""


class NetworkSendFailure(LocatorError):
    """A report could not be delivered to the configured endpoint."""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class TaskNotDefined(LocatorError):
    """A background task was scheduled before a handler was defined for it."""


class StorageWriteError(LocatorError):
    """The settings record could not be persisted."""
