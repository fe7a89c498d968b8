"""Domain exceptions."""


class StorageError(Exception):
    """Raised by the persistence gateway when a snapshot cannot be written."""


class PasscodeError(ValueError):
    """Raised when a passcode change request is rejected."""
