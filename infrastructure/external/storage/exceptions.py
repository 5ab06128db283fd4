"""Storage service exceptions."""


class StorageError(Exception):
    """Base storage exception."""
    pass


class ValidationError(StorageError):
    """Storage validation error (e.g. a path escaping the root)."""
    pass


class PayloadTooLargeError(StorageError):
    """Stream exceeded the size limit while being written."""

    def __init__(self, max_size: int):
        super().__init__(f"Payload exceeds {max_size} bytes")
        self.max_size = max_size


class NameCollisionError(StorageError):
    """Target storage name already exists in the bucket."""
    pass
