"""Upload domain exports."""
from .entity import StoredFile, UploadPart, AsyncReadable
from .policy import EndpointPolicy, TypePolicy, ALLOWED_TYPES, MB

__all__ = [
    "StoredFile",
    "UploadPart",
    "AsyncReadable",
    "EndpointPolicy",
    "TypePolicy",
    "ALLOWED_TYPES",
    "MB",
]
