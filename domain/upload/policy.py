"""Per-endpoint upload policy: accepted MIME types and size/count limits."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from domain.common.exceptions import (
    TooManyFilesException,
    UnexpectedFieldException,
    UnsupportedTypeException,
)

MB = 1024 * 1024
# Room for boundaries, part headers and plain form fields
MULTIPART_OVERHEAD = 1 * MB

IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml")
DOCUMENT_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
)
VIDEO_TYPES = ("video/mp4", "video/webm", "video/ogg")
AUDIO_TYPES = ("audio/mpeg", "audio/wav", "audio/ogg")

ALLOWED_TYPES: dict[str, tuple[str, ...]] = {
    "image": IMAGE_TYPES,
    "document": DOCUMENT_TYPES,
    "video": VIDEO_TYPES,
    "audio": AUDIO_TYPES,
}


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """``Text/Plain; charset=utf-8`` -> ``text/plain``."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class TypePolicy:
    """Accepts a declared MIME type by exact match or by prefix.

    Only the declared ``Content-Type`` is checked; the bytes are never sniffed.
    """

    allowed_types: frozenset[str] = frozenset()
    allowed_prefixes: tuple[str, ...] = ()

    @classmethod
    def general(cls) -> "TypePolicy":
        return cls(allowed_types=frozenset(t for group in ALLOWED_TYPES.values() for t in group))

    @classmethod
    def images_only(cls) -> "TypePolicy":
        return cls(allowed_prefixes=("image/",))

    def accepts(self, mime_type: Optional[str]) -> bool:
        mt = normalize_mime_type(mime_type)
        if not mt:
            return False
        if mt in self.allowed_types:
            return True
        return any(mt.startswith(prefix) for prefix in self.allowed_prefixes)

    def check(self, mime_type: Optional[str], *, field: Optional[str] = None) -> None:
        if not self.accepts(mime_type):
            raise UnsupportedTypeException(mime_type, field=field)


@dataclass(frozen=True)
class EndpointPolicy:
    """Type policy plus limits for one upload endpoint.

    ``fields`` maps each accepted field name to its max count. A part under any
    other field name is rejected as unexpected.
    """

    name: str
    type_policy: TypePolicy
    max_file_size: int
    max_file_count: int
    fields: dict[str, int] = field(default_factory=dict)

    def check_counts(self, field_names: Iterable[str]) -> None:
        """Validate field names and counts for a whole request up front."""
        counts: dict[str, int] = {}
        for name in field_names:
            if name not in self.fields:
                raise UnexpectedFieldException(name)
            counts[name] = counts.get(name, 0) + 1
            if counts[name] > self.fields[name]:
                raise TooManyFilesException(counts[name], self.fields[name], field=name)
        total = sum(counts.values())
        if total > self.max_file_count:
            raise TooManyFilesException(total, self.max_file_count)

    @property
    def max_request_size(self) -> int:
        """Largest multipart body this endpoint will read, in bytes."""
        return self.max_file_size * self.max_file_count + MULTIPART_OVERHEAD

    @property
    def max_form_files(self) -> int:
        """File parts the form parser may accept.

        One extra per field leaves room for the empty part a browser sends for
        an untouched file input; those are dropped before counting.
        """
        return self.max_file_count + len(self.fields)
