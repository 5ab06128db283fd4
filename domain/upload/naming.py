"""Filename sanitizing and storage name allocation.

Storage names look like ``<basename>-<millis>-<rand><ext>``. The basename keeps
only ASCII letters, digits and CJK unified ideographs; everything else becomes
one underscore per character, so a storage name can never carry a path
separator or a dot-segment.
"""
from __future__ import annotations

import os
import re
import secrets
import time
from typing import Callable, Optional

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9\u4e00-\u9fa5]")

RANDOM_SUFFIX_MAX = 10**9
DEFAULT_MAX_BASENAME_LENGTH = 100
MAX_EXTENSION_LENGTH = 16
# UTF-8 budgets; with the suffix the whole name stays under NAME_MAX (255 bytes)
MAX_BASENAME_BYTES = 200
MAX_EXTENSION_BYTES = 16


def _last_segment(name: str) -> str:
    return name.replace("\\", "/").rsplit("/", 1)[-1]


def _truncate_utf8(value: str, max_bytes: int) -> str:
    # Cut on a character boundary, never mid code point
    return value.encode("utf-8")[:max_bytes].decode("utf-8", "ignore")


def split_filename(original: Optional[str]) -> tuple[str, str]:
    """Split a client filename into ``(basename, extension)``.

    Directory components are dropped first (``/`` and ``\\`` both count), then
    the extension is split the way ``os.path.splitext`` does it: ``.bashrc``
    has no extension, ``report.tar.gz`` has ``.gz``.
    """
    return os.path.splitext(_last_segment(original or ""))


def sanitize_basename(name: str, max_length: int = DEFAULT_MAX_BASENAME_LENGTH) -> str:
    """Replace every disallowed character with ``_``. Never raises.

    The result is capped at ``max_length`` characters and at
    ``MAX_BASENAME_BYTES`` once UTF-8 encoded, so a CJK name (3 bytes per
    character) still fits a single path component.
    """
    return _truncate_utf8(_UNSAFE_CHARS_RE.sub("_", name or "")[:max_length], MAX_BASENAME_BYTES)


def sanitize_extension(ext: str) -> str:
    if not ext:
        return ""
    body = _UNSAFE_CHARS_RE.sub("_", ext.lstrip("."))
    return "." + _truncate_utf8(body[:MAX_EXTENSION_LENGTH], MAX_EXTENSION_BYTES)


def bare_filename(name: Optional[str]) -> str:
    """Strip directory components: ``../../etc/passwd`` -> ``passwd``.

    Trailing separators are ignored, so ``foo/`` -> ``foo``.
    """
    bare = _last_segment((name or "").rstrip("/\\"))
    if bare in {".", ".."}:
        return ""
    return bare


def allocate_storage_name(
    basename: str,
    ext: str,
    *,
    clock: Callable[[], float] = time.time,
    randbelow: Callable[[int], int] = secrets.randbelow,
) -> str:
    """Build ``<basename>-<millis>-<rand><ext>``.

    The suffix alone is non-empty, so the result is never empty. Uniqueness is
    probabilistic; the writer verifies it at commit time.
    """
    millis = int(clock() * 1000)
    rand = randbelow(RANDOM_SUFFIX_MAX + 1)
    return f"{basename}-{millis}-{rand}{ext}"


def storage_name_for(
    original: Optional[str],
    *,
    max_basename_length: int = DEFAULT_MAX_BASENAME_LENGTH,
) -> str:
    """Sanitize a client filename and allocate a fresh storage name for it."""
    basename, ext = split_filename(original)
    return allocate_storage_name(
        sanitize_basename(basename, max_basename_length),
        sanitize_extension(ext),
    )
