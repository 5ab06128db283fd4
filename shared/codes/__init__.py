"""
Shared business codes used across layers (Domain/Core/API).

This package exposes BusinessCode at `shared.codes` as the single
source of truth for upload error codes.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    # Success
    SUCCESS = 0

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_VALIDATION_ERROR = 10003

    # Business errors (2xxxx)
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006  # Generic resource not found

    # Upload errors (201xx)
    UNSUPPORTED_TYPE = 20101
    FILE_TOO_LARGE = 20102
    TOO_MANY_FILES = 20103
    UNEXPECTED_FIELD = 20104
    NO_FILE_PROVIDED = 20105

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003
    STORAGE_UNAVAILABLE = 40004


__all__ = ["BusinessCode"]
