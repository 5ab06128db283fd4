"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class UnsupportedTypeException(BusinessException):
    def __init__(self, mime_type: Optional[str], *, field: Optional[str] = None):
        super().__init__(
            code=BusinessCode.UNSUPPORTED_TYPE,
            message=f"Unsupported file type: {mime_type or 'unknown'}",
            error_type="UnsupportedType",
            details={"mime_type": mime_type},
            field=field,
        )


class FileTooLargeException(BusinessException):
    def __init__(self, max_size: int, *, filename: Optional[str] = None, field: Optional[str] = None):
        details: dict = {"max_size": max_size}
        if filename is not None:
            details["filename"] = filename
        super().__init__(
            code=BusinessCode.FILE_TOO_LARGE,
            message=f"File size exceeds the limit ({max_size // (1024 * 1024)}MB max)",
            error_type="TooLarge",
            details=details,
            field=field,
        )


class TooManyFilesException(BusinessException):
    def __init__(self, count: int, max_count: int, *, field: Optional[str] = None):
        super().__init__(
            code=BusinessCode.TOO_MANY_FILES,
            message=f"Too many files uploaded ({max_count} max)",
            error_type="TooMany",
            details={"count": count, "max_count": max_count},
            field=field,
        )


class UnexpectedFieldException(BusinessException):
    def __init__(self, field_name: str):
        super().__init__(
            code=BusinessCode.UNEXPECTED_FIELD,
            message=f"Unexpected file field: {field_name}",
            error_type="UnexpectedField",
            details={"field": field_name},
            field=field_name,
        )


class NoFileProvidedException(BusinessException):
    def __init__(self, message: str = "No file uploaded"):
        super().__init__(
            code=BusinessCode.NO_FILE_PROVIDED,
            message=message,
            error_type="NoFileProvided",
        )


class StorageUnavailableException(BusinessException):
    """存储不可用：仅对当前请求致命，内部原因只写日志不回传。"""

    def __init__(self, message: str = "Storage is temporarily unavailable"):
        super().__init__(
            code=BusinessCode.STORAGE_UNAVAILABLE,
            message=message,
            error_type="StorageUnavailable",
        )


class StoredFileNotFoundException(BusinessException):
    def __init__(self, filename: Optional[str] = None):
        details = {"filename": filename} if filename else None
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="File not found",
            error_type="NotFound",
            details=details,
        )
