"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, Field, model_serializer
from typing import Optional
from datetime import datetime, timezone

from application.ports.storage import FileEntry
from application.services.upload_service import UploadFailure
from domain.upload.entity import StoredFile


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class StoredFileDTO(DTOBase):
    """上传成功的文件"""

    original_name: str
    filename: str = Field(..., description="存储文件名")
    mimetype: Optional[str] = None
    size: int
    path: str = Field(..., description="相对存储根目录的路径，如 2024-01-15/report-1705300000000-42.pdf")
    url: str
    field: Optional[str] = None

    @classmethod
    def from_stored(cls, stored: StoredFile, url: Optional[str] = None) -> "StoredFileDTO":
        return cls(
            original_name=stored.original_name,
            filename=stored.storage_name,
            mimetype=stored.declared_mime_type,
            size=stored.size_bytes,
            path=stored.key,
            url=url or stored.url or "",
            field=stored.field_name,
        )


class ImageUploadDTO(DTOBase):
    """图片上传结果（精简字段）"""

    filename: str
    url: str
    size: int


class UploadFailureDTO(DTOBase):
    """批量上传中失败的单个文件"""

    original_name: str
    field: str
    error_type: str
    message: str

    @classmethod
    def from_failure(cls, failure: UploadFailure) -> "UploadFailureDTO":
        return cls(
            original_name=failure.part.filename,
            field=failure.part.field_name,
            error_type=failure.error.error_type,
            message=failure.error.message,
        )


class MultiUploadResponseDTO(DTOBase):
    files: list[StoredFileDTO]
    failed: list[UploadFailureDTO] = Field(default_factory=list)


class FieldsUploadResponseDTO(DTOBase):
    files: dict[str, list[StoredFileDTO]]
    failed: list[UploadFailureDTO] = Field(default_factory=list)


class FileRecordDTO(DTOBase):
    """文件列表条目"""

    filename: str
    path: str
    size: int
    created_at: Optional[datetime] = None
    url: str

    @classmethod
    def from_entry(cls, entry: FileEntry) -> "FileRecordDTO":
        return cls(
            filename=entry.filename,
            path=entry.key,
            size=entry.size,
            created_at=entry.created_at,
            url=entry.url,
        )


class DeleteResultDTO(DTOBase):
    filename: str
    path: str
