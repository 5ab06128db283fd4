"""文件上传/列表/删除相关路由。"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile
from starlette.types import Message

from api.dependencies import endpoint_policy, get_upload_service
from application.dto import (
    DeleteResultDTO,
    FieldsUploadResponseDTO,
    FileRecordDTO,
    ImageUploadDTO,
    MultiUploadResponseDTO,
    StoredFileDTO,
    UploadFailureDTO,
)
from application.services.upload_service import UploadApplicationService
from application.utils.policies import FIELDS, GENERAL, IMAGE, MULTIPLE
from core.response import Response as ApiResponse, success_response
from domain.common.exceptions import FileTooLargeException, NoFileProvidedException
from domain.upload.entity import StoredFile, UploadPart
from domain.upload.policy import EndpointPolicy


router = APIRouter(
    prefix="/upload",
    tags=["文件上传"],
)

_MULTIPART_BODY = {
    "requestBody": {
        "content": {"multipart/form-data": {"schema": {"type": "object"}}},
        "required": True,
    }
}


def _file_parts(form) -> list[UploadPart]:
    # 浏览器会为未选择文件的 <input type=file> 提交空文件名的部分，忽略之
    return [
        UploadPart(
            field_name=name,
            filename=value.filename,
            content_type=value.content_type,
            stream=value,
        )
        for name, value in form.multi_items()
        if isinstance(value, UploadFile) and value.filename
    ]


def limit_request_body(request: Request, policy: EndpointPolicy) -> Request:
    """按端点上限约束请求体读取。

    声明的 Content-Length 超限时在读取任何字节前拒绝；分块传输的请求体在
    解析表单过程中一旦累计超限即中止，不会先整体落盘再检查。
    """
    limit = policy.max_request_size
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise FileTooLargeException(policy.max_file_size)

    received = 0

    async def receive() -> Message:
        nonlocal received
        message = await request.receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                raise FileTooLargeException(policy.max_file_size)
        return message

    return Request(request.scope, receive)


def _absolute_url(request: Request, url: str) -> str:
    """以 / 开头的公开路径补全为带协议和主机的完整URL。"""
    if url.startswith("/"):
        return str(request.base_url).rstrip("/") + url
    return url


def _to_dto(request: Request, stored: StoredFile) -> StoredFileDTO:
    return StoredFileDTO.from_stored(stored, url=_absolute_url(request, stored.url or ""))


@router.post(
    "/single",
    summary="单文件上传（字段 file）",
    response_model=ApiResponse[StoredFileDTO],
    openapi_extra=_MULTIPART_BODY,
)
async def upload_single(
    request: Request,
    policy: EndpointPolicy = Depends(endpoint_policy(GENERAL)),
    service: UploadApplicationService = Depends(get_upload_service),
):
    limited = limit_request_body(request, policy)
    async with limited.form(max_files=policy.max_form_files) as form:
        stored = await service.handle_single_upload(_file_parts(form), policy)
    return success_response(data=_to_dto(request, stored), message="File uploaded successfully")


@router.post(
    "/multiple",
    summary="多文件上传（字段 files）",
    response_model=ApiResponse[MultiUploadResponseDTO],
    openapi_extra=_MULTIPART_BODY,
)
async def upload_multiple(
    request: Request,
    policy: EndpointPolicy = Depends(endpoint_policy(MULTIPLE)),
    service: UploadApplicationService = Depends(get_upload_service),
):
    limited = limit_request_body(request, policy)
    async with limited.form(max_files=policy.max_form_files) as form:
        batch = await service.handle_multi_upload(_file_parts(form), policy)
    data = MultiUploadResponseDTO(
        files=[_to_dto(request, f) for f in batch.files],
        failed=[UploadFailureDTO.from_failure(f) for f in batch.failed],
    )
    return success_response(data=data, message=f"Uploaded {len(batch.files)} file(s)")


@router.post(
    "/fields",
    summary="多字段文件上传（avatar / gallery / documents）",
    response_model=ApiResponse[FieldsUploadResponseDTO],
    openapi_extra=_MULTIPART_BODY,
)
async def upload_fields(
    request: Request,
    policy: EndpointPolicy = Depends(endpoint_policy(FIELDS)),
    service: UploadApplicationService = Depends(get_upload_service),
):
    limited = limit_request_body(request, policy)
    async with limited.form(max_files=policy.max_form_files) as form:
        batch = await service.handle_fields_upload(_file_parts(form), policy)
    data = FieldsUploadResponseDTO(
        files={
            field_name: [_to_dto(request, f) for f in files]
            for field_name, files in batch.files.items()
        },
        failed=[UploadFailureDTO.from_failure(f) for f in batch.failed],
    )
    return success_response(data=data, message="Fields uploaded successfully")


@router.post(
    "/image",
    summary="图片上传（字段 image，仅 image/*）",
    response_model=ApiResponse[ImageUploadDTO],
    openapi_extra=_MULTIPART_BODY,
)
async def upload_image(
    request: Request,
    policy: EndpointPolicy = Depends(endpoint_policy(IMAGE)),
    service: UploadApplicationService = Depends(get_upload_service),
):
    limited = limit_request_body(request, policy)
    async with limited.form(max_files=policy.max_form_files) as form:
        parts = _file_parts(form)
        if not parts:
            raise NoFileProvidedException("Please upload an image file")
        stored = await service.handle_single_upload(parts, policy)
    data = ImageUploadDTO(
        filename=stored.storage_name,
        url=_absolute_url(request, stored.url or ""),
        size=stored.size_bytes,
    )
    return success_response(data=data, message="Image uploaded successfully")


@router.delete(
    "/delete/{filename:path}",
    summary="按文件名删除",
    response_model=ApiResponse[DeleteResultDTO],
)
async def delete_file(
    filename: str,
    service: UploadApplicationService = Depends(get_upload_service),
):
    """只按文件名查找（目录部分会被剥离），跨日期目录取第一个匹配。"""
    key = await service.delete_by_name(filename)
    data = DeleteResultDTO(filename=key.rsplit("/", 1)[-1], path=key)
    return success_response(data=data, message="File deleted successfully")


@router.get(
    "/list",
    summary="文件列表",
    response_model=ApiResponse[list[FileRecordDTO]],
)
async def list_files(
    service: UploadApplicationService = Depends(get_upload_service),
):
    entries = await service.list_all()
    return success_response(data=[FileRecordDTO.from_entry(e) for e in entries])
