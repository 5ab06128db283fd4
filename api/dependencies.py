"""
API依赖项 - 存储与上传服务注入
"""
from fastapi import Depends

from application.ports.storage import StoragePort
from application.services.upload_service import UploadApplicationService
from application.utils.policies import get_endpoint_policies
from domain.upload.policy import EndpointPolicy
from infrastructure.external.storage import StorageProvider, get_storage, get_storage_config
from infrastructure.adapters.storage_port import StorageProviderPortAdapter


async def get_storage_port(provider: StorageProvider = Depends(get_storage)) -> StoragePort:
    return StorageProviderPortAdapter(provider)


async def get_upload_service(storage: StoragePort = Depends(get_storage_port)) -> UploadApplicationService:
    return UploadApplicationService(
        storage=storage,
        max_basename_length=get_storage_config().max_basename_length,
    )


def endpoint_policy(name: str):
    """Dependency factory returning the named endpoint's policy."""

    async def _policy() -> EndpointPolicy:
        return get_endpoint_policies()[name]

    return _policy
