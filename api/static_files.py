"""
上传文件静态访问
"""
from pathlib import Path

from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope


class PublicUploadFiles(StaticFiles):
    """只公开日期目录下的已存储文件。

    以 ``.`` 开头的路径段（暂存目录 ``.staging``、健康检查文件等）一律 404，
    未完成的上传不可经由公开地址读取。
    """

    async def get_response(self, path: str, scope: Scope) -> Response:
        if any(part.startswith(".") for part in Path(path).parts):
            raise HTTPException(status_code=404)
        return await super().get_response(path, scope)
