"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import upload as upload_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from api.static_files import PublicUploadFiles
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.external.storage import (
    init_storage_client,
    shutdown_storage_client,
    get_storage_client,
    get_storage_config,
)


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 初始化本地存储；失败时直接中止启动
    await init_storage_client()
    storage = get_storage_client()
    if storage and await storage.health_check():
        logger.info("storage_health_check_passed", root=str(get_storage_config().root_dir))
    else:
        logger.error("storage_health_check_failed", root=str(get_storage_config().root_dir))

    yield

    await shutdown_storage_client()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="文件上传服务：按日期分目录存储、列表与按文件名删除",
)

# 添加中间件（注意顺序：从下往上执行）
# 1. 日志中间件（依赖request_id）
app.add_middleware(LoggingMiddleware)

# 2. Request ID中间件（最先执行，为后续中间件提供request_id）
app.add_middleware(RequestIDMiddleware)

# 3. CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册全局异常处理器
register_exception_handlers(app)

# 注册路由
app.include_router(upload_routes.router, prefix="/api")

# 静态文件服务 - 用于访问上传的文件（仅当公开地址是本服务下的路径时挂载）
if settings.upload.public_base_url.startswith("/"):
    Path(settings.upload.root_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.upload.public_base_url.rstrip("/"),
        PublicUploadFiles(directory=settings.upload.root_dir, check_dir=False),
        name="uploads",
    )


# 根路径
@app.get("/", tags=["Root"])
async def root():
    """API根路径"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "endpoints": [
                "POST /api/upload/single",
                "POST /api/upload/multiple",
                "POST /api/upload/fields",
                "POST /api/upload/image",
                "DELETE /api/upload/delete/{filename}",
                "GET /api/upload/list",
            ],
        },
        message="File upload service is running",
    )


# 健康检查
@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    storage = get_storage_client()
    healthy = bool(storage and await storage.health_check())
    return success_response(data={"status": "healthy" if healthy else "degraded", "storage": healthy})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
