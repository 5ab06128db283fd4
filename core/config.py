"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional

MB = 1024 * 1024


class EndpointLimits(BaseModel):
    max_file_size: int = Field(default=10 * MB, gt=0)
    max_file_count: int = Field(default=5, ge=1)


class FieldsEndpointLimits(EndpointLimits):
    # 字段名 -> 该字段最多文件数
    fields: dict[str, int] = Field(
        default_factory=lambda: {"avatar": 1, "gallery": 3, "documents": 2}
    )


class UploadSettings(BaseModel):
    root_dir: str = "./uploads"
    public_base_url: str = "/uploads"
    chunk_size: int = 64 * 1024
    name_retry_attempts: int = 5
    max_basename_length: int = 100

    # 各上传端点的限制
    general: EndpointLimits = Field(default_factory=EndpointLimits)
    image: EndpointLimits = Field(
        default_factory=lambda: EndpointLimits(max_file_size=5 * MB, max_file_count=1)
    )
    fields: FieldsEndpointLimits = Field(default_factory=FieldsEndpointLimits)


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="File Upload Service")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # 分组配置：上传相关采用嵌套模型（UPLOAD__ROOT_DIR 等）
    upload: UploadSettings = Field(default_factory=UploadSettings)

    # CORS配置
    CORS_ORIGINS: list = Field(default=["*"])

    # 日志配置（默认 DEBUG 时为 debug，否则 info）
    LOG_LEVEL: Optional[str] = Field(default=None)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
