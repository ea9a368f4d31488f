from __future__ import annotations

import os

from pydantic import PositiveFloat
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MINERU_EXTRACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_host: str = "127.0.0.1"
    api_port: int = 7911

    log_level: str = "INFO"

    # 逗号分隔；为空表示不挂 CORS 中间件
    cors_origins: str = ""

    # MinerU 服务默认地址：CLI 与上传接口未显式传入时使用
    mineru_api_url: str = ""
    # 仅作用于动作内部自建的 httpx 客户端；None 表示沿用 httpx 默认超时
    mineru_timeout: PositiveFloat | None = None

    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        # 允许测试或部署环境显式禁用 .env
        if os.getenv("MINERU_EXTRACT_DISABLE_DOTENV") == "1":
            _settings = Settings(_env_file=None)
        else:
            _settings = Settings()
    return _settings


def reset_settings_for_tests() -> None:
    """仅用于测试：清空配置缓存，便于使用 monkeypatch 设置环境变量。"""
    global _settings
    _settings = None
