"""配置管理 — Pydantic Settings 从 TOML 加载。"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

_DEFAULT_TOML = Path(__file__).resolve().parent.parent / "config" / "default.toml"

# Gemini SDK 惯用的环境变量名，gemini.api_key 为空时兜底读取
_FALLBACK_KEY_ENV = "GEMINI_API_KEY"


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class GeminiConfig(BaseModel):
    api_key: str = ""
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash"
    timeout: float = 60.0
    temperature: float | None = None
    response_mime_type: str | None = None


class AnalyzerConfig(BaseModel):
    max_image_bytes: int = Field(default=10 * 1024 * 1024, gt=0)


class Settings(BaseSettings):
    server: ServerConfig = ServerConfig()
    gemini: GeminiConfig = GeminiConfig()
    analyzer: AnalyzerConfig = AnalyzerConfig()

    model_config = {"env_prefix": "CIRCUITWISE_", "env_nested_delimiter": "__"}

    def resolve_api_key(self) -> str:
        """返回可用的 Gemini 凭证，配置为空时回退到 GEMINI_API_KEY。"""
        return self.gemini.api_key or os.environ.get(_FALLBACK_KEY_ENV, "")


def load_settings(toml_path: Path = _DEFAULT_TOML) -> Settings:
    """从 TOML 文件加载配置，环境变量可覆盖 TOML 未设置的字段。"""
    if toml_path.exists():
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
        return Settings(**data)
    return Settings()
