"""
配置加载模块：支持 .env、环境变量（MKCERT_ 前缀）、工作目录 mkcert.json（或 MKCERT_CONFIG_FILE 指定）多来源合并。
公开接口：
- Config: 读取配置的设置类
- load_config: 读取配置，来源中的错误统一转换为 ConfigError
- get_config: 缓存的默认配置实例
内部方法：
- Config.settings_customise_sources: 自定义配置来源顺序
- Config.normalize_extension: 统一扩展名格式（补齐前导点）
- Config.check_log_level: 日志级别必须是 loguru 已知的级别
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

from loguru import logger
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, SettingsError

from mkcert.ca.errors import ConfigError


class Config(BaseSettings):
    # 请求未指定 days_until_expiration 时使用的有效期（天）
    default_days_until_expiration: int = Field(default=366, gt=0)
    public_exponent: int = 65537
    # CSR 是否携带 SAN（DNS:common_name）
    csr_include_san: bool = True
    # 打包前是否校验私钥与证书匹配
    verify_bundle_key_pair: bool = True
    output_dir: Path = Path(".")
    key_extension: str = ".key"
    certificate_extension: str = ".crt"
    csr_extension: str = ".csr"
    bundle_extension: str = ".p12"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MKCERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator(
        "key_extension",
        "certificate_extension",
        "csr_extension",
        "bundle_extension",
        mode="before",
    )
    @classmethod
    def normalize_extension(cls, value: Any) -> Any:
        """支持 "key" 与 ".key" 两种写法。"""
        if isinstance(value, str):
            text = value.strip()
            if text and not text.startswith("."):
                return "." + text
            return text
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        logger.level(value)
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """自定义配置来源顺序：入参 > 环境变量 > .env > mkcert.json > secrets。"""

        class JsonFileSettingsSource(PydanticBaseSettingsSource):
            """从工作目录的 mkcert.json（或 MKCERT_CONFIG_FILE 指定路径）加载配置的自定义 Source。"""

            def __init__(self, settings_cls):
                super().__init__(settings_cls)
                self._data: Dict[str, Any] | None = None

            def _load(self) -> None:
                if self._data is not None:
                    return
                cfg_path = os.environ.get("MKCERT_CONFIG_FILE")
                path = Path(cfg_path) if cfg_path else Path.cwd() / "mkcert.json"
                if not path.exists():
                    self._data = {}
                    return
                try:
                    with path.open("r", encoding="utf-8") as f:
                        data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise ConfigError(f"无法读取配置文件 (invalid config file): '{path}': {e}") from e
                self._data = data if isinstance(data, dict) else {}

            def __call__(self) -> Dict[str, Any]:
                self._load()
                return dict(self._data or {})

            def get_field_value(self, field, field_name):  # type: ignore[override]
                """为满足抽象基类要求，按字段名返回字段值。"""
                self._load()
                data = self._data or {}
                if field_name in data:
                    return data[field_name], field_name, False
                return None, field_name, False

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonFileSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_config() -> Config:
    """
    按当前环境读取配置。
    :raises ConfigError: 配置文件或环境变量中的值不合法，信息压缩为一行。
    """
    try:
        return Config()
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"无效的配置 (invalid configuration): {details}") from e
    except SettingsError as e:
        raise ConfigError(f"无效的配置 (invalid configuration): {e}") from e


@lru_cache
def get_config() -> Config:
    return load_config()
