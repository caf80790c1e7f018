"""
证书签发引擎的数据模型定义。
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CertificateRequest(BaseModel):
    """
    模板文件中的一条证书请求，解析后不可变。
    名称字段不做额外校验，交给 X.509 名称编码器处理。
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    common_name: str
    organization: str
    locality: str
    state: str
    country: str
    key_size_bits: int = Field(ge=0, description="RSA 模长（位）")
    self_signed: bool
    days_until_expiration: int | None = Field(
        default=None, gt=0, description="有效期（天），缺省时使用配置中的默认值"
    )

    @field_validator("days_until_expiration")
    @classmethod
    def check_validity_range(cls, value: int | None) -> int | None:
        # 到期日必须落在 datetime 可表示的范围内（9999 年以前）
        if value is not None:
            try:
                datetime.now(timezone.utc) + timedelta(days=value)
            except OverflowError as e:
                raise ValueError(f"validity out of range: {value} days") from e
        return value


class BundleRequest(BaseModel):
    """
    指向一个 .key 私钥文件的打包请求。
    证书与归档文件路径由私钥路径替换扩展名得到，三者共享同一个文件名主干。
    """

    model_config = ConfigDict(frozen=True)

    private_key_file: Path
    key_extension: str = ".key"
    certificate_extension: str = ".crt"
    bundle_extension: str = ".p12"

    @model_validator(mode="after")
    def check_key_extension(self) -> "BundleRequest":
        if self.private_key_file.suffix != self.key_extension:
            raise ValueError(f"Expected a {self.key_extension} file: '{self.private_key_file}'")
        return self

    @property
    def name(self) -> str:
        """归档中的 friendly name，取私钥文件名主干。"""
        return self.private_key_file.stem

    @property
    def certificate_file(self) -> Path:
        return self.private_key_file.with_suffix(self.certificate_extension)

    @property
    def bundle_file(self) -> Path:
        return self.private_key_file.with_suffix(self.bundle_extension)


class IssuanceBatch(BaseModel):
    """一次运行要处理的全部请求，按模板中出现的顺序排列。"""

    model_config = ConfigDict(frozen=True)

    certificates: list[CertificateRequest] = Field(default_factory=list)
    bundles: list[BundleRequest] = Field(default_factory=list)
