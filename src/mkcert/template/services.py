"""
模板加载：把 YAML 模板文件与待打包的私钥路径转换为 IssuanceBatch。

模板文件的顶层是证书请求列表，例如：

    - common_name: test
      organization: Example
      locality: Berlin
      state: Berlin
      country: DE
      key_size_bits: 2048
      self_signed: true
      days_until_expiration: 365
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import yaml
from loguru import logger
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from mkcert.ca.errors import ConfigError, ValidationError
from mkcert.ca.schemas import BundleRequest, CertificateRequest, IssuanceBatch
from mkcert.config import Config, get_config

_REQUESTS = TypeAdapter(List[CertificateRequest])


def parse_certificate_requests(contents: str, source: str = "<string>") -> List[CertificateRequest]:
    """
    解析模板内容。
    :raises ConfigError: YAML 语法错误、顶层不是列表或字段不合法。
    """
    try:
        data = yaml.safe_load(contents)
    except yaml.YAMLError as e:
        raise ConfigError(f"无效的 YAML 文件 (Invalid YAML file): '{source}': {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError(f"无效的 YAML 文件 (Invalid YAML file): '{source}': 顶层必须是证书请求列表")

    try:
        return _REQUESTS.validate_python(data)
    except PydanticValidationError as e:
        raise ConfigError(f"无效的 YAML 文件 (Invalid YAML file): '{source}': {e}") from e


def load_certificate_requests(path: Path | str) -> List[CertificateRequest]:
    """读取并解析一个模板文件。"""
    path = Path(path)
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"无法读取模板文件: '{path}': {e}") from e

    requests = parse_certificate_requests(contents, source=str(path))
    logger.debug(f"模板 '{path}' 中共有 {len(requests)} 个证书请求")
    return requests


def build_bundle_requests(
    paths: Iterable[Path | str], config: Config | None = None
) -> List[BundleRequest]:
    """
    校验私钥路径的扩展名并生成打包请求。
    :raises ValidationError: 文件扩展名不是配置的私钥扩展名（默认 .key）。
    """
    cfg = config or get_config()
    bundles: List[BundleRequest] = []
    for path in paths:
        path = Path(path)
        if path.suffix != cfg.key_extension:
            raise ValidationError(f"Expected a {cfg.key_extension} file: '{path}'")
        bundles.append(
            BundleRequest(
                private_key_file=path,
                key_extension=cfg.key_extension,
                certificate_extension=cfg.certificate_extension,
                bundle_extension=cfg.bundle_extension,
            )
        )
    return bundles


def build_batch(
    template_files: Iterable[Path | str] = (),
    bundle_files: Iterable[Path | str] = (),
    config: Config | None = None,
) -> IssuanceBatch:
    """按参数顺序合并所有模板文件中的请求，并附上打包请求。"""
    certificates: List[CertificateRequest] = []
    for template in template_files:
        certificates.extend(load_certificate_requests(template))

    return IssuanceBatch(
        certificates=certificates,
        bundles=build_bundle_requests(bundle_files, config=config),
    )
