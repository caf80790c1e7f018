"""
批量处理证书请求与打包请求的业务逻辑层。

先处理打包请求，再处理证书请求：打包只依赖已有文件，文件缺失之类的错误
应在耗时且需要交互的证书生成循环开始前暴露。任何一个请求失败都会中止整个批次，
已经写出的文件保留不动。
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

from cryptography.hazmat.primitives.serialization import Encoding
from loguru import logger

from mkcert.config import Config, get_config
from mkcert.output.core import FileOutput
from mkcert.passphrase.core import PassphraseSource

from . import core
from .errors import MissingFileError, ValidationError
from .schemas import BundleRequest, CertificateRequest, IssuanceBatch


def _artifact_stem(request: CertificateRequest) -> str:
    stem = request.common_name
    if not stem or stem in {".", ".."} or os.sep in stem or (os.altsep and os.altsep in stem):
        raise ValidationError(f"common_name 不能用作文件名: '{stem}'")
    return stem


def process_bundle(
    request: BundleRequest,
    passphrases: PassphraseSource,
    output: FileOutput,
    config: Config | None = None,
) -> Path:
    """
    将已有私钥与同名证书打包为 PKCS#12。
    :return: 写出的归档路径。
    :raises MissingFileError: 私钥或证书文件不存在。
    :raises OutputExistsError: 归档文件已存在。
    """
    cfg = config or get_config()
    logger.info(f"Bundle: {request.name}")

    key_file = request.private_key_file
    cert_file = request.certificate_file
    bundle_file = request.bundle_file.absolute()

    if not key_file.is_file():
        raise MissingFileError(f"缺少私钥文件 (missing private key file): '{key_file}'")
    if not cert_file.is_file():
        raise MissingFileError(f"缺少证书文件 (missing certificate file): '{cert_file}'")
    output.ensure_absent(bundle_file)

    key_data = key_file.read_bytes()
    cert = core.load_certificate(cert_file.read_bytes(), source=str(cert_file))

    passphrase = passphrases.collect_existing(str(key_file))
    key = core.decrypt_private_key(key_data, passphrase, source=str(key_file))
    p12 = core.new_pkcs12_bundle(
        request.name, key, cert, passphrase, verify_pair=cfg.verify_bundle_key_pair
    )
    del passphrase

    return output.write_once(bundle_file, p12, private=True)


def process_certificate_request(
    request: CertificateRequest,
    passphrases: PassphraseSource,
    output: FileOutput,
    config: Config | None = None,
) -> List[Path]:
    """
    为一个证书请求生成加密私钥，并签发自签名证书或 CSR。
    :return: 写出的文件路径（私钥在前）。
    """
    cfg = config or get_config()
    stem = _artifact_stem(request)
    key_path = Path(stem + cfg.key_extension)
    if request.self_signed:
        artifact_path = Path(stem + cfg.certificate_extension)
    else:
        artifact_path = Path(stem + cfg.csr_extension)

    output.ensure_absent(key_path, artifact_path)
    # 名称、SAN 与有效期的问题在提示输入口令之前暴露
    core.build_x509_name(request)
    if request.self_signed or cfg.csr_include_san:
        core.dns_name(request.common_name)
    days = request.days_until_expiration or cfg.default_days_until_expiration
    if request.self_signed:
        core.validity_window(days)

    logger.info(f"New certificate: '{request.common_name}'")
    passphrase = passphrases.collect_new(request.common_name)
    key = core.new_key_pair(request.key_size_bits, cfg.public_exponent)
    written = [output.write_once(key_path, core.encrypt_private_key(key, passphrase), private=True)]
    del passphrase

    if request.self_signed:
        cert = core.new_self_signed_certificate(request, key, days)
        written.append(output.write_once(artifact_path, cert.public_bytes(Encoding.PEM)))
    else:
        csr = core.new_csr(request, key, include_san=cfg.csr_include_san)
        written.append(output.write_once(artifact_path, csr.public_bytes(Encoding.PEM)))
    return written


def process_batch(
    batch: IssuanceBatch,
    passphrases: PassphraseSource,
    output: FileOutput | None = None,
    config: Config | None = None,
) -> List[Path]:
    """
    依次处理批次中的全部请求，遇到第一个错误即中止。
    :param batch: 已解析的请求。
    :param passphrases: 口令来源。
    :param output: 输出位置，缺省为配置中的 output_dir。
    :return: 按写出顺序排列的全部文件路径。
    """
    cfg = config or get_config()
    output = output or FileOutput(cfg.output_dir)

    written: List[Path] = []
    for bundle in batch.bundles:
        written.append(process_bundle(bundle, passphrases, output, cfg))
    for request in batch.certificates:
        written.extend(process_certificate_request(request, passphrases, output, cfg))

    logger.info(f"完成：共写出 {len(written)} 个文件")
    return written
