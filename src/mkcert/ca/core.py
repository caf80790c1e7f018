"""
证书签发引擎的核心逻辑实现。
包括生成 RSA 密钥对、构建 X.509 名称与扩展、签发自签名证书与 CSR、
私钥加解密以及 PKCS#12 打包等。
"""

import re
from datetime import datetime, timedelta, timezone
from typing import List, Sequence, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    PrivateFormat,
    PublicFormat,
    pkcs12,
)
from cryptography.x509.oid import NameOID
from loguru import logger
from pydantic import SecretStr

from .errors import (
    BundleError,
    EncodingError,
    ExtensionError,
    KeyGenerationError,
    SigningError,
    ValidationError,
    WrongPassphraseError,
)
from .schemas import CertificateRequest

# 名称属性的追加顺序不可调整：部分证书查看器（如 Windows）按插入顺序渲染，
# 需要与历史产物保持一致。
NAME_ATTRIBUTE_ORDER: Tuple[Tuple[x509.ObjectIdentifier, str], ...] = (
    (NameOID.COUNTRY_NAME, "country"),
    (NameOID.STATE_OR_PROVINCE_NAME, "state"),
    (NameOID.LOCALITY_NAME, "locality"),
    (NameOID.ORGANIZATION_NAME, "organization"),
    (NameOID.COMMON_NAME, "common_name"),
)

SERIAL_NUMBER_BITS = 159

_DNS_LABEL = r"[A-Za-z0-9_](?:[A-Za-z0-9_-]{0,61}[A-Za-z0-9_])?"
_DNS_NAME_RE = re.compile(rf"^(?:\*\.)?{_DNS_LABEL}(?:\.{_DNS_LABEL})*\.?$")

Extension = Tuple[x509.ExtensionType, bool]


def build_x509_name(request: CertificateRequest) -> x509.Name:
    """
    按固定顺序 C → ST → L → O → CN 构建 X.509 名称。
    :param request: 证书请求。
    :return: 构建好的名称。
    :raises EncodingError: 任一属性无法编码。
    """
    try:
        name = x509.Name(
            [x509.NameAttribute(oid, getattr(request, field)) for oid, field in NAME_ATTRIBUTE_ORDER]
        )
        # 提前做一次 DER 编码，字符集问题在这里暴露而不是拖到签名阶段
        name.public_bytes()
    except ValueError as e:
        raise EncodingError(f"无法编码证书名称 '{request.common_name}': {e}") from e
    return name


def new_key_pair(key_size_bits: int, public_exponent: int = 65537) -> rsa.RSAPrivateKey:
    """
    生成指定模长的 RSA 密钥对，每次调用都是独立的新密钥。
    :raises KeyGenerationError: 模长或公钥指数不被支持。
    """
    try:
        key = rsa.generate_private_key(public_exponent=public_exponent, key_size=key_size_bits)
    except ValueError as e:
        raise KeyGenerationError(f"无法生成 {key_size_bits} 位 RSA 密钥: {e}") from e
    logger.debug(f"已生成 {key_size_bits} 位 RSA 密钥")
    return key


def new_serial_number() -> int:
    """生成 159 位随机序列号，编码为正整数，不需要额外处理符号位。"""
    return x509.random_serial_number()


def dns_name(common_name: str) -> x509.DNSName:
    if len(common_name) > 253 or not _DNS_NAME_RE.match(common_name):
        raise ExtensionError(f"'{common_name}' 不是合法的 DNS 名称，无法写入 SAN")
    try:
        return x509.DNSName(common_name)
    except ValueError as e:
        raise ExtensionError(f"'{common_name}' 不是合法的 DNS 名称，无法写入 SAN: {e}") from e


def build_certificate_extensions(
    request: CertificateRequest, public_key: rsa.RSAPublicKey
) -> List[Extension]:
    """
    构建自签名证书的扩展集合，顺序为 SAN → SKI → AKI → BasicConstraints。
    AKI 引用本证书自己的 SKI（仅 keyid 模式），因此必须排在 SKI 之后。
    :param request: 证书请求。
    :param public_key: 证书主体（同时也是签发者）的公钥。
    :return: (扩展, 是否关键) 列表。
    """
    subject_key_identifier = x509.SubjectKeyIdentifier.from_public_key(public_key)
    return [
        (x509.SubjectAlternativeName([dns_name(request.common_name)]), False),
        (subject_key_identifier, False),
        (
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(subject_key_identifier),
            False,
        ),
        (x509.BasicConstraints(ca=True, path_length=None), True),
    ]


def build_csr_extensions(request: CertificateRequest, include_san: bool = True) -> List[Extension]:
    """CSR 只携带 SAN；是否为 CA 由日后签发它的机构决定。"""
    if not include_san:
        return []
    return [(x509.SubjectAlternativeName([dns_name(request.common_name)]), False)]


def _apply_extensions(builder, extensions: Sequence[Extension]):
    for extension, critical in extensions:
        builder = builder.add_extension(extension, critical=critical)
    return builder


def validity_window(days: int, now: datetime | None = None) -> Tuple[datetime, datetime]:
    """
    计算证书有效期窗口 (not_before, not_after)。
    :raises ValidationError: not_after 超出可表示的日期范围。
    """
    not_before = now or datetime.now(timezone.utc)
    try:
        not_after = not_before + timedelta(days=days)
    except OverflowError as e:
        raise ValidationError(f"有效期超出可表示的日期范围 (validity out of range): {days} 天") from e
    return not_before, not_after


def new_self_signed_certificate(
    request: CertificateRequest,
    key: rsa.RSAPrivateKey,
    days: int,
    now: datetime | None = None,
) -> x509.Certificate:
    """
    签发自签名证书（X.509 v3），签发者与主体相同，有效期自签发时刻起 days 天。
    :param request: 证书请求。
    :param key: 证书密钥，同时用于签名。
    :param days: 有效期（天）。
    :param now: 签发时刻，缺省为当前 UTC 时间。
    :return: 已签名的证书。
    :raises ValidationError: 有效期超出可表示的日期范围。
    :raises SigningError: 签名原语拒绝该密钥。
    """
    name = build_x509_name(request)
    not_before, not_after = validity_window(days, now)
    extensions = build_certificate_extensions(request, key.public_key())

    builder = (
        x509.CertificateBuilder()
        .serial_number(new_serial_number())
        .issuer_name(name)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .subject_name(name)
        .public_key(key.public_key())
    )
    builder = _apply_extensions(builder, extensions)

    try:
        cert = builder.sign(private_key=key, algorithm=hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise SigningError(f"证书签名失败 '{request.common_name}': {e}") from e
    logger.debug(f"已签发自签名证书 '{request.common_name}'，序列号 {cert.serial_number:x}")
    return cert


def new_csr(
    request: CertificateRequest, key: rsa.RSAPrivateKey, include_san: bool = True
) -> x509.CertificateSigningRequest:
    """
    使用请求者自己的私钥生成 CSR。
    :raises SigningError: 签名原语拒绝该密钥。
    """
    name = build_x509_name(request)
    builder = x509.CertificateSigningRequestBuilder().subject_name(name)
    builder = _apply_extensions(builder, build_csr_extensions(request, include_san))

    try:
        csr = builder.sign(private_key=key, algorithm=hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise SigningError(f"CSR 签名失败 '{request.common_name}': {e}") from e
    logger.debug(f"已生成 CSR '{request.common_name}'")
    return csr


def encrypt_private_key(key, passphrase: SecretStr) -> bytes:
    """将私钥序列化为口令加密的 PKCS#8 PEM（AES-256-CBC）。"""
    return key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=BestAvailableEncryption(passphrase.get_secret_value().encode("utf-8")),
    )


def decrypt_private_key(data: bytes, passphrase: SecretStr, source: str = "<memory>"):
    """
    解密 PEM 格式的私钥。
    :param data: PEM 数据。
    :param passphrase: 口令。
    :param source: 私钥来源（文件路径），仅用于错误信息。
    :raises WrongPassphraseError: 口令错误、私钥未加密或文件损坏。
    """
    try:
        return serialization.load_pem_private_key(
            data, password=passphrase.get_secret_value().encode("utf-8")
        )
    except (ValueError, TypeError) as e:
        raise WrongPassphraseError(
            f"无法解密私钥，可能是口令错误或 .key 文件损坏: '{source}'"
        ) from e


def key_matches_certificate(key, cert: x509.Certificate) -> bool:
    """判断私钥与证书中的公钥是否成对。"""
    spki = (Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
    return key.public_key().public_bytes(*spki) == cert.public_key().public_bytes(*spki)


def new_pkcs12_bundle(
    name: str,
    key,
    cert: x509.Certificate,
    passphrase: SecretStr,
    verify_pair: bool = True,
) -> bytes:
    """
    将私钥与证书打包为口令保护的 PKCS#12（DER）。
    :param name: friendly name。
    :param verify_pair: 是否在打包前校验私钥与证书匹配。
    :raises BundleError: 私钥与证书不匹配或打包失败。
    """
    if verify_pair and not key_matches_certificate(key, cert):
        raise BundleError(f"私钥与证书不匹配: '{name}'")
    try:
        return pkcs12.serialize_key_and_certificates(
            name=name.encode("utf-8"),
            key=key,
            cert=cert,
            cas=None,
            encryption_algorithm=BestAvailableEncryption(
                passphrase.get_secret_value().encode("utf-8")
            ),
        )
    except (ValueError, TypeError) as e:
        raise BundleError(f"PKCS#12 打包失败 '{name}': {e}") from e


def load_certificate(data: bytes, source: str = "<memory>") -> x509.Certificate:
    """
    加载 PEM 格式的证书。
    :raises BundleError: 证书文件无法解析。
    """
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise BundleError(f"无效的证书文件: '{source}': {e}") from e
