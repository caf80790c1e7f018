"""
测试 schemas.py 模块。
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mkcert.ca.schemas import BundleRequest, CertificateRequest, IssuanceBatch

VALID = {
    "common_name": "test",
    "organization": "X",
    "locality": "X",
    "state": "X",
    "country": "XX",
    "key_size_bits": 2048,
    "self_signed": True,
}


def test_certificate_request_valid():
    req = CertificateRequest(**VALID)
    assert req.common_name == "test"
    assert req.self_signed is True
    assert req.days_until_expiration is None


def test_certificate_request_missing_field():
    data = dict(VALID)
    del data["key_size_bits"]
    with pytest.raises(ValidationError):
        CertificateRequest(**data)


@pytest.mark.parametrize(
    "field,value",
    [("key_size_bits", -1), ("days_until_expiration", 0), ("days_until_expiration", 3_000_000)],
)
def test_certificate_request_out_of_range(field, value):
    with pytest.raises(ValidationError):
        CertificateRequest(**{**VALID, field: value})


def test_certificate_request_is_immutable():
    req = CertificateRequest(**VALID)
    with pytest.raises(ValidationError):
        req.common_name = "other"


def test_bundle_request_paths():
    """测试证书与归档路径由私钥路径替换扩展名得到"""
    req = BundleRequest(private_key_file=Path("certs/test.key"))
    assert req.name == "test"
    assert req.certificate_file == Path("certs/test.crt")
    assert req.bundle_file == Path("certs/test.p12")


def test_bundle_request_custom_extensions():
    req = BundleRequest(
        private_key_file=Path("test.key"), certificate_extension=".pem", bundle_extension=".pfx"
    )
    assert req.certificate_file == Path("test.pem")
    assert req.bundle_file == Path("test.pfx")


@pytest.mark.parametrize("path", ["x.pem", "x", "x.key.bak"])
def test_bundle_request_requires_key_extension(path):
    """测试打包请求只接受私钥扩展名的文件"""
    with pytest.raises(ValidationError, match="Expected a .key file"):
        BundleRequest(private_key_file=Path(path))


def test_bundle_request_custom_key_extension():
    req = BundleRequest(private_key_file=Path("x.pem"), key_extension=".pem")
    assert req.certificate_file == Path("x.crt")
    with pytest.raises(ValidationError):
        BundleRequest(private_key_file=Path("x.key"), key_extension=".pem")


def test_issuance_batch_defaults():
    batch = IssuanceBatch()
    assert batch.certificates == []
    assert batch.bundles == []
