"""
配置加载测试：默认值、环境变量、mkcert.json 的优先级。
"""

import json
from pathlib import Path

import pytest

from mkcert.ca.errors import ConfigError
from mkcert.config import Config, load_config


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MKCERT_CONFIG_FILE", raising=False)
    monkeypatch.delenv("MKCERT_DEFAULT_DAYS_UNTIL_EXPIRATION", raising=False)
    monkeypatch.delenv("MKCERT_LOG_LEVEL", raising=False)
    return tmp_path


def test_defaults(clean_env):
    cfg = Config()
    assert cfg.default_days_until_expiration == 366
    assert cfg.csr_include_san is True
    assert cfg.verify_bundle_key_pair is True
    assert cfg.output_dir == Path(".")
    assert (cfg.key_extension, cfg.certificate_extension, cfg.csr_extension, cfg.bundle_extension) == (
        ".key",
        ".crt",
        ".csr",
        ".p12",
    )


def test_json_file(clean_env):
    (clean_env / "mkcert.json").write_text(
        json.dumps({"default_days_until_expiration": 30, "csr_extension": "req"}), encoding="utf-8"
    )
    cfg = Config()
    assert cfg.default_days_until_expiration == 30
    assert cfg.csr_extension == ".req"


def test_config_file_env(clean_env, monkeypatch):
    path = clean_env / "custom.json"
    path.write_text(json.dumps({"log_level": "debug"}), encoding="utf-8")
    monkeypatch.setenv("MKCERT_CONFIG_FILE", str(path))
    assert Config().log_level == "DEBUG"


def test_env_overrides_json(clean_env, monkeypatch):
    (clean_env / "mkcert.json").write_text(
        json.dumps({"default_days_until_expiration": 30}), encoding="utf-8"
    )
    monkeypatch.setenv("MKCERT_DEFAULT_DAYS_UNTIL_EXPIRATION", "10")
    assert Config().default_days_until_expiration == 10


def test_init_overrides_env(clean_env, monkeypatch):
    monkeypatch.setenv("MKCERT_DEFAULT_DAYS_UNTIL_EXPIRATION", "10")
    assert Config(default_days_until_expiration=5).default_days_until_expiration == 5


def test_load_config(clean_env):
    (clean_env / "mkcert.json").write_text(json.dumps({"log_level": "warning"}), encoding="utf-8")
    assert load_config().log_level == "WARNING"


def test_malformed_json_file(clean_env):
    """测试 mkcert.json 语法错误时报告为带文件名的 ConfigError"""
    (clean_env / "mkcert.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="mkcert.json"):
        load_config()


@pytest.mark.parametrize(
    "name,value,field",
    [
        ("MKCERT_DEFAULT_DAYS_UNTIL_EXPIRATION", "abc", "default_days_until_expiration"),
        ("MKCERT_DEFAULT_DAYS_UNTIL_EXPIRATION", "0", "default_days_until_expiration"),
        ("MKCERT_LOG_LEVEL", "nope", "log_level"),
    ],
)
def test_invalid_env_value(clean_env, monkeypatch, name, value, field):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError, match=field) as ei:
        load_config()
    assert "\n" not in str(ei.value)
