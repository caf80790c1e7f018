"""
口令读取。

公开接口：
    - PassphraseSource: 口令来源协议（collect_new / collect_existing）
    - TerminalPassphraseSource: 从控制终端读取口令的实现

口令只从控制终端读取，不读标准输入，因此无法通过管道或重定向传入，
避免口令出现在 shell 历史或脚本中。返回值为 SecretStr，不会被日志打印。
"""

from __future__ import annotations

import getpass
import os
from typing import Callable, Protocol

from loguru import logger
from pydantic import SecretStr

from mkcert.ca.errors import EmptyPassphraseError, PassphraseMismatchError, TerminalUnavailableError


class PassphraseSource(Protocol):
    def collect_new(self, label: str) -> SecretStr:
        """为新生成的密钥材料读取口令（需要二次确认）。"""
        ...

    def collect_existing(self, label: str) -> SecretStr:
        """为解密已有私钥读取口令（不确认）。"""
        ...


def _ensure_terminal() -> None:
    if os.name != "posix":
        return
    try:
        fd = os.open("/dev/tty", os.O_RDWR | os.O_NOCTTY)
    except OSError as e:
        raise TerminalUnavailableError("没有可用的控制终端，无法读取口令") from e
    os.close(fd)


class TerminalPassphraseSource:
    """通过 getpass 从控制终端读取口令。"""

    def __init__(self, prompt: Callable[[str], str] = getpass.getpass):
        self._prompt = prompt

    def collect_new(self, label: str) -> SecretStr:
        _ensure_terminal()
        value = self._prompt("Enter new passphrase: ")
        confirmation = self._prompt("Verifying - Enter new passphrase: ")

        if value != confirmation:
            raise PassphraseMismatchError(f"两次输入的口令不一致: '{label}'")
        if not value:
            raise EmptyPassphraseError(f"口令不能为空: '{label}'")

        logger.debug(f"已读取新口令: '{label}'")
        return SecretStr(value)

    def collect_existing(self, label: str) -> SecretStr:
        _ensure_terminal()
        return SecretStr(self._prompt(f"Enter passphrase for '{label}': "))
