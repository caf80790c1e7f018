"""
产物写出。所有输出文件只写一次，已存在时拒绝覆盖。
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from mkcert.ca.errors import OutputExistsError


class FileOutput:
    """
    将产物写入本地文件系统。
    :param base_dir: 相对路径的基准目录。
    """

    def __init__(self, base_dir: Path | str = "."):
        self.base_dir = Path(base_dir)

    def resolve(self, path: Path | str) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.base_dir / path

    def ensure_absent(self, *paths: Path | str) -> None:
        """任一目标文件已存在时抛出 OutputExistsError。"""
        for path in paths:
            target = self.resolve(path)
            if target.exists():
                raise OutputExistsError(f"输出文件已存在，拒绝覆盖: '{target}'")

    def write_once(self, path: Path | str, data: bytes, private: bool = False) -> Path:
        """
        以独占创建方式写入文件。
        :param private: 为私钥等敏感材料时，文件在创建时即为 0600 权限。
        :return: 实际写入的路径。
        """
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0)
            fd = os.open(target, flags, 0o600 if private else 0o666)
        except FileExistsError as e:
            raise OutputExistsError(f"输出文件已存在，拒绝覆盖: '{target}'") from e
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        logger.info(f"已写入: {target}")
        return target
