#!/usr/bin/env python
"""
命令行入口。

    mkcert --file template.yaml
    mkcert --bundle test.key
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from loguru import logger

from mkcert import __version__
from mkcert.ca.errors import MkcertError
from mkcert.ca.services import process_batch
from mkcert.config import Config, load_config
from mkcert.output.core import FileOutput
from mkcert.passphrase.core import PassphraseSource, TerminalPassphraseSource
from mkcert.template.services import build_batch


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mkcert",
        description="A simple program to create X.509 certificates, CSRs and PKCS #12 bundles.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-f", "--file", action="append", type=Path, default=[], help="Template file"
    )
    parser.add_argument(
        "-b",
        "--bundle",
        action="append",
        type=Path,
        default=[],
        help="Bundle a private key with a certificate into a PKCS #12 file.",
    )
    parser.add_argument(
        "-o", "--output-dir", type=Path, default=None, help="Directory for new keys and certificates"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def setup_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format="<level>{level: <8}</level> | {message}")


def main(
    argv: List[str] | None = None,
    passphrases: PassphraseSource | None = None,
    config: Config | None = None,
) -> int:
    # .env 必须在读取配置之前加载，其中的 MKCERT_CONFIG_FILE 等变量才会生效
    load_dotenv(Path.cwd() / ".env")

    parser = build_parser()
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        parser.print_help()
        return 2
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else "INFO")
    try:
        cfg = config or load_config()
        if not args.verbose:
            setup_logging(cfg.log_level)
        output = FileOutput(args.output_dir if args.output_dir is not None else cfg.output_dir)
        batch = build_batch(args.file, args.bundle, config=cfg)
        process_batch(batch, passphrases or TerminalPassphraseSource(), output=output, config=cfg)
    except (MkcertError, OSError) as e:
        logger.error(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
