"""
accinfo CLI — entry point for all operations.

Usage:
    accinfo encrypt EXPORT.xml -o DB.aidb   # KeePass XML export → encrypted database
    accinfo check DB.aidb                   # Verify the database password
    accinfo serve [DB.aidb]                 # Decrypt, index, and start the query API
    accinfo version                         # Show version

The password is read from $ACCINFO_PASSWORD when set (and removed from the
environment immediately), otherwise prompted for on the terminal.
"""

from __future__ import annotations

import argparse
import dataclasses
import getpass
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from accinfo.config import Config, get_config
from accinfo.errors import AuthenticationFailed, CodecError, ImporterError

logger = logging.getLogger(__name__)

PASSWORD_ENV = "ACCINFO_PASSWORD"
MIN_PASSWORD_LEN = 8

BANNER = r"""
   ____ _______________(_)___  / __/___
  / __ `/ ___/ ___/ / __ \/ /_/ __ \
 / /_/ / /__/ /__/ / / / / __/ /_/ /
 \__,_/\___/\___/_/_/ /_/_/  \____/
"""


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="accinfo",
        description="Encrypted account database with a read-only query API.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--log-level", help="trace/debug/info/warning/error (default: $ACCINFO_LOG_LEVEL)")
    parser.add_argument("--log-file", help="Also log to this file, rotated by size")

    subparsers = parser.add_subparsers(dest="command")

    # encrypt
    enc_parser = subparsers.add_parser("encrypt", help="Import a KeePass XML export and encrypt it")
    enc_parser.add_argument("xml", type=Path, help="KeePass 2.x XML export")
    enc_parser.add_argument("-o", "--output", type=Path, help="Database file (default: $ACCINFO_DATABASE)")
    title_group = enc_parser.add_mutually_exclusive_group()
    title_group.add_argument(
        "--autoname", action="store_true", help="Name untitled entries 'Untitled #N' instead of failing"
    )
    title_group.add_argument("--skip-untitled", action="store_true", help="Drop untitled entries")
    enc_parser.add_argument(
        "--include-recycle-bin", action="store_true", help="Also import entries from the recycle bin"
    )

    # check
    check_parser = subparsers.add_parser("check", help="Verify the database password")
    check_parser.add_argument("database", type=Path, nargs="?", help="Database file")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the query API")
    serve_parser.add_argument("database", type=Path, nargs="?", help="Database file")
    serve_parser.add_argument("--host", help="Bind address (default: $ACCINFO_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default: $ACCINFO_PORT)")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from accinfo import __version__

        print(f"accinfo {__version__}")
        return 0

    cfg = get_config()
    overrides = {
        k: v
        for k, v in {
            "log_level": args.log_level.upper() if args.log_level else None,
            "log_file": args.log_file,
            "host": getattr(args, "host", None),
            "port": getattr(args, "port", None),
        }.items()
        if v is not None
    }
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)

    if args.command == "encrypt":
        configure_logging(cfg)
        return _cmd_encrypt(args, cfg)
    elif args.command == "check":
        configure_logging(cfg)
        return _cmd_check(args, cfg)
    elif args.command == "serve":
        configure_logging(cfg)
        return _cmd_serve(args, cfg)
    else:
        parser.print_help()
        return 0


def configure_logging(cfg: Config) -> None:
    """Configure root logging once per process."""
    level = logging.DEBUG if cfg.log_level == "TRACE" else getattr(logging, cfg.log_level, logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if cfg.log_file:
        handlers.append(RotatingFileHandler(cfg.log_file, maxBytes=cfg.log_max_bytes, backupCount=3))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def _read_password(*, confirm: bool = False) -> str:
    """Password from $ACCINFO_PASSWORD (consumed) or the terminal."""
    password = os.environ.pop(PASSWORD_ENV, None)
    if password is not None:
        return password
    password = getpass.getpass("Database password: ")
    if confirm and getpass.getpass("Repeat password: ") != password:
        raise ValueError("passwords do not match")
    return password


def _cmd_encrypt(args: argparse.Namespace, cfg: Config) -> int:
    from accinfo.db import MissingTitlePolicy, encrypt_export
    from accinfo.db.crypto import KdfParams

    output = args.output or cfg.database
    if args.autoname:
        policy = MissingTitlePolicy.AUTONAME
    elif args.skip_untitled:
        policy = MissingTitlePolicy.SKIP
    else:
        policy = MissingTitlePolicy.REJECT

    try:
        kdf = KdfParams.generate(log_n=cfg.kdf_log_n)
    except ValueError as e:
        print(f"Error: invalid ACCINFO_KDF_LOG_N: {e}", file=sys.stderr)
        return 1

    try:
        password = _read_password(confirm=True)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if len(password) < MIN_PASSWORD_LEN:
        print(f"Error: password must be at least {MIN_PASSWORD_LEN} characters", file=sys.stderr)
        return 1

    try:
        result = encrypt_export(
            args.xml,
            output,
            password,
            missing_title=policy,
            include_recycle_bin=args.include_recycle_bin,
            kdf=kdf,
        )
    except ImporterError as e:
        print(f"Error: import failed: {e}", file=sys.stderr)
        return 1
    except (CodecError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        del password

    print(f"Wrote {len(result.collection)} records to {output}")
    if result.dropped_fields:
        print(f"  Dropped {sum(result.dropped_fields.values())} unmapped fields")
    if result.skipped_entries:
        print(f"  Skipped {result.skipped_entries} untitled entries")
    return 0


def _cmd_check(args: argparse.Namespace, cfg: Config) -> int:
    from accinfo.db import check_password

    database = args.database or cfg.database
    password = _read_password()
    try:
        ok = check_password(database, password)
    except (CodecError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        del password

    print("Password OK." if ok else "Invalid password.")
    return 0 if ok else 1


def _cmd_serve(args: argparse.Namespace, cfg: Config) -> int:
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is required. Install with: pip install accinfo")
        return 1

    from accinfo.api.service import create_app
    from accinfo.db import load_index

    database = args.database or cfg.database

    # Decrypt and index before anything binds a socket
    password = _read_password()
    try:
        index = load_index(database, password)
    except AuthenticationFailed as e:
        print(f"Error: cannot open {database}: {e}", file=sys.stderr)
        return 1
    except (CodecError, OSError) as e:
        print(f"Error: cannot load {database}: {e}", file=sys.stderr)
        return 1
    finally:
        del password

    app = create_app(index, cfg)
    print(BANNER)
    print(f"Serving {len(index)} records on {cfg.listen}...")
    # Access lines carry query strings and usernames
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None, access_log=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
