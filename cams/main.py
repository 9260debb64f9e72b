import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from cams.errors import CampDataError, FormatError, ReferentialIntegrityError
from cams.services.data_transfer import TransferService
from cams.utils.logging_config import setup_logging

logger = logging.getLogger("cams.main")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cams", description="Check and normalise a CAMs data directory."
    )
    parser.add_argument(
        "--log-dir", default="logs", help="Directory for app.log and error.log."
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    check = subcommands.add_parser("check", help="Import the data files and report problems.")
    check.add_argument("--data-dir", type=Path, default=None)

    normalize = subcommands.add_parser(
        "normalize", help="Import the data files and write them back in canonical form."
    )
    normalize.add_argument("--data-dir", type=Path, default=None)
    normalize.add_argument(
        "--accept",
        action="store_true",
        help="Prune dangling references instead of stopping on integrity violations.",
    )
    return parser


def _check(transfer: TransferService) -> int:
    try:
        report = transfer.import_all()
    except FormatError as exc:
        print(f"{len(exc.errors)} malformed row(s):")
        for error in exc.errors:
            print(f"  {error}")
        return 1
    except ReferentialIntegrityError as exc:
        print(exc)
        return 1
    print(report.summary())
    return 0


def _normalize(transfer: TransferService, accept: bool) -> int:
    try:
        transfer.import_all()
    except ReferentialIntegrityError as exc:
        if not accept:
            print(exc)
            return 1
        remaining = transfer.acknowledge()
        print(f"accepted import with {len(remaining)} remaining violation(s)")
    written = transfer.export_all()
    for path in written:
        print(f"wrote {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(args.log_dir, level="WARNING")
    transfer = TransferService(args.data_dir)
    try:
        if args.command == "check":
            return _check(transfer)
        return _normalize(transfer, args.accept)
    except CampDataError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
