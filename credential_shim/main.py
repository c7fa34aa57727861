"""
Run a command with short-lived AWS credentials from a container credentials
endpoint, refreshing them in the background while the command runs.

Usage: credential-shim [--log-level LEVEL] -- command [args...]
"""
import sys
import logging
import argparse
from typing import List, Optional, Sequence

from credential_shim import __version__
from credential_shim.core.config import load_settings
from credential_shim.core.exceptions import FATAL_ERRORS
from credential_shim.services.supervisor import Supervisor, split_command

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credential-shim",
        description="Run a command with refreshed AWS container credentials",
        epilog="Everything after -- is run as the supervised command."
    )
    parser.add_argument("--log-level", default=None, type=str.upper,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Log level (default: $CREDENTIAL_SHIM_LOG_LEVEL or INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(level: str) -> None:
    """Log to stderr so the supervised command owns stdout"""
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)]
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point

    Args:
        argv: Arguments without the program name, sys.argv[1:] by default

    Returns:
        Exit code of the supervised command, or 1 on a fatal error
    """
    args_list: List[str] = list(sys.argv[1:] if argv is None else argv)
    own_args, _ = split_command(args_list)
    args, unknown = build_parser().parse_known_args(own_args)

    configure_logging(args.log_level or "INFO")

    try:
        settings = load_settings()
        if args.log_level is None:
            logging.getLogger().setLevel(settings.CREDENTIAL_SHIM_LOG_LEVEL)
        if unknown:
            logger.warning(f"Ignoring unrecognized arguments: {' '.join(unknown)}")

        return Supervisor(settings=settings).start(args_list)
    except FATAL_ERRORS as e:
        logger.critical(str(e))
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
