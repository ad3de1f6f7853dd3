"""shiftdesk - command-line entry point."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def _setup_logging() -> logging.Logger:
    """Configure secure logging with rotation.

    Logs are written to ~/.shiftdesk/logs/ with proper permissions.
    Uses INFO level by default; set SHIFTDESK_DEBUG=1 for DEBUG level.
    """
    # Create log directory in user's home (not world-readable /tmp)
    log_dir = Path.home() / ".shiftdesk" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    # Restrict directory permissions to owner only (700)
    log_dir.chmod(0o700)

    log_file = log_dir / "shiftdesk.log"

    log_level = logging.DEBUG if os.environ.get("SHIFTDESK_DEBUG") else logging.INFO

    # 5 MB per file, keep 3 backups
    handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger(__name__)


def main() -> None:
    """Entry point for the shiftdesk command."""
    from .cli import run_cli

    logger = _setup_logging()
    logger.debug(f"shiftdesk invoked with {sys.argv[1:]}")
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
