import os
import sys

from loguru import logger


def setup_logger(*, json_logs: bool = False, level: str = "INFO", log_dir: str = "logs") -> None:
    """Configure loguru for the tracker.

    Console level controlled by LOG_LEVEL env (default: ``level``).
    File always captures DEBUG so skipped transactions can be traced later.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
                "<level>{message}</level>"
            ),
            level=console_level,
            colorize=True,
        )

    logger.add(
        f"{log_dir}/wallet_tracker_{{time:YYYY-MM-DD}}.log",
        rotation="00:00",
        retention="7 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )
