"""Entry point for the wallet trade tracker."""

import argparse
import asyncio
import signal
import sys

from loguru import logger

from config.settings import Settings, settings
from src.tracker.worker import process_signature, run_tracker
from src.utils.logger import setup_logger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Report SOL and SPL token balance changes of a watched wallet."
    )
    parser.add_argument(
        "--signature",
        help="Process a single transaction signature and exit instead of subscribing",
    )
    return parser.parse_args(argv)


async def watch(cfg: Settings) -> int:
    """Run the tracker until a shutdown signal. Returns the process exit code."""
    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_event_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    tracker_task = asyncio.create_task(run_tracker(cfg))

    done, pending = await asyncio.wait(
        [tracker_task, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    exit_code = 0
    if (
        tracker_task in done
        and not tracker_task.cancelled()
        and tracker_task.exception() is not None
    ):
        logger.opt(exception=tracker_task.exception()).error(
            f"Tracker stopped unexpectedly: {tracker_task.exception()}"
        )
        exit_code = 1

    logger.info("Shutdown complete")
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logger(json_logs=settings.json_logs, level=settings.log_level)

    missing = settings.missing_required()
    if args.signature:
        # one-shot mode never opens the websocket
        missing = [name for name in missing if name != "WSS_URL"]
    if missing:
        logger.error(f"{', '.join(missing)} not defined in the environment or .env file")
        return 1

    if args.signature:
        asyncio.run(process_signature(settings, args.signature))
        return 0

    logger.info(f"Starting wallet tracker for {settings.target_wallet}")
    return asyncio.run(watch(settings))


if __name__ == "__main__":
    sys.exit(main())
