"""Application entry point for the TriviaRound play server."""

from __future__ import annotations

import argparse
from pathlib import Path

from trivia_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from trivia_app.core.question_bank import QuestionBank
from trivia_app.core.round_manager import RoundManager
from trivia_app.core.scheduler import ThreadingTickScheduler
from trivia_app.server.api_server import start_api_server
from trivia_app.utils.logging_config import configure_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve trivia rounds over HTTP.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--pack",
        type=Path,
        action="append",
        default=[],
        help="Extra JSON question pack to load (repeatable).",
    )
    return parser.parse_args()


def main() -> None:
    """Initialize logging, load question packs and serve the round API."""
    args = _parse_args()
    logger = configure_logging()
    logger.info("Starting TriviaRound server...")

    bank = QuestionBank.from_sample_pack()
    for pack_path in args.pack:
        bank.load_pack_file(pack_path)
    logger.info("Question bank ready: %d categories", len(bank.get_categories()))

    round_manager = RoundManager(bank, scheduler=ThreadingTickScheduler())
    server_thread = start_api_server(round_manager=round_manager, host=args.host, port=args.port)
    logger.info("Round API available at http://%s:%d/", args.host, args.port)
    try:
        server_thread.join()
    finally:
        round_manager.destroy()


if __name__ == "__main__":
    main()
