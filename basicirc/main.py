#!/usr/bin/env python3
"""
Main entry point for the basic IRC client
"""

import asyncio
import logging
import os
import sys

from .config import load_config
from .errors import ConfigError, log_error
from .irc import ReconnectController, SessionOutcome
from .logging_config import LoggerConfigurator
from .logs.logger import logger

DEFAULT_CONFIG_FILE = "irc_config.json"


def resolve_config_path(argv: list[str]) -> str:
    """First positional argument, else ``IRC_CONF_FILE``, else the default."""
    positional = [a for a in argv if not a.startswith("--")]
    if positional:
        return positional[0]
    return os.environ.get("IRC_CONF_FILE", DEFAULT_CONFIG_FILE)


def exit_code_for(outcome: SessionOutcome) -> int:
    """A connection closed by either side is a normal exit."""
    return 1 if outcome is SessionOutcome.CONNECT_FAILED else 0


async def main(config_path: str) -> int:
    """Load the configuration and run the client until it stops.

    Returns:
        The process exit code.
    """
    logger.log_event("app", "start")
    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.log_event(
            "app", "config_invalid", level=logging.ERROR, path=config_path, error=str(e)
        )
        log_error("Configuration error", e)
        return 1

    controller = ReconnectController(config)
    try:
        outcome = await controller.run()
    finally:
        logger.log_event("app", "shutdown")
    return exit_code_for(outcome)


def check_config(config_path: str) -> int:
    try:
        config = load_config(config_path)
    except ConfigError as e:
        log_error("Configuration check failed", e)
        return 1
    logger.log_event("app", "config_check_passed", endpoint=config.endpoint)
    return 0


def run(argv: list[str] | None = None) -> None:
    """Synchronous entry point; the only place that exits the process.

    Raises:
        SystemExit: Always, with the exit code of the run.
    """
    args = sys.argv[1:] if argv is None else argv
    LoggerConfigurator().configure()
    config_path = resolve_config_path(args)

    if "--check-config" in args:
        sys.exit(check_config(config_path))

    try:
        code = asyncio.run(main(config_path))
    except KeyboardInterrupt:
        logger.log_event("app", "interrupted", level=logging.WARNING)
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
