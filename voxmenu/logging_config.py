"""Loguru setup for the call endpoint.

Every record carries a `call_id` extra ("-" outside a call). Session code
logs through `call_logger()`, so per-call lines can be grepped out of the
console and land in a separate calls log. Caller identities are masked with
`mask_caller()` before they are logged.
"""

import sys
from pathlib import Path

from loguru import logger

NO_CALL = "-"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[call_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[call_id]} | "
    "{name}:{function}:{line} | {message}"
)


def _in_call(record) -> bool:
    return record["extra"].get("call_id", NO_CALL) != NO_CALL


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    enable_file: bool = True,
) -> None:
    """Install console and (optionally) file sinks.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        enable_file: Write the service, calls and errors logs under log_dir
    """
    logger.remove()
    logger.configure(extra={"call_id": NO_CALL})

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "voxmenu_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level=level,
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            diagnose=False,
        )

        # Call lifecycle only: answer, keys, actions, termination
        logger.add(
            log_path / "calls_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level="INFO",
            filter=_in_call,
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            diagnose=False,
        )

        logger.add(
            log_path / "errors_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT + "\n{exception}",
            level="ERROR",
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

    logger.info(f"Logging initialized at {level} level")


def get_logger(name: str) -> "logger":
    """Module logger; records outside a call show call id "-"."""
    return logger.bind(name=name, call_id=NO_CALL)


def call_logger(name: str, call_id: str) -> "logger":
    """Logger bound to one call, used by the per-call session."""
    return logger.bind(name=name, call_id=call_id)


def mask_caller(caller: str) -> str:
    """Mask a caller URI or number: sip:420777123456@host -> 42XXXX3456."""
    if not caller:
        return "XXXX"
    user = caller.split(":", 1)[-1].split("@", 1)[0]
    if len(user) < 6:
        return "XXXX"
    return f"{user[:2]}XXXX{user[-4:]}"
