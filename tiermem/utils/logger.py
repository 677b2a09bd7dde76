"""
Logging configuration using Loguru.

Call sites pass structured fields as `extra={...}`. Loguru captures that
keyword as a nested `extra["extra"]` dict; the patcher installed here lifts
its fields to the top level so JSON file logs can be filtered on owner,
sensory record, workflow step and so on, and the console line shows the
identifiers listed in CONTEXT_KEYS.
"""

import sys
from pathlib import Path

from loguru import logger

# Identifiers shown on the console line, in this order
CONTEXT_KEYS = (
    "owner_id",
    "sensory_id",
    "memory_id",
    "workflow",
    "step",
    "task",
    "bucket",
    "error_type",
    "error",
)

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level><dim>{extra[context]}</dim>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}{extra[context]}"


def format_context(fields: dict) -> str:
    """Render known identifiers as ` [key=value ...]`, or "" when none are set."""
    parts = [f"{key}={fields[key]}" for key in CONTEXT_KEYS if fields.get(key) is not None]
    return f" [{' '.join(parts)}]" if parts else ""


def flatten_extra(record) -> None:
    """Loguru patcher: merge `extra={...}` fields into the record's extra dict."""
    fields = record["extra"]
    nested = fields.pop("extra", None)
    if isinstance(nested, dict):
        for key, value in nested.items():
            # Bound values such as `module` win over call-site fields
            fields.setdefault(key, value)
    fields["context"] = format_context(fields)


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = True,
    log_dir: str = "logs",
    file_rotation: str = "10 MB",
    file_retention: str = "7 days",
    compression: str = "zip",
    serialize: bool = True,
) -> None:
    """Configure Loguru with structured context, console output and rotated JSON files."""
    logger.remove()
    logger.configure(patcher=flatten_extra)

    logger.add(
        sys.stderr,
        level=level,
        format=CONSOLE_FORMAT,
        colorize=True,
        serialize=False,
    )

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        # Background runs are long-lived, so file logs are JSON for later querying
        logger.add(
            log_path / "tiermem_{time:YYYY-MM-DD}.log",
            level=level,
            format=FILE_FORMAT,
            rotation=file_rotation,
            retention=file_retention,
            compression=compression,
            serialize=serialize,
            enqueue=True,
        )


def get_logger(name: str):
    """Get a logger instance for a module."""
    return logger.bind(module=name)
