"""
Logging configuration for the journal server.

stdout carries the MCP protocol, so all log output goes to stderr.
"""

import logging
import os
import sys

PACKAGE_LOGGER = "private_journal"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Model downloads print progress bars that would corrupt a stdio session
os.environ.setdefault("HF_HUB_DISABLE_PROGRESS_BARS", "1")
os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach one stderr handler to the package logger.

    Args:
        debug: Log at DEBUG instead of INFO, and let the embedding
            libraries log too.

    Returns:
        The package logger.
    """
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Safe to call twice
    if not any(getattr(h, "_journal_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        handler._journal_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)

    library_level = logging.DEBUG if debug else logging.WARNING
    for name in ("sentence_transformers", "transformers", "httpx"):
        logging.getLogger(name).setLevel(library_level)

    return logger
