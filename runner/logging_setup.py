"""
Logging setup for the SEO metadata pipeline.

This module provides:
- Centralized logging configuration
- Console and file handlers
- Log rotation
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv


# Load environment
load_dotenv()


def setup_logging(
    name: str = "seo-pipeline",
    log_level: str = None,
    log_file: str = None,
) -> logging.Logger:
    """
    Setup logging with console and file handlers.

    Args:
        name: Logger name (default: "seo-pipeline")
        log_level: Log level (default: from LOG_LEVEL env var or INFO)
        log_file: Log file path (default: {LOG_DIR}/{name}.log)

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_formatter = logging.Formatter(
        "%(levelname)s - %(name)s - %(message)s"
    )

    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if os.getenv("LOG_TO_FILE", "true").lower() == "true":
        if log_file is None:
            logs_dir = Path(os.getenv("LOG_DIR", "logs"))
            logs_dir.mkdir(parents=True, exist_ok=True)
            log_file = logs_dir / f"{name}.log"

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized: level={log_level}, file={log_file}")

    return logger


def get_logger(name: str = "seo-pipeline") -> logging.Logger:
    """
    Get or create a logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    # If logger hasn't been setup, initialize it
    if not logger.handlers:
        setup_logging(name)

    return logger
