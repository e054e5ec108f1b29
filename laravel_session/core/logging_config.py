# laravel_session/core/logging_config.py
"""Logging configuration for laravel-session"""

import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


def setup_logging(log_to_file: Optional[bool] = None):
    """Configure root logging (console plus optional rotating file)"""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if log_to_file is None:
        log_to_file = "LOG_DIR" in os.environ

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler (attach once)
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Rotating file handler, max 5 MB per file, 5 files
    if log_to_file:
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / 'laravel_session.log'
        if not any(isinstance(h, RotatingFileHandler) and h.baseFilename == os.path.abspath(log_file)
                   for h in root_logger.handlers):
            file_handler = RotatingFileHandler(
                filename=str(log_file),
                maxBytes=5 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiomysql").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root_logger


def set_debug(enabled: bool) -> None:
    """Lower the package logger to DEBUG when the client runs with debug on"""
    if enabled:
        logging.getLogger("laravel_session").setLevel(logging.DEBUG)
