"""Logging configuration."""
import logging
from datetime import datetime
from pathlib import Path
from typing import Union


def setup_logging(log_dir: str = "logs", level: Union[int, str] = logging.INFO) -> Path:
    """Set up logging configuration."""
    # Create logs directory
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Create log filename with timestamp
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_path / f"citation_engine_{timestamp}.log"

    # Configure logging format
    log_format = '%(asctime)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    # Set up handlers
    handlers = [
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.StreamHandler()  # Console output
    ]

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    # Configure logging
    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=handlers
    )

    logging.info("Logging initialized")
    logging.info(f"Log file: {log_file}")
    return log_file


def log_operation(operation: str, details: str, level: int = logging.INFO) -> None:
    """Log an operation with details."""
    logging.getLogger("citation_engine").log(level, f"{operation}: {details}")
