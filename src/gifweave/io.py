"""I/O utilities for atomic writes, JSON config files and logging setup."""

import json
import logging
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from shutil import move
from typing import Any

from .config import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Set up logging configuration for gifweave.

    Logs always go to the console; when ``config.LOGS_DIR`` is set, a
    timestamped log file is written there as well.

    Args:
        config: Logging settings (defaults read environment overrides)

    Returns:
        Configured logger instance
    """
    if config is None:
        config = LoggingConfig()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.LOGS_DIR is not None:
        log_dir = Path(config.LOGS_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers.append(logging.FileHandler(log_dir / f"gifweave_{timestamp}.log"))

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )

    return logging.getLogger("gifweave")


@contextmanager
def atomic_write(target_path: Path, mode: str = "wb"):
    """Context manager for atomic file writes using temporary files.

    Args:
        target_path: Final path where file should be written
        mode: File open mode

    Yields:
        File handle for writing

    Example:
        with atomic_write(Path("out.gif")) as f:
            f.write(gif_bytes)
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    # Temporary file in the target directory, so the move stays on one filesystem
    with tempfile.NamedTemporaryFile(
        mode=mode,
        dir=target_path.parent,
        delete=False,
        suffix=f".tmp_{target_path.name}",
    ) as temp_file:
        try:
            yield temp_file
            temp_file.flush()
        except Exception:
            temp_file.close()
            Path(temp_file.name).unlink(missing_ok=True)
            raise
    move(temp_file.name, target_path)


def write_gif(data: bytes, target_path: Path) -> Path:
    """Atomically write finished GIF bytes to ``target_path``."""
    target_path = Path(target_path)
    with atomic_write(target_path, "wb") as f:
        f.write(data)
    return target_path


def load_json(json_path: Path) -> dict[str, Any]:
    """Load JSON data from file.

    Args:
        json_path: Path to JSON file

    Returns:
        Parsed JSON data

    Raises:
        IOError: If file cannot be read
        json.JSONDecodeError: If JSON is invalid
    """
    with open(json_path, encoding="utf-8") as f:
        return json.load(f)
