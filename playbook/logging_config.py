import logging
import logging.handlers
from pathlib import Path

from .config import LOG_DIR, LOG_LEVEL


def setup_logging(log_level: str = LOG_LEVEL, log_dir: str = LOG_DIR) -> None:
    """Configure logging for Playbook Studio."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return  # Already configured (gunicorn, pytest)

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / "playbook_studio.log"

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    # File handler with rotation (5MB max, keep 3 backups)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3
    )
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # PIL is chatty at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging initialized (level=%s)", log_level)
