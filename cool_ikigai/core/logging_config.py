# cool_ikigai/core/logging_config.py
import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
QUIET_LOGGERS = ("uvicorn.access", "openai", "httpx", "httpcore")


def setup_logging() -> logging.Logger:
    """Console and rotating-file logging, configured once per process"""
    root = logging.getLogger()
    root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    if getattr(root, "_cool_ikigai_configured", False):
        return root

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = [
        logging.StreamHandler(),
        RotatingFileHandler(log_dir / 'cool_ikigai.log', maxBytes=5_000_000, backupCount=5, encoding='utf-8'),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root._cool_ikigai_configured = True
    return root
