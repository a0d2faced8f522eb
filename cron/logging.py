"""Cron logging: stdout, plus logs/cron_<script_name>.log when a log dir is configured."""

import logging
from pathlib import Path

from cron.config import config


def get_logger(script_name: str) -> logging.Logger:
    """Return a logger named cron.<script_name>. Handlers are attached once per process."""
    logger = logging.getLogger(f"cron.{script_name}")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    if config.LOG_DIR:
        log_dir = Path(config.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / f"cron_{script_name}.log", encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
