import logging
import os
from datetime import datetime
from pathlib import Path

LOG_DIR = Path(os.getenv("LIVEWATCH_LOG_DIR", "logs"))

_LOGGERS = {}


def get_logger(
    name: str,
    *,
    runtime: str = "livewatch",
) -> logging.Logger:
    """
    Create or retrieve a named logger.

    Parameters:
    - name: logger namespace (e.g. core.reconciler, discord.client)
    - runtime: log file prefix (livewatch | discord | webhooks)

    Set LIVEWATCH_LOG_TO_FILE=0 to keep output on the console only.
    """
    cache_key = f"{runtime}:{name}"
    if cache_key in _LOGGERS:
        return _LOGGERS[cache_key]

    logger = logging.getLogger(cache_key)
    logger.setLevel(
        getattr(logging, os.getenv("LIVEWATCH_LOG_LEVEL", "DEBUG").upper(), logging.DEBUG)
    )

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # ------------------------------
    # Console handler
    # ------------------------------
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    # ------------------------------
    # File handler (one per run)
    # ------------------------------
    if os.getenv("LIVEWATCH_LOG_TO_FILE", "1") != "0":
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        logfile = LOG_DIR / f"{runtime}-{timestamp}.log"

        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _LOGGERS[cache_key] = logger

    return logger
