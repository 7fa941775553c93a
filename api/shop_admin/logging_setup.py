# -*- coding: utf-8 -*-
from __future__ import annotations
import logging, logging.handlers, sys
from pathlib import Path

def setup_logging(settings) -> Path:
    """Configure rotating file + console logging under DATA_ROOT/logs/shop_admin.log"""
    root = Path(settings.DATA_ROOT).expanduser()
    log_dir = root / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "shop_admin.log"
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    handler = logging.handlers.RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(fmt)
    handler.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    console.setLevel(level)

    logger = logging.getLogger()  # root
    logger.setLevel(level)
    # create_app may run more than once per process
    if not any(getattr(h, 'baseFilename', '').endswith("shop_admin.log") for h in logger.handlers):
        logger.addHandler(handler)
        logger.addHandler(console)

    # also wire uvicorn loggers (if present)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        if not any(getattr(h, 'baseFilename', '').endswith("shop_admin.log") for h in lg.handlers):
            lg.addHandler(handler)

    return log_path
