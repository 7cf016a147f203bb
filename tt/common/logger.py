import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from tt.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attaches the handler under the given name, unless the logger already carries one by that name (repeat imports,
# repeat get_logger calls from tests).
def _attach(logger: logging.Logger, handler_name: str, handler: logging.Handler, level, fmt) -> None:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.set_name(handler_name)
    logger.addHandler(handler)

def _has_handler(logger: logging.Logger, handler_name: str) -> bool:
    return any(h.get_name() == handler_name for h in logger.handlers)

# Keeps only the newest `keep` per-run debug logs.
def _prune_debug_runs(debug_dir: Path, name: str, keep: int) -> None:
    runs = sorted(debug_dir.glob(f"{name}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
    for run in runs[keep:]:
        try: run.unlink()
        except OSError: pass

def get_logger(
        name = "tasktimer",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 2 * 1024 * 1024,
        backup_count = 3,
        persistent = True,
        console = False,
        historical_debugs: int = 5
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(min(level, logging.DEBUG) if historical_debugs > 0 else level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    # Rotating log that survives across runs
    if persistent and not _has_handler(logger, f"{name}:persistent"):
        _attach(logger, f"{name}:persistent", RotatingFileHandler(
            filename=log_dir / f"{name}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ), level, fmt)

    # Latest-only log, overwritten each run
    if not _has_handler(logger, f"{name}:latest"):
        _attach(logger, f"{name}:latest", logging.FileHandler(log_dir / "latest.log", mode="w", encoding="utf-8"),
                level, fmt)

    # Full debug log for this run, so a recovered or lost timer can be traced after the fact
    if historical_debugs > 0 and not _has_handler(logger, f"{name}:historical_debug"):
        debug_dir = log_dir / "debug"
        debug_dir.mkdir(parents=True,exist_ok=True)
        run_path = debug_dir / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
        _attach(logger, f"{name}:historical_debug", logging.FileHandler(run_path, encoding="utf-8"),
                logging.DEBUG, fmt)
        _prune_debug_runs(debug_dir, name, historical_debugs)

    if console and not _has_handler(logger, f"{name}:console"):
        _attach(logger, f"{name}:console", logging.StreamHandler(), level, fmt)

    return logger

log = get_logger(
    level=getattr(logging, os.getenv("TASKTIMER_LOG_LEVEL", "INFO").upper(), logging.INFO),
    console=os.getenv("TASKTIMER_LOG_CONSOLE", "") not in ("", "0"),
)
log.info("=== TASKTIMER SESSION STARTED ===")
