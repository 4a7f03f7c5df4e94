"""
loguru setup for the CLI: console, a rotating engine log and an audit trail
of analyses served.
"""
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
AUDIT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {message}"


def _is_audit(record) -> bool:
    return bool(record["extra"].get("audit"))


def setup_logger(
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "10 MB",
    retention: str = "7 days",
    to_file: bool = True
) -> None:
    """
    Replace loguru's default sink.

    Args:
        log_dir: Where market_forecast.log and audit.log go (default: settings.log_dir)
        level: Minimum level for the console and engine log
        rotation: Size or age at which files roll over
        retention: How long rolled files are kept (audit keeps 30 days)
        to_file: False for console output only
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)
    if not to_file:
        return

    if log_dir is None:
        from config.settings import get_settings
        log_dir = get_settings().log_dir
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(log_dir / "market_forecast.log", level=level, format=FILE_FORMAT,
               rotation=rotation, retention=retention, compression="zip")
    logger.add(log_dir / "audit.log", level="INFO", format=AUDIT_FORMAT,
               filter=_is_audit, rotation=rotation, retention="30 days")


def audit_log(event: str, **fields) -> None:
    """Record `event` with key=value fields on the audit sink."""
    parts = [event] + [f"{k}={v}" for k, v in fields.items()]
    logger.bind(audit=True).info(" | ".join(parts))
