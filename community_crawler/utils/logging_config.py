import logging
import os
import sys
from pathlib import Path

from loguru import logger


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logger(level: str | None = None, log_file: str = "community_crawler.log", log_dir: Path | str = "logs"):
    """
    Configure loguru for the crawler: console, rotating file, and optional JSON sink.
    """
    level = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Remove default handler to avoid duplicate logs
    logger.remove()
    logger.configure(extra={"worker": "-"})

    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>w{extra[worker]}</cyan> | <level>{message}</level>",
        level=level,
    )
    logger.add(
        log_dir / log_file,
        rotation="10 MB",
        retention="10 days",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | w{extra[worker]} - {message}",
        backtrace=True,
        diagnose=True,
        enqueue=True,
    )
    if os.environ.get("LOG_JSON", "").strip().lower() in {"1", "true", "yes", "on"}:
        logger.add(log_dir / "community_crawler.jsonl", serialize=True, level=level, rotation="10 MB")

    # Intercept standard logging (Playwright, asyncio) and route to loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)
    for logger_name in ["playwright", "asyncio"]:
        logging.getLogger(logger_name).handlers = [InterceptHandler()]
        logging.getLogger(logger_name).propagate = False
