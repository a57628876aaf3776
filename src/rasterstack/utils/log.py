import logging
import os
import sys

from tqdm import tqdm

LOG_LEVEL_ENV = "RASTERSTACK_LOG_LEVEL"


class TqdmLoggingHandler(logging.StreamHandler):
    """Stream handler that goes through ``tqdm.write`` so progress bars stay intact."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str | int = "INFO",
    use_tqdm_handler: bool = False,
    format: str = "%(asctime)s %(name)s %(levelname)s: %(message)s",
    datefmt: str = "%Y-%m-%d %H:%M:%S",
) -> None:
    """Configure the root logger. Call once from a script's entry point.

    Args:
        level: Level name ('DEBUG', 'INFO', ...) or logging constant. The
            RASTERSTACK_LOG_LEVEL environment variable takes precedence.
        use_tqdm_handler: Route records through TqdmLoggingHandler.
        format: Log message format.
        datefmt: Timestamp format.
    """
    level = os.environ.get(LOG_LEVEL_ENV) or level
    if isinstance(level, str):
        numeric_level = getattr(logging, level.upper(), None)
        if not isinstance(numeric_level, int):
            raise ValueError(f"Invalid log level: {level}")
        level = numeric_level

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    handler = TqdmLoggingHandler(sys.stderr) if use_tqdm_handler else logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=format, datefmt=datefmt))
    root_logger.addHandler(handler)
