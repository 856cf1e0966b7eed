import sys
from loguru import logger


def setup_logging(level="INFO", show_time=True, sink=None):
    """Configure loguru for the project.

    Parameters
    ----------
    level : str
        Logging level (DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)
    show_time : bool
        Whether to show timestamps in the output.
    sink : file-like or path, optional
        Destination for log records; stderr by default.
    """
    logger.remove()

    if show_time:
        log_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
        )
    else:
        log_format = (
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
        )

    logger.add(sink if sink is not None else sys.stderr,
               format=log_format, level=level, colorize=sink is None)

    return logger


def setup_from_config(cfg):
    """Configure logging from a LoggingConfig."""
    return setup_logging(level=cfg.level, show_time=cfg.show_time)
