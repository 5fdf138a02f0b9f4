"""
Centralized Logging Utilities and Decorators

Every ingestion concern (fetcher, classifier, filters, catalog, pipeline...)
logs through a named logger configured here, so a run leaves one log file per
concern under logs/.

Usage:
    from src.logger import setup_logging, log_function

    logger = setup_logging(
        logger_name="pipeline",
        log_file="logs/pipeline.log",
        verbose=True,
    )

    @log_function(logger_name="pipeline", log_execution_time=True)
    def run_ingestion_job(batch_size, dry_run=False):
        ...
"""

import functools
import logging
import time
from pathlib import Path
from typing import Optional, Callable, Any


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    logger_name: str,
    log_file: Optional[str] = None,
    verbose: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Set up a named logger with a file handler and an optional console handler.

    Args:
        logger_name: Name for the logger (e.g., "fetcher")
        log_file: Path to log file (default: "logs/<logger_name>.log")
        verbose: If True, add console handler with DEBUG level (default: False)
        level: Base logging level (default: logging.INFO)

    Returns:
        Configured logger instance. Calling this twice for the same name
        returns the already configured logger untouched.
    """
    logger = logging.getLogger(logger_name)

    # Avoid adding multiple handlers if already configured
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else level)

    log_path = Path(log_file or f"logs/{logger_name}.log")
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    if verbose:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(console_handler)

    return logger


def log_function(
    logger_name: Optional[str] = None,
    level: int = logging.INFO,
    log_args: bool = False,
    log_result: bool = False,
    log_execution_time: bool = True,
) -> Callable:
    """
    Decorator logging function entry, exit, execution time and exceptions.

    Exceptions are logged with their traceback and re-raised unchanged.

    Args:
        logger_name: Logger name (default: the decorated function's module)
        level: Log level for entry/exit messages (default: logging.INFO)
        log_args: If True, log function arguments (default: False)
        log_result: If True, log return value (default: False)
        log_execution_time: If True, log execution duration (default: True)

    Example:
        @log_function(logger_name="maintenance", log_result=True)
        def update_all_categories():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = logging.getLogger(logger_name or func.__module__)

            func_name = func.__name__
            log_msg = f"Calling {func_name}"
            if log_args and (args or kwargs):
                args_repr = [repr(a) for a in args]
                kwargs_repr = [f"{k}={v!r}" for k, v in kwargs.items()]
                log_msg += f" with args: {', '.join(args_repr + kwargs_repr)}"
            logger.log(level, log_msg)

            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                execution_time = time.time() - start_time
                logger.error(
                    f"Exception in {func_name} after {execution_time:.2f}s: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                raise

            completion_msg = f"Completed {func_name}"
            if log_execution_time:
                completion_msg += f" in {time.time() - start_time:.2f}s"
            if log_result:
                completion_msg += f" with result: {result!r}"
            logger.log(level, completion_msg)
            return result

        return wrapper

    return decorator
