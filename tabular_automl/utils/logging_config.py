# tabular_automl/utils/logging_config.py
import functools
import logging
import sys
import time
import warnings
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd

LOGGER_NAMESPACE = "tabular_automl"
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

# Libraries that log at INFO during a tracked run
_NOISY_LIBRARIES = ("mlflow", "alembic", "urllib3", "git", "httpx")


def setup_logging(
    log_level: str = "INFO",
    log_dir: Union[str, Path] = "logs",
    run_name: str = "pipeline",
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_format: Optional[str] = None
) -> logging.Logger:
    """
    Route root logging to the console and to one file per run

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory holding the run log files
        run_name: Log file prefix, e.g. 'train' or 'predict'
        log_to_file: Whether to write `<run_name>_<timestamp>.log`
        log_to_console: Whether to log to stdout
        log_format: Custom log format string

    Returns:
        The package logger
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    file_path = None
    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_path = log_path / f"{run_name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        root.addHandler(logging.FileHandler(file_path, mode='a', encoding='utf-8'))

    if log_to_console:
        root.addHandler(logging.StreamHandler(sys.stdout))

    for handler in root.handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    package_logger.info(f"Logging initialized for '{run_name}'. Level: {log_level}")
    if file_path is not None:
        package_logger.info(f"Log file: {file_path}")

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace"""
    if name.startswith(LOGGER_NAMESPACE):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def describe_result(result: Any) -> Optional[str]:
    """Shape summary of a returned frame, or of the frame leading a returned tuple"""
    if isinstance(result, tuple) and result:
        result = result[0]
    if isinstance(result, pd.DataFrame):
        return f"{result.shape[0]} rows x {result.shape[1]} columns"
    return None


def log_execution_time(func):
    """Log the duration of a fit or transform call and the shape it produced"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.time()
        logger.info(f"Starting {func.__name__}")

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(
                f"Failed {func.__name__} after {time.time() - start_time:.2f} seconds: "
                f"{type(e).__name__}: {e}"
            )
            raise

        shape = describe_result(result)
        suffix = f" -> {shape}" if shape else ""
        logger.info(f"Completed {func.__name__} in {time.time() - start_time:.2f} seconds{suffix}")
        return result

    return wrapper


class PipelineLogger:
    """Context manager for one workflow node; collects the metrics it reports"""

    def __init__(self, step_name: str, logger: Optional[logging.Logger] = None):
        self.step_name = step_name
        self.logger = logger or get_logger("pipeline")
        self.metrics: Dict[str, Union[int, float, str]] = {}
        self.start_time = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.info(f"=== Starting {self.step_name} ===")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        seconds = (datetime.now() - self.start_time).total_seconds()

        if exc_type is None:
            summary = ", ".join(f"{k}={v}" for k, v in self.metrics.items())
            self.logger.info(
                f"=== Completed {self.step_name} in {seconds:.2f} seconds ==="
                + (f" ({summary})" if summary else "")
            )
        else:
            self.logger.error(
                f"=== Failed {self.step_name} after {seconds:.2f} seconds: "
                f"{exc_type.__name__}: {exc_val} ==="
            )

    def log_progress(self, message: str):
        self.logger.info(f"[{self.step_name}] {message}")

    def log_metric(self, name: str, value: Union[int, float, str]):
        self.metrics[name] = value
        self.logger.info(f"[{self.step_name}] Metric - {name}: {value}")


def configure_library_logging():
    """Keep tracking-store and HTTP chatter out of the run log"""
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    warnings.filterwarnings('ignore', category=FutureWarning, module='sklearn')


def initialize_default_logging(log_level: str = "INFO", log_dir: Union[str, Path] = "logs",
                               run_name: str = "pipeline") -> logging.Logger:
    logger = setup_logging(log_level=log_level, log_dir=log_dir, run_name=run_name)
    configure_library_logging()
    return logger
