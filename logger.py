"""
Logging for the interaction analysis

Provides:
- One-time setup of the 'interaction_mover' logger tree from CONFIG
- Optional rotating log file plus a console handler
- Timing of named operations
- One-line operation and analysis summaries

Usage:
    from logger import get_logger

    logger = get_logger(__name__)
    logger.warning("Preventive exposure detected")

    with logger.track_time("mover_intervals"):
        estimates = estimate_measures(...)
"""

import logging
import logging.handlers
import sys
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import ClassVar, Dict, Optional

from config import CONFIG

PACKAGE_LOGGER = 'interaction_mover'


class PerformanceLogger:
    """Collects elapsed times per operation name."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.timings: Dict[str, list] = {}
        self._lock = threading.Lock()

    @contextmanager
    def track_time(self, operation: str, log_level: str = "DEBUG"):
        """
        Time the body of the `with` block and log the duration.

        Does nothing when 'logging.log_performance' is off.
        """
        if not CONFIG.get('logging.log_performance'):
            yield
            return

        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            with self._lock:
                self.timings.setdefault(operation, []).append(elapsed)

            emit = getattr(self.logger, log_level.lower(), self.logger.debug)
            emit(f"{operation} completed in {elapsed:.3f}s")

    def get_timings(self, operation: Optional[str] = None) -> Dict[str, list]:
        """All recorded timings, or only those of `operation`."""
        if operation:
            return {operation: self.timings.get(operation, [])}
        return self.timings


class LoggerFactory:
    """Configures the package logger once and hands out cached wrappers."""

    _loggers: ClassVar[Dict[str, 'Logger']] = {}
    _perf_logger: Optional[PerformanceLogger] = None
    _configured = False
    _lock: ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def configure(cls) -> None:
        """
        Attach handlers to the 'interaction_mover' logger according to CONFIG.

        Only the package logger is touched, never the root logger. A failure
        is reported on stderr and not retried.
        """
        if cls._configured:
            return

        try:
            if not CONFIG.get('logging.enabled'):
                logging.getLogger(PACKAGE_LOGGER).disabled = True
                cls._configured = True
                return

            package_logger = logging.getLogger(PACKAGE_LOGGER)
            level_name = str(CONFIG.get('logging.level', 'INFO')).upper()
            level = getattr(logging, level_name, None)
            if not isinstance(level, int):
                print(f"[WARNING] Invalid log level '{level_name}', defaulting to INFO", file=sys.stderr)
                level = logging.INFO
            package_logger.setLevel(level)
            package_logger.handlers.clear()

            formatter = logging.Formatter(
                CONFIG.get('logging.format'), datefmt=CONFIG.get('logging.date_format')
            )
            if CONFIG.get('logging.file_enabled'):
                cls._add_file_handler(package_logger, formatter)
            if CONFIG.get('logging.console_enabled'):
                cls._add_console_handler(package_logger, formatter)

        except (ValueError, TypeError, OSError) as e:
            print(f"[WARNING] Logging configuration failed: {e}", file=sys.stderr)

        cls._configured = True

    @classmethod
    def _add_file_handler(cls, target: logging.Logger, formatter: logging.Formatter) -> None:
        """Rotating file under 'logging.log_dir', sized by 'logging.max_log_size'."""
        try:
            log_dir = Path(CONFIG.get('logging.log_dir', 'logs'))
            log_dir.mkdir(exist_ok=True, parents=True)

            handler = logging.handlers.RotatingFileHandler(
                log_dir / CONFIG.get('logging.log_file', 'interaction_mover.log'),
                maxBytes=int(CONFIG.get('logging.max_log_size', 10485760)),
                backupCount=int(CONFIG.get('logging.backup_count', 5)),
            )
        except OSError as e:
            print(f"[WARNING] Failed to setup file logging: {e}", file=sys.stderr)
            return

        handler.setFormatter(formatter)
        target.addHandler(handler)

    @classmethod
    def _add_console_handler(cls, target: logging.Logger, formatter: logging.Formatter) -> None:
        handler = logging.StreamHandler(sys.stderr)
        console_level = str(CONFIG.get('logging.console_level', 'WARNING')).upper()
        handler.setLevel(getattr(logging, console_level, logging.WARNING))
        handler.setFormatter(formatter)
        target.addHandler(handler)

    @classmethod
    def get_logger(cls, name: str) -> 'Logger':
        """
        Cached Logger for `name`.

        Names outside the package (e.g. the top-level 'interaction_lib') are
        nested under 'interaction_mover' so they share its handlers.
        """
        if not cls._configured:
            cls.configure()

        if not name.startswith(PACKAGE_LOGGER):
            name = f"{PACKAGE_LOGGER}.{name}"

        with cls._lock:
            if name not in cls._loggers:
                cls._loggers[name] = Logger(logging.getLogger(name))
            return cls._loggers[name]

    @classmethod
    def get_performance_logger(cls) -> PerformanceLogger:
        if cls._perf_logger is None:
            cls._perf_logger = PerformanceLogger(logging.getLogger(f"{PACKAGE_LOGGER}.performance"))
        return cls._perf_logger


class Logger:
    """Standard logger plus operation, analysis and timing helpers."""

    def __init__(self, standard_logger: logging.Logger):
        self._logger = standard_logger
        self._perf_logger = LoggerFactory.get_performance_logger()

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._logger.error(msg, *args, **kwargs)

    def log_operation(self, operation: str, status: str = "started", **details) -> None:
        """
        Log ``[operation] STATUS key=value | ...`` on one line.

        "failed" is logged at ERROR, every other status at INFO.
        """
        parts = [f"[{operation}]"]
        if status:
            parts.append(status.upper())
        if details:
            parts.append(" | ".join(f"{k}={v}" for k, v in details.items()))

        if status.lower() == "failed":
            self.error(" ".join(parts))
        else:
            self.info(" ".join(parts))

    def log_data_summary(self, df_name: str, shape: tuple, dtypes: Dict[str, str]) -> None:
        """Shape and numeric column count of a dataset ('logging.log_data_operations')."""
        if CONFIG.get('logging.log_data_operations'):
            numeric = sum(1 for t in dtypes.values() if 'int' in t.lower() or 'float' in t.lower())
            self.info(f"{df_name}: shape={shape}, numeric={numeric}")

    def log_analysis(self, analysis_type: str, outcome: str, n_vars: int, n_samples: int) -> None:
        """Summary of a finished analysis ('logging.log_analysis_operations')."""
        if CONFIG.get('logging.log_analysis_operations'):
            self.info(
                f"{analysis_type}: outcome='{outcome}', "
                f"coefficients={n_vars}, n={n_samples}"
            )

    @contextmanager
    def track_time(self, operation: str, log_level: str = "DEBUG"):
        with self._perf_logger.track_time(operation, log_level):
            yield

    def get_timings(self) -> Dict[str, list]:
        return self._perf_logger.get_timings()


def get_logger(name: str) -> Logger:
    """Configured logger for `name`, typically ``__name__``."""
    return LoggerFactory.get_logger(name)
