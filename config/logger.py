"""Logging setup for warpack with session-based files and verbose controls."""

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger


class SessionLogger:
    """Configures loguru sinks for one packaging session."""

    def __init__(self, config):
        self.config = config
        self.session_id = self._generate_session_id()
        self.session_log_dir: Optional[Path] = None
        if config.log_dir:
            self.session_log_dir = Path(config.log_dir) / f"session_{self.session_id}"
            self.session_log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_loggers()

        if self.session_log_dir is not None:
            logger.debug(f"Session logs directory: {self.session_log_dir}")

    def _generate_session_id(self) -> str:
        """Generate a unique session ID based on timestamp."""
        return datetime.now().strftime("%Y%m%d_%H%M%S")

    def _setup_loggers(self):
        # Remove default logger
        logger.remove()

        # Console logger - respects verbose setting
        console_level = "DEBUG" if self.config.verbose else self.config.log_level.value
        logger.add(
            sys.stderr,
            level=console_level,
            format=self._get_console_format(),
            colorize=True,
            filter=self._console_filter,
        )

        if self.session_log_dir is not None:
            # Session log captures everything
            logger.add(
                str(self.session_log_dir / "main.log"),
                level="DEBUG",
                format=self._get_file_format(),
                rotation=self.config.log_rotation,
                retention=self.config.log_retention,
                compression="gz",
            )
            logger.add(
                str(self.session_log_dir / "errors.log"),
                level="ERROR",
                format=self._get_file_format(),
                rotation="10 MB",
                retention="90 days",
            )
            if self.config.verbose:
                # Per-file copy decisions are logged at TRACE
                logger.add(
                    str(self.session_log_dir / "debug_verbose.log"),
                    level="TRACE",
                    format=self._get_file_format(),
                    rotation="200 MB",
                    retention="3 days",
                )

        if self.config.log_file:
            log_path = Path(self.config.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                str(log_path),
                level="INFO",
                format=self._get_file_format(),
                rotation=self.config.log_rotation,
                retention=self.config.log_retention,
                compression="gz",
            )

    def _get_console_format(self) -> str:
        """Get console log format based on verbose setting."""
        if self.config.verbose:
            return ("<green>{time:HH:mm:ss.SSS}</green> | "
                    "<level>{level: <8}</level> | "
                    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                    "<level>{message}</level>")
        return ("<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<level>{message}</level>")

    def _get_file_format(self) -> str:
        return "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

    def _console_filter(self, record):
        # Always show INFO and above
        if record["level"].no >= 20:
            return True

        # Only show DEBUG in verbose mode
        if self.config.verbose and record["level"].no >= 10:
            return True

        return False

    def create_task_logger(self, task_name: str, owner_id: Optional[str] = None):
        """Logger bound to a packaging task, for file sinks filtering on extras."""
        return logger.bind(task=task_name, owner_id=owner_id)

    def get_session_summary(self) -> dict:
        """Get a summary of the current logging session."""
        log_files = list(self.session_log_dir.glob("*.log")) if self.session_log_dir else []
        return {
            "session_id": self.session_id,
            "session_dir": str(self.session_log_dir) if self.session_log_dir else None,
            "verbose_enabled": self.config.verbose,
            "log_level": self.config.log_level.value,
            "log_files": [
                {"name": f.name, "size": f.stat().st_size if f.exists() else 0, "path": str(f)}
                for f in log_files
            ],
        }


# Global session logger instance
_session_logger: Optional[SessionLogger] = None


def setup_session_logging(config) -> SessionLogger:
    """Setup session-based logging system."""
    global _session_logger
    _session_logger = SessionLogger(config)
    return _session_logger


def get_session_logger() -> Optional[SessionLogger]:
    """Get the current session logger instance."""
    return _session_logger


def create_task_logger(task_name: str, owner_id: Optional[str] = None):
    """Create a task logger, falling back to a plain bound logger without a session."""
    if _session_logger is not None:
        return _session_logger.create_task_logger(task_name, owner_id)
    return logger.bind(task=task_name, owner_id=owner_id)
