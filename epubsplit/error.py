"""Error handling for EpubSplit.

This module provides the exception taxonomy used while loading and splitting
EPUB archives, plus a process-wide error handler that logs errors and reports
them to the user.
"""

import logging
import traceback
from enum import Enum
from typing import Dict, Any, Optional, List, Union
from dataclasses import dataclass
import click
from pathlib import Path

# Set up logging
logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors that can occur in EpubSplit."""

    STRUCTURE = "structure"  # Missing or malformed container/package/navigation files
    RESOURCE = "resource"  # A single file could not be read from the archive or disk
    FILE_SYSTEM = "fs"  # Output archive could not be created or written
    USER_INPUT = "input"  # Bad split point indices or options
    UNEXPECTED = "unexpected"  # Unexpected errors


@dataclass
class EpubSplitError(Exception):
    """Base exception class for EpubSplit errors."""

    message: str
    category: ErrorCategory = ErrorCategory.UNEXPECTED
    original_error: Optional[Exception] = None
    details: Optional[Dict[str, Any]] = None
    recoverable: bool = False

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.message} [{self.category.value}]"


@dataclass
class StructureError(EpubSplitError):
    """A required structural file is missing or does not parse."""

    category: ErrorCategory = ErrorCategory.STRUCTURE
    path: Optional[str] = None


@dataclass
class ResourceReadError(EpubSplitError):
    """An individual content, resource or cover file could not be read."""

    category: ErrorCategory = ErrorCategory.RESOURCE
    path: Optional[str] = None


@dataclass
class SplitIndexError(EpubSplitError, IndexError):
    """A requested split point index is out of range."""

    category: ErrorCategory = ErrorCategory.USER_INPUT
    index: int = 0
    max_index: int = -1


@dataclass
class OutputWriteError(EpubSplitError):
    """The output archive could not be created, written or finalized."""

    category: ErrorCategory = ErrorCategory.FILE_SYSTEM
    path: Optional[str] = None


class ErrorHandler:
    """Error handler for EpubSplit operations."""

    def __init__(self, debug: bool = False):
        """Initialize error handler.

        Args:
            debug: Whether to enable debug mode.
        """
        self.debug = debug
        self.error_log: List[EpubSplitError] = []
        self.log_file: Optional[Path] = None

    def set_log_file(self, log_file: Union[str, Path]) -> None:
        """Set log file path.

        Args:
            log_file: Path to log file.
        """
        self.log_file = Path(log_file)

        file_handler = logging.FileHandler(self.log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))

        # Add handler to root logger
        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)

    def handle(self, error: Exception, category: ErrorCategory = ErrorCategory.UNEXPECTED,
               details: Optional[Dict[str, Any]] = None, recoverable: bool = False) -> EpubSplitError:
        """Handle an exception and convert it to EpubSplitError.

        Errors that already belong to the taxonomy keep their own category
        and details.

        Args:
            error: The original exception.
            category: The error category for foreign exceptions.
            details: Additional details about the error.
            recoverable: Whether the error is recoverable.

        Returns:
            EpubSplitError: The handled error.
        """
        if isinstance(error, EpubSplitError):
            es_error = error
            if details:
                es_error.details = {**(es_error.details or {}), **details}
        else:
            es_error = EpubSplitError(
                message=str(error),
                category=category,
                original_error=error,
                details=details or {},
                recoverable=recoverable
            )

        self.error_log.append(es_error)

        logger.error(f"{es_error} - {'Recoverable' if es_error.recoverable else 'Fatal'}")

        if self.debug:
            logger.debug(f"Details: {es_error.details}")
            logger.debug(f"Traceback: {traceback.format_exc()}")

        return es_error

    def display_error(self, error: EpubSplitError) -> None:
        """Display error to user with appropriate formatting.

        Args:
            error: The error to display.
        """
        category_display = {
            ErrorCategory.STRUCTURE: "📚 EPUB Structure Error",
            ErrorCategory.RESOURCE: "📄 Resource Error",
            ErrorCategory.FILE_SYSTEM: "📁 File System Error",
            ErrorCategory.USER_INPUT: "⌨️ Input Error",
            ErrorCategory.UNEXPECTED: "❓ Unexpected Error"
        }

        click.secho(category_display.get(error.category, "Error"), fg="yellow", bold=True, err=True)
        click.secho(f"{error.message}", fg="red", err=True)

        if self.debug and error.details:
            click.echo("Details:", err=True)
            for key, value in error.details.items():
                click.echo(f"  - {key}: {value}", err=True)

        if error.recoverable:
            click.echo("The operation can continue despite this error.", err=True)
        else:
            click.secho("This error prevents the operation from continuing.", fg="red", err=True)


# Create global error handler
error_handler = ErrorHandler()


def initialize_error_handler(debug: bool = False, log_dir: Optional[str] = None) -> ErrorHandler:
    """Initialize global error handler.

    Args:
        debug: Whether to enable debug mode.
        log_dir: Directory for log files.

    Returns:
        The initialized error handler.
    """
    error_handler.debug = debug

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        # Create log file with timestamp
        from datetime import datetime
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"epubsplit_{timestamp}.log"

        error_handler.set_log_file(log_file)

    return error_handler
