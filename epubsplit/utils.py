"""Utility functions for EpubSplit.

This module contains common utility functions used throughout the application.
"""

import re
import html
import logging
from pathlib import Path
from typing import List, Union

# Set up logging
logger = logging.getLogger(__name__)

EPUB_EXTENSION = ".epub"


def ensure_epub_extension(filename: str) -> str:
    """Append ``.epub`` unless the name already ends with it (any case)."""
    if filename.lower().endswith(EPUB_EXTENSION):
        return filename
    return filename + EPUB_EXTENSION


def numbered_filename(filename: str, index: int, width: int = 3) -> str:
    """Derive a per-section output name, e.g. ``split.epub`` -> ``split-007.epub``.

    Args:
        filename: Base output filename.
        index: Split point index the file holds.
        width: Zero-padding width for the index.

    Returns:
        The numbered filename, always with the ``.epub`` extension.
    """
    filename = ensure_epub_extension(filename)
    stem, extension = filename[:-len(EPUB_EXTENSION)], filename[-len(EPUB_EXTENSION):]
    return f"{stem}-{index:0{width}d}{extension}"


def ensure_directory(directory_path: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist.

    Args:
        directory_path: Path to the directory to create.

    Returns:
        Path: The Path object for the created directory.

    Raises:
        OSError: If directory creation fails.
    """
    path = Path(directory_path)
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        raise


def create_table(headers: List[str], rows: List[List[str]], width: int = 100) -> str:
    """Create a text-based table for console display.

    Args:
        headers: List of column headers.
        rows: List of rows, where each row is a list of strings.
        width: Maximum width of the table.

    Returns:
        A formatted table as a string.
    """
    if not rows:
        return "No data to display."

    num_cols = len(headers)
    col_widths = [len(h) for h in headers]

    for row in rows:
        for i, cell in enumerate(row[:num_cols]):
            col_widths[i] = max(col_widths[i], min(len(str(cell)), width // num_cols))

    result = []

    header_row = " | ".join(h.ljust(w) for h, w in zip(headers, col_widths))
    result.append(header_row)

    separator = "-+-".join("-" * w for w in col_widths)
    result.append(separator)

    for row in rows:
        # Ensure row has enough columns
        padded_row = row + [""] * (num_cols - len(row))
        data_row = " | ".join(str(c).ljust(w) for c, w in zip(padded_row[:num_cols], col_widths))
        result.append(data_row)

    return "\n".join(result)


def truncate_string(text: str, max_length: int = 80, suffix: str = "...") -> str:
    """Truncate a string to a maximum length.

    Args:
        text: The text to truncate.
        max_length: Maximum length of the string.
        suffix: String to append to indicate truncation.

    Returns:
        The truncated string.
    """
    if not text:
        return ""

    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix


def clean_html(html_text: str) -> str:
    """Remove HTML tags from text and decode entities.

    Args:
        html_text: Text containing HTML.

    Returns:
        Clean text without HTML tags.
    """
    if not html_text:
        return ""

    # Drop the head so titles and styles don't leak into previews
    text = re.sub(r'<head\b.*?</head>', ' ', html_text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r'<[^>]+>', ' ', text)
    text = html.unescape(text)
    text = re.sub(r'\s+', ' ', text).strip()

    return text
