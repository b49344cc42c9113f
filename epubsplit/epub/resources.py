"""Resource dependency scanning.

Finds every same-archive file a content document needs: images and other
``src`` / ``xlink:href`` targets, linked stylesheets, and whatever those
stylesheets pull in through ``@import`` and ``url(...)``.
"""

import logging
import re
import warnings
from typing import Optional, Set

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from ..error import ResourceReadError
from .archive import EpubArchive
from .paths import directory_of, is_external, normalize_path

# Content documents are XHTML; html.parser handles them fine
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

# Set up logging
logger = logging.getLogger(__name__)

CSS_COMMENT = re.compile(r'/\*.*?\*/', re.DOTALL)
CSS_IMPORT = re.compile(r'@import\s*(?:url\(\s*)?([\'"]?)([^\'")\s;]+)\1', re.IGNORECASE)
CSS_URL = re.compile(r'url\(\s*([\'"]?)(.*?)\1\s*\)', re.IGNORECASE | re.DOTALL)

SOURCE_ATTRIBUTES = ("src", "xlink:href")


def _resolve(reference: str, base_dir: str) -> Optional[str]:
    """Normalize a reference, or None for external, inline or empty ones."""
    reference = reference.strip()
    if not reference or is_external(reference):
        return None
    # Drop fragments and query strings ("font.eot?#iefix", "sprites.svg#icon")
    path = re.split(r'[?#]', reference, maxsplit=1)[0]
    if not path:
        return None
    return normalize_path(path, base_dir)


class ResourceScanner:
    """Builds the resource closure for one write operation.

    Stylesheets are scanned at most once per scanner, which also stops
    cyclic ``@import`` chains.
    """

    def __init__(self, archive: EpubArchive):
        self.archive = archive
        self._scanned_stylesheets: Set[str] = set()

    def scan_document(self, text: str, href: str, closure: Optional[Set[str]] = None) -> Set[str]:
        """Collect the resources referenced by a content document.

        Args:
            text: The document's markup.
            href: The document's normalized archive path.
            closure: Set to add to; a new one is created when omitted.

        Returns:
            The (updated) closure.
        """
        closure = set() if closure is None else closure
        base_dir = directory_of(href)
        soup = BeautifulSoup(text, "html.parser")

        for tag in soup.find_all(True):
            for attribute in SOURCE_ATTRIBUTES:
                value = tag.get(attribute)
                if isinstance(value, str):
                    resolved = _resolve(value, base_dir)
                    if resolved:
                        closure.add(resolved)

        for link in soup.find_all("link", href=True):
            stylesheet = _resolve(link["href"], base_dir)
            if stylesheet and stylesheet.lower().endswith(".css"):
                closure.add(stylesheet)
                self.scan_stylesheet(stylesheet, closure)

        return closure

    def scan_stylesheet(self, path: str, closure: Set[str]) -> Set[str]:
        """Add a stylesheet's imports and ``url(...)`` targets, recursively.

        Unreadable stylesheets are skipped.
        """
        if path in self._scanned_stylesheets:
            logger.debug(f"Stylesheet already scanned: {path}")
            return closure
        self._scanned_stylesheets.add(path)

        try:
            css = self.archive.read_text(path)
        except ResourceReadError as e:
            logger.warning(f"Skipping stylesheet scan: {e.message}")
            return closure

        return self.scan_css(css, path, closure)

    def scan_css(self, css: str, path: str, closure: Set[str]) -> Set[str]:
        """Scan stylesheet text located at ``path``."""
        css = CSS_COMMENT.sub("", css)
        base_dir = directory_of(path)

        for match in CSS_IMPORT.finditer(css):
            imported = _resolve(match.group(2), base_dir)
            if imported:
                closure.add(imported)
                self.scan_stylesheet(imported, closure)

        for match in CSS_URL.finditer(css):
            resolved = _resolve(match.group(2), base_dir)
            if resolved:
                closure.add(resolved)

        return closure
