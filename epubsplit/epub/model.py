"""In-memory model of a source EPUB and its split points.

An :class:`EpubModel` is built once per input file: the container, package
and NCX documents are parsed up front, and the flat split point catalog is
derived on first request and cached. Callers select content by index into
that catalog.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..error import ResourceReadError, SplitIndexError, StructureError
from ..utils import truncate_string
from .archive import EpubArchive
from .container import find_package_document
from .navigation import NavigationMap, parse_navigation
from .package import GuideEntry, ManifestItem, PackageDocument

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LENGTH = 1500


@dataclass(frozen=True)
class SplitPoint:
    """One selectable unit: a whole document or the part from an anchor on."""

    navigation_labels: Tuple[str, ...]
    guide: Optional[GuideEntry]
    anchor: Optional[str]
    manifest_id: str
    href: str
    media_type: str
    preview_sample: str = ""

    @property
    def label(self) -> Optional[str]:
        """First navigation label, if the point has any."""
        return self.navigation_labels[0] if self.navigation_labels else None

    @property
    def target(self) -> str:
        """Href including the ``#anchor`` when there is one."""
        return f"{self.href}#{self.anchor}" if self.anchor else self.href


def preview(text: str, length: int = DEFAULT_PREVIEW_LENGTH) -> str:
    """First ``length`` characters of ``text``, ellipsis-terminated if cut."""
    return truncate_string(text, length, suffix="...")


def find_anchor(text: str, anchor: str) -> int:
    """Position of the first ``id``/``name`` attribute equal to ``anchor``, or -1."""
    positions = [
        text.find(f'{attribute}={quote}{anchor}{quote}')
        for attribute in ("id", "name")
        for quote in ('"', "'")
    ]
    found = [position for position in positions if position >= 0]
    return min(found) if found else -1


class EpubModel:
    """Parsed source EPUB."""

    def __init__(self, epub_path: Union[str, Path], preview_length: int = DEFAULT_PREVIEW_LENGTH):
        """Open and parse an EPUB.

        Args:
            epub_path: Path to the source EPUB file.
            preview_length: Characters of text kept per split point preview.

        Raises:
            StructureError: If the container or package document is missing
                or malformed.
        """
        self.path = Path(epub_path)
        self.preview_length = preview_length
        self.archive = EpubArchive(self.path)
        self._split_points: Optional[List[SplitPoint]] = None

        try:
            self.package_path = find_package_document(self.archive)
            self.package = PackageDocument.parse(self._read_structural(self.package_path), self.package_path)
            self.navigation = self._load_navigation()
        except Exception:
            self.archive.close()
            raise

        logger.info(f"Loaded {self.path.name}: '{self.title}' by {', '.join(self.authors)}")

    def _read_structural(self, path: str) -> bytes:
        try:
            return self.archive.read_bytes(path)
        except ResourceReadError as e:
            raise StructureError(
                message=f"Package document '{path}' is missing from {self.path.name}",
                original_error=e,
                path=path,
            ) from e

    def _load_navigation(self) -> NavigationMap:
        ncx_href = self.package.ncx_href or self.package.toc_fallback()
        if not ncx_href:
            logger.warning(f"{self.path.name} has no NCX navigation document; "
                           "split points will carry no labels")
            return {}
        try:
            data = self.archive.read_bytes(ncx_href)
        except ResourceReadError as e:
            logger.warning(f"NCX navigation document unavailable ({e.message}); "
                           "split points will carry no labels")
            return {}
        try:
            return parse_navigation(data, ncx_href)
        except StructureError as e:
            logger.warning(f"Ignoring malformed NCX navigation document: {e.message}")
            return {}

    @property
    def title(self) -> str:
        return self.package.title

    @property
    def authors(self) -> List[str]:
        return list(self.package.authors)

    @property
    def manifest(self) -> Dict[str, ManifestItem]:
        return self.package.manifest

    @property
    def guide(self) -> Dict[str, GuideEntry]:
        return self.package.guide

    def spine(self) -> List[ManifestItem]:
        """Manifest items in reading order."""
        return self.package.spine()

    def spine_ids(self) -> List[str]:
        return [item.id for item in self.spine()]

    def split_points(self) -> List[SplitPoint]:
        """The ordered split point catalog, computed once and cached."""
        if self._split_points is None:
            self._split_points = self._build_split_points()
            logger.debug(f"Derived {len(self._split_points)} split points "
                         f"from {len(self.spine())} spine items")
        return self._split_points

    def split_point(self, index: int) -> SplitPoint:
        """Look up one split point.

        Raises:
            SplitIndexError: If ``index`` is outside ``0..len - 1``.
        """
        points = self.split_points()
        if not 0 <= index < len(points):
            if points:
                valid = f"valid indices are 0 to {len(points) - 1}"
            else:
                valid = "this book has no split points"
            raise SplitIndexError(
                message=f"Split point index {index} is out of range: {valid}",
                index=index,
                max_index=len(points) - 1,
            )
        return points[index]

    def _build_split_points(self) -> List[SplitPoint]:
        points: List[SplitPoint] = []

        for item in self.spine():
            try:
                text = self.archive.read_text(item.href)
            except ResourceReadError as e:
                logger.warning(f"No preview for spine item '{item.id}': {e.message}")
                text = ""

            labels: List[str] = []
            guide = self.guide.get(item.href)
            anchor: Optional[str] = None
            sample = preview(text, self.preview_length)

            for entry in self.navigation.get(item.href, []):
                if entry.target_anchor is None:
                    labels.append(entry.label)
                    continue

                points.append(SplitPoint(tuple(labels), guide, anchor, item.id, item.href, item.media_type, sample))

                position = find_anchor(text, entry.target_anchor)
                labels = [entry.label]
                guide = None
                anchor = entry.target_anchor
                sample = preview(text[position:], self.preview_length) if position >= 0 else ""

            points.append(SplitPoint(tuple(labels), guide, anchor, item.id, item.href, item.media_type, sample))

        return points

    def close(self) -> None:
        """Release the source archive."""
        self.archive.close()

    def __enter__(self) -> "EpubModel":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
