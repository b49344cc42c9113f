"""Legacy NCX table-of-contents parsing."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .paths import directory_of, normalize_path, split_anchor
from .xmlevents import End, Start, XmlEvent, iter_events

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationEntry:
    """One table-of-contents target."""

    label: str
    target_href: str
    target_anchor: Optional[str] = None


NavigationMap = Dict[str, List[NavigationEntry]]


def add_entry(navigation: NavigationMap, entry: NavigationEntry) -> None:
    """Record an entry under its document, whole-document entries first.

    Anchor-free entries go after the anchor-free entries already present and
    before every anchored one; anchored entries are appended. Both kinds keep
    their relative document order.
    """
    entries = navigation.setdefault(entry.target_href, [])
    if entry.target_anchor is None:
        position = sum(1 for existing in entries if existing.target_anchor is None)
        entries.insert(position, entry)
    else:
        entries.append(entry)


class _NavPoint:
    __slots__ = ("depth", "label", "src", "recorded")

    def __init__(self, depth: int):
        self.depth = depth
        self.label: Optional[str] = None
        self.src: Optional[str] = None
        self.recorded = False


class NavigationReducer:
    """Turns nested ``navPoint`` events into a :data:`NavigationMap`."""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir
        self.navigation: NavigationMap = {}
        self.count = 0
        self._stack: List[_NavPoint] = []
        self._in_label = False

    @property
    def depth(self) -> int:
        return len(self._stack)

    def feed(self, event: XmlEvent) -> None:
        if event.name == "navPoint":
            if isinstance(event, Start):
                self._stack.append(_NavPoint(self.depth + 1))
            elif self._stack:
                point = self._stack.pop()
                if point.src is not None and not point.recorded:
                    # Content without a label still marks a split point
                    point.label = point.label or ""
                    self._record(point)
            return

        if not self._stack:
            return
        point = self._stack[-1]

        if event.name == "navLabel":
            self._in_label = isinstance(event, Start)
        elif event.name == "text" and isinstance(event, End) and self._in_label:
            if point.label is None:
                point.label = event.text
                self._record(point)
        elif event.name == "content" and isinstance(event, Start):
            if point.src is None and event.attrs.get("src"):
                point.src = event.attrs["src"]
                self._record(point)

    def _record(self, point: _NavPoint) -> None:
        if point.recorded or point.label is None or point.src is None:
            return
        path, anchor = split_anchor(point.src)
        entry = NavigationEntry(point.label, normalize_path(path, self.base_dir), anchor)
        add_entry(self.navigation, entry)
        point.recorded = True
        self.count += 1
        logger.debug(f"navPoint depth {point.depth}: {entry}")


def parse_navigation(data: bytes, path: str) -> NavigationMap:
    """Parse an NCX document into entries keyed by normalized document href.

    Args:
        data: Raw NCX bytes.
        path: Normalized archive path of the NCX; targets resolve against its
            directory.

    Raises:
        StructureError: If the NCX is not well-formed XML.
    """
    reducer = NavigationReducer(directory_of(path))
    for event in iter_events(data, path):
        reducer.feed(event)
    logger.debug(f"Parsed {path}: {reducer.count} navigation entries "
                 f"for {len(reducer.navigation)} documents")
    return reducer.navigation
