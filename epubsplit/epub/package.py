"""Package document (OPF) parsing.

The package document is read in independent passes, one reducer each: the
manifest, the guide and the descriptive metadata are read at load time, the
spine only when split points are first requested.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..error import StructureError
from .paths import directory_of, normalize_path, split_anchor
from .xmlevents import End, Start, XmlEvent, iter_events

# Set up logging
logger = logging.getLogger(__name__)

NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
TITLE_MISSING = "(Title Missing)"
AUTHORS_MISSING = "(Authors Missing)"
AUTHOR_ROLES = ("author", "aut")


@dataclass(frozen=True)
class ManifestItem:
    """One manifest entry, href already normalized."""

    id: str
    href: str
    media_type: str


@dataclass(frozen=True)
class GuideEntry:
    """Semantic landmark attached to a whole document."""

    type: str
    title: str


class ManifestReducer:
    """Collects manifest items and the NCX reference."""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir
        self.items: Dict[str, ManifestItem] = {}
        self.ncx_href: Optional[str] = None
        self.seen_manifest = False
        self._in_manifest = False

    def feed(self, event: XmlEvent) -> None:
        if event.name == "manifest":
            self._in_manifest = isinstance(event, Start)
            self.seen_manifest = True
            return
        if not (self._in_manifest and isinstance(event, Start) and event.name == "item"):
            return

        item_id = event.attrs.get("id")
        href = event.attrs.get("href")
        if not item_id or href is None:
            logger.warning(f"Skipping manifest item without id/href: {event.attrs}")
            return

        media_type = event.attrs.get("media-type", "")
        item = ManifestItem(item_id, normalize_path(href, self.base_dir), media_type)
        if item_id in self.items:
            logger.warning(f"Duplicate manifest id '{item_id}', keeping the first")
            return
        self.items[item_id] = item
        if media_type == NCX_MEDIA_TYPE and self.ncx_href is None:
            self.ncx_href = item.href


class GuideReducer:
    """Collects guide references keyed by document href."""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir
        self.entries: Dict[str, GuideEntry] = {}

    def feed(self, event: XmlEvent) -> None:
        if not (isinstance(event, Start) and event.name == "reference"):
            return
        href = event.attrs.get("href")
        if not href:
            return
        # Guide entries describe documents, never anchors
        path, _ = split_anchor(href)
        key = normalize_path(path, self.base_dir)
        self.entries.setdefault(key, GuideEntry(event.attrs.get("type", ""), event.attrs.get("title", "")))


class MetadataReducer:
    """Collects the first title and the author creators."""

    def __init__(self):
        self.title: Optional[str] = None
        self.authors: List[str] = []
        self._in_metadata = False

    def feed(self, event: XmlEvent) -> None:
        if event.name == "metadata":
            self._in_metadata = isinstance(event, Start)
            return
        if not (self._in_metadata and isinstance(event, End)):
            return

        if event.name == "title" and self.title is None and event.text:
            self.title = event.text
        elif event.name == "creator" and event.text:
            role = event.attrs.get("role")
            if (role is None or role.lower() in AUTHOR_ROLES) and event.text not in self.authors:
                self.authors.append(event.text)


class SpineReducer:
    """Collects itemref ids in reading order."""

    def __init__(self):
        self.idrefs: List[str] = []
        self.toc_id: Optional[str] = None
        self.seen_spine = False

    def feed(self, event: XmlEvent) -> None:
        if not isinstance(event, Start):
            return
        if event.name == "spine":
            self.seen_spine = True
            self.toc_id = event.attrs.get("toc")
        elif event.name == "itemref" and event.attrs.get("idref"):
            self.idrefs.append(event.attrs["idref"])


def _run(reducer, data: bytes, path: str):
    for event in iter_events(data, path):
        reducer.feed(event)
    return reducer


@dataclass
class PackageDocument:
    """Parsed view of a package document."""

    path: str
    base_dir: str
    manifest: Dict[str, ManifestItem]
    guide: Dict[str, GuideEntry]
    title: str
    authors: List[str]
    ncx_href: Optional[str] = None
    raw: bytes = field(default=b"", repr=False)
    _spine: Optional[List[ManifestItem]] = field(default=None, repr=False)

    @classmethod
    def parse(cls, data: bytes, path: str) -> "PackageDocument":
        """Parse manifest, guide and metadata.

        Raises:
            StructureError: If the document is unparsable or has no manifest.
        """
        base_dir = directory_of(path)

        manifest = _run(ManifestReducer(base_dir), data, path)
        if not manifest.seen_manifest:
            raise StructureError(message=f"Package document '{path}' has no manifest", path=path)

        guide = _run(GuideReducer(base_dir), data, path)
        metadata = _run(MetadataReducer(), data, path)

        logger.debug(f"Parsed {path}: {len(manifest.items)} manifest items, "
                     f"{len(guide.entries)} guide entries")

        return cls(
            path=path,
            base_dir=base_dir,
            manifest=manifest.items,
            guide=guide.entries,
            title=metadata.title or TITLE_MISSING,
            authors=metadata.authors or [AUTHORS_MISSING],
            ncx_href=manifest.ncx_href,
            raw=data,
        )

    def spine(self) -> List[ManifestItem]:
        """Manifest items in reading order, parsed on first use.

        Raises:
            StructureError: If there is no spine or an itemref names an id that
                isn't in the manifest.
        """
        if self._spine is None:
            reducer = _run(SpineReducer(), self.raw, self.path)
            if not reducer.seen_spine:
                raise StructureError(message=f"Package document '{self.path}' has no spine", path=self.path)

            items = []
            for idref in reducer.idrefs:
                item = self.manifest.get(idref)
                if item is None:
                    raise StructureError(
                        message=f"Spine item '{idref}' in '{self.path}' has no manifest entry",
                        path=self.path,
                        details={"idref": idref},
                    )
                items.append(item)
            self._spine = items
        return self._spine

    def toc_fallback(self) -> Optional[str]:
        """NCX href named by the spine ``toc`` attribute, for books whose
        manifest mislabels the NCX media type."""
        reducer = _run(SpineReducer(), self.raw, self.path)
        item = self.manifest.get(reducer.toc_id) if reducer.toc_id else None
        return item.href if item else None
