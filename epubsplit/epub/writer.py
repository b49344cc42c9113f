"""Split EPUB writing.

This module assembles a new EPUB 2 archive from a selection of split points:
the selected content documents at their original archive paths, every
resource they depend on, and freshly generated container, package and NCX
documents. Everything the package document lists is worked out before the
first byte is written, since zip archives are written front to back.
"""

import html
import logging
import uuid
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union
from urllib.parse import quote

from ..error import OutputWriteError, ResourceReadError, SplitIndexError
from .cover import COVER_IMAGE_NAME, COVER_MEDIA_TYPE, COVER_PAGE_NAME, CoverImage, load_cover
from .model import EpubModel, SplitPoint
from .paths import guess_media_type
from .resources import ResourceScanner

# Set up logging
logger = logging.getLogger(__name__)

MIMETYPE = "application/epub+zip"
PACKAGE_NAME = "content.opf"
NCX_NAME = "toc.ncx"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
XHTML_MEDIA_TYPE = "application/xhtml+xml"
CONTRIBUTOR = "epubsplit"
DEFAULT_LANGUAGES = ("en",)


def _text(value: str) -> str:
    return html.escape(value or "", quote=False)


def _attr(value: str) -> str:
    return html.escape(value or "", quote=True)


def _href(path: str) -> str:
    """Percent-encode an archive path for use in an href/src attribute."""
    return quote(path, safe="/")


def _unique_name(name: str, taken: Set[str]) -> str:
    """``name``, or ``stem-N.ext`` if the source book already uses it."""
    if name not in taken:
        return name
    stem, dot, extension = name.rpartition(".")
    counter = 1
    while f"{stem}-{counter}{dot}{extension}" in taken:
        counter += 1
    return f"{stem}-{counter}{dot}{extension}"


def new_identifier() -> str:
    """Fresh unique identifier for one written book."""
    return f"urn:uuid:{uuid.uuid4()}"


@dataclass
class StagedDocument:
    """A content document selected for output."""

    id: str
    href: str
    media_type: str
    data: bytes


@dataclass
class WritePlan:
    """Everything needed to emit the archive, decided up front."""

    documents: List[StagedDocument] = field(default_factory=list)
    nav_points: List[Tuple[str, str]] = field(default_factory=list)
    resources: Set[str] = field(default_factory=set)


class SplitEpubWriter:
    """Writes EPUBs holding a subset of a source book's split points."""

    def __init__(self, model: EpubModel):
        """Initialize the writer.

        Args:
            model: The parsed source book.
        """
        self.model = model

    def validate_indices(self, indices: Sequence[int]) -> List[SplitPoint]:
        """Resolve indices to split points.

        Raises:
            SplitIndexError: On the first bad index, or if ``indices`` is empty.
        """
        if not indices:
            raise SplitIndexError(
                message="No split points selected: an EPUB needs at least one content document",
                index=-1,
                max_index=len(self.model.split_points()) - 1,
            )
        return [self.model.split_point(index) for index in indices]

    def plan(self, points: Sequence[SplitPoint], default_label: str) -> WritePlan:
        """Stage content documents, navigation entries and the resource closure.

        Args:
            points: Selected split points in output order.
            default_label: Navigation label for points without one.

        Raises:
            ResourceReadError: If a selected content document can't be read.
        """
        plan = WritePlan()
        scanner = ResourceScanner(self.model.archive)
        staged: Set[str] = set()

        for point in points:
            if point.href not in staged:
                data = self.model.archive.read_bytes(point.href)
                document = StagedDocument(
                    id=f"content{len(plan.documents) + 1}",
                    href=point.href,
                    media_type=point.media_type or XHTML_MEDIA_TYPE,
                    data=data,
                )
                plan.documents.append(document)
                staged.add(point.href)
                scanner.scan_document(data.decode("utf-8", errors="replace"), point.href, plan.resources)

            plan.nav_points.append((point.label or default_label, point.target))

        # Documents are written once, as content
        plan.resources -= staged
        logger.debug(f"Planned {len(plan.documents)} documents, {len(plan.resources)} resources, "
                     f"{len(plan.nav_points)} navigation points")
        return plan

    def write(self, output_path: Union[str, Path], indices: Sequence[int],
              authors: Optional[Sequence[str]] = None, title: Optional[str] = None,
              description: Optional[str] = None, tags: Optional[Sequence[str]] = None,
              languages: Optional[Sequence[str]] = None,
              cover_path: Optional[Union[str, Path]] = None) -> str:
        """Write a split EPUB.

        Args:
            output_path: File to create or overwrite.
            indices: Split point indices, in output order.
            authors: Creator names; defaults to the source authors.
            title: Book title; defaults to the source title.
            description: Book description.
            tags: Subject tags.
            languages: Language codes; defaults to English.
            cover_path: Optional cover image to prepend.

        Returns:
            str: Path to the written EPUB file.

        Raises:
            SplitIndexError: If any index is out of range or none are given.
            ResourceReadError: If a selected document or the cover can't be read.
            OutputWriteError: If the output archive can't be written.
        """
        output_path = Path(output_path)
        points = self.validate_indices(indices)

        title = title or self.model.title
        authors = list(authors) if authors else self.model.authors
        languages = list(languages) if languages else list(DEFAULT_LANGUAGES)
        tags = list(tags or [])
        cover = load_cover(cover_path) if cover_path else None

        plan = self.plan(points, title)
        identifier = new_identifier()

        taken = {document.href for document in plan.documents} | plan.resources
        package_name = _unique_name(PACKAGE_NAME, taken)
        ncx_name = _unique_name(NCX_NAME, taken | {package_name})
        cover_names = None
        if cover:
            cover_image_name = _unique_name(COVER_IMAGE_NAME, taken | {package_name, ncx_name})
            cover_page_name = _unique_name(COVER_PAGE_NAME, taken | {package_name, ncx_name, cover_image_name})
            cover_names = (cover_image_name, cover_page_name)

        logger.info(f"Writing {output_path} with {len(points)} split points "
                    f"({len(plan.documents)} documents, {len(plan.resources)} resources)")

        try:
            with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zip_file:
                # The mimetype must come first, uncompressed
                zip_file.writestr("mimetype", MIMETYPE, compress_type=zipfile.ZIP_STORED)
                zip_file.writestr("META-INF/container.xml", self._container_xml(package_name))

                for document in plan.documents:
                    zip_file.writestr(document.href, document.data)

                written_resources = self._write_resources(zip_file, plan.resources)

                zip_file.writestr(package_name, self._opf_xml(
                    identifier, title, authors, description, tags, languages,
                    plan.documents, written_resources, ncx_name, cover_names,
                ))
                zip_file.writestr(ncx_name, self._ncx_xml(identifier, title, plan.nav_points))

                if cover and cover_names:
                    cover_image_name, cover_page_name = cover_names
                    zip_file.writestr(cover_image_name, cover.data)
                    zip_file.writestr(cover_page_name, self._cover_page_xml(cover, cover_image_name, languages[0]))
        except (OSError, zipfile.BadZipFile) as e:
            raise OutputWriteError(
                message=f"Error writing EPUB {output_path}: {e}",
                original_error=e,
                path=str(output_path),
            ) from e

        logger.info(f"EPUB written to {output_path}")
        return str(output_path)

    def _write_resources(self, zip_file: zipfile.ZipFile, resources: Set[str]) -> Dict[str, str]:
        """Copy resources into the archive, skipping unreadable ones.

        Returns:
            Mapping of written resource href to media type.
        """
        known = {item.href: item.media_type for item in self.model.manifest.values()}
        written: Dict[str, str] = {}
        for href in sorted(resources):
            try:
                data = self.model.archive.read_bytes(href)
            except ResourceReadError as e:
                logger.warning(f"Skipping resource: {e.message}")
                continue
            zip_file.writestr(href, data)
            written[href] = known.get(href) or guess_media_type(href)
        return written

    def _container_xml(self, package_name: str) -> str:
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
    <rootfiles>
        <rootfile full-path="{_attr(package_name)}" media-type="application/oebps-package+xml"/>
    </rootfiles>
</container>
"""

    def _opf_xml(self, identifier: str, title: str, authors: List[str], description: Optional[str],
                 tags: List[str], languages: List[str], documents: List[StagedDocument],
                 resources: Dict[str, str], ncx_name: str,
                 cover_names: Optional[Tuple[str, str]]) -> str:
        metadata = [
            f'        <dc:identifier id="epubsplit-id">{_text(identifier)}</dc:identifier>',
            f'        <dc:title>{_text(title)}</dc:title>',
        ]
        metadata += [f'        <dc:creator opf:role="aut">{_text(author)}</dc:creator>' for author in authors]
        metadata.append(f'        <dc:contributor opf:role="bkp">{CONTRIBUTOR}</dc:contributor>')
        metadata += [f'        <dc:language>{_text(language)}</dc:language>' for language in languages]
        metadata.append(f'        <dc:description>{_text(description or "")}</dc:description>')
        metadata += [f'        <dc:subject>{_text(tag)}</dc:subject>' for tag in tags]

        manifest = [f'        <item id="ncx" href="{_attr(_href(ncx_name))}" media-type="{NCX_MEDIA_TYPE}"/>']
        spine = []
        guide = []

        if cover_names:
            cover_image_name, cover_page_name = cover_names
            metadata.append('        <meta name="cover" content="cover-image"/>')
            manifest.append(f'        <item id="cover-image" href="{_attr(_href(cover_image_name))}" '
                            f'media-type="{COVER_MEDIA_TYPE}"/>')
            manifest.append(f'        <item id="cover" href="{_attr(_href(cover_page_name))}" '
                            f'media-type="{XHTML_MEDIA_TYPE}"/>')
            spine.append('        <itemref idref="cover" linear="yes"/>')
            guide.append(f'        <reference type="cover" title="Cover" href="{_attr(_href(cover_page_name))}"/>')

        for document in documents:
            manifest.append(f'        <item id="{document.id}" href="{_attr(_href(document.href))}" '
                            f'media-type="{_attr(document.media_type)}"/>')
            spine.append(f'        <itemref idref="{document.id}" linear="yes"/>')

        for number, (href, media_type) in enumerate(sorted(resources.items()), 1):
            manifest.append(f'        <item id="resource{number}" href="{_attr(_href(href))}" '
                            f'media-type="{_attr(media_type)}"/>')

        guide_xml = ""
        if guide:
            guide_xml = "    <guide>\n" + "\n".join(guide) + "\n    </guide>\n"

        nl = "\n"
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="epubsplit-id">
    <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
{nl.join(metadata)}
    </metadata>
    <manifest>
{nl.join(manifest)}
    </manifest>
    <spine toc="ncx">
{nl.join(spine)}
    </spine>
{guide_xml}</package>
"""

    def _ncx_xml(self, identifier: str, title: str, nav_points: List[Tuple[str, str]]) -> str:
        navpoints = ""
        for play_order, (label, target) in enumerate(nav_points, 1):
            path, sep, anchor = target.partition("#")
            src = _href(path) + (sep + anchor if sep else "")
            navpoints += f"""        <navPoint id="navPoint-{play_order}" playOrder="{play_order}">
            <navLabel>
                <text>{_text(label)}</text>
            </navLabel>
            <content src="{_attr(src)}"/>
        </navPoint>
"""

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
    <head>
        <meta name="dtb:uid" content="{_attr(identifier)}"/>
        <meta name="dtb:depth" content="1"/>
        <meta name="dtb:totalPageCount" content="0"/>
        <meta name="dtb:maxPageNumber" content="0"/>
    </head>
    <docTitle>
        <text>{_text(title)}</text>
    </docTitle>
    <navMap>
{navpoints}    </navMap>
</ncx>
"""

    def _cover_page_xml(self, cover: CoverImage, image_name: str, language: str) -> str:
        if cover.has_size:
            body = f"""    <div>
        <svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink"
             version="1.1" width="100%" height="100%" viewBox="0 0 {cover.width} {cover.height}"
             preserveAspectRatio="xMidYMid meet">
            <image width="{cover.width}" height="{cover.height}" xlink:href="{_attr(_href(image_name))}"/>
        </svg>
    </div>"""
        else:
            body = f"""    <div>
        <img src="{_attr(_href(image_name))}" alt="Cover" style="height: 100%"/>
    </div>"""

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{_attr(language)}">
<head>
    <title>Cover</title>
    <style type="text/css">
        @page {{ padding: 0; margin: 0; }}
        body {{ text-align: center; padding: 0; margin: 0; }}
    </style>
</head>
<body>
{body}
</body>
</html>
"""


def write_split_epub(model: EpubModel, output_path: Union[str, Path], indices: Sequence[int],
                     **overrides) -> str:
    """Convenience wrapper around :meth:`SplitEpubWriter.write`."""
    return SplitEpubWriter(model).write(output_path, indices, **overrides)
