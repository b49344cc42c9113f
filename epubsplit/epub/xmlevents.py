"""Namespace-free XML event stream for the container, package and NCX readers.

Each reader consumes :class:`Start` / :class:`End` events and keeps its own
state; element and attribute names arrive as local names only, so
``dc:title``, ``opf:role`` and default-namespace elements all match plainly.
"""

import io
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Iterator, Union

from ..error import StructureError

# Set up logging
logger = logging.getLogger(__name__)


def local_name(tag: str) -> str:
    """Strip an ElementTree ``{namespace}`` prefix."""
    if tag.startswith("{"):
        return tag.rpartition("}")[2]
    return tag


@dataclass(frozen=True)
class Start:
    """An element opened."""

    name: str
    attrs: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class End:
    """An element closed; ``text`` is all character data inside it."""

    name: str
    attrs: Dict[str, str] = field(default_factory=dict)
    text: str = ""


XmlEvent = Union[Start, End]


def _attributes(element: ET.Element) -> Dict[str, str]:
    return {local_name(key): value for key, value in element.attrib.items()}


def iter_events(data: bytes, path: str) -> Iterator[XmlEvent]:
    """Yield start/end events for an XML document.

    Args:
        data: Raw document bytes.
        path: Archive path of the document, used in error messages.

    Raises:
        StructureError: If the document is not well-formed XML.
    """
    try:
        for event, element in ET.iterparse(io.BytesIO(data), events=("start", "end")):
            name = local_name(element.tag)
            if event == "start":
                yield Start(name, _attributes(element))
            else:
                yield End(name, _attributes(element), "".join(element.itertext()).strip())
    except ET.ParseError as e:
        raise StructureError(
            message=f"Cannot parse XML in '{path}': {e}",
            original_error=e,
            path=path,
        ) from e
