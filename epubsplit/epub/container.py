"""Container descriptor (META-INF/container.xml) resolution."""

import logging
from typing import Optional

from ..error import ResourceReadError, StructureError
from .archive import EpubArchive
from .paths import normalize_path
from .xmlevents import Start, iter_events

# Set up logging
logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"


def parse_container(data: bytes, path: str = CONTAINER_PATH) -> Optional[str]:
    """Return the ``full-path`` of the first ``rootfile`` element, if any."""
    for event in iter_events(data, path):
        if isinstance(event, Start) and event.name == "rootfile":
            full_path = event.attrs.get("full-path")
            if full_path:
                return normalize_path(full_path)
    return None


def find_package_document(archive: EpubArchive) -> str:
    """Locate the package document named by the container descriptor.

    Args:
        archive: The source archive.

    Returns:
        Normalized archive path of the package (OPF) document.

    Raises:
        StructureError: If the descriptor is missing, unreadable, malformed or
            names no rootfile.
    """
    try:
        data = archive.read_bytes(CONTAINER_PATH)
    except ResourceReadError as e:
        raise StructureError(
            message=f"{archive.path.name} has no readable {CONTAINER_PATH}",
            original_error=e,
            path=CONTAINER_PATH,
        ) from e

    package_path = parse_container(data)
    if not package_path:
        raise StructureError(
            message=f"{CONTAINER_PATH} in {archive.path.name} names no rootfile",
            path=CONTAINER_PATH,
        )

    logger.debug(f"Package document: {package_path}")
    return package_path
