"""Read-only access to the source EPUB archive.

The rest of the package only ever sees :class:`EpubArchive`, which hands out
entry contents by normalized path and turns zip failures into
:class:`~epubsplit.error.ResourceReadError`.
"""

import logging
import zipfile
from pathlib import Path
from typing import Union

from ..error import ResourceReadError, StructureError

# Set up logging
logger = logging.getLogger(__name__)


class EpubArchive:
    """Owned handle on one source EPUB zip file."""

    def __init__(self, epub_path: Union[str, Path]):
        """Open the archive.

        Args:
            epub_path: Path to the EPUB file on disk.

        Raises:
            StructureError: If the file is missing or not a zip archive.
        """
        self.path = Path(epub_path)
        try:
            self._zip = zipfile.ZipFile(self.path, "r")
        except (OSError, zipfile.BadZipFile) as e:
            raise StructureError(
                message=f"Cannot open EPUB archive {self.path}: {e}",
                original_error=e,
                path=str(self.path),
            ) from e
        logger.debug(f"Opened {self.path} with {len(self._zip.namelist())} entries")

    def read_bytes(self, path: str) -> bytes:
        """Read an entry's raw bytes.

        Raises:
            ResourceReadError: If the entry is missing or can't be decompressed.
        """
        try:
            return self._zip.read(path)
        except KeyError as e:
            raise ResourceReadError(
                message=f"No entry '{path}' in {self.path.name}",
                original_error=e,
                path=path,
            ) from e
        except (OSError, zipfile.BadZipFile, RuntimeError) as e:
            raise ResourceReadError(
                message=f"Cannot read '{path}' from {self.path.name}: {e}",
                original_error=e,
                path=path,
            ) from e

    def read_text(self, path: str) -> str:
        """Read an entry as UTF-8 text; undecodable bytes are replaced."""
        return self.read_bytes(path).decode("utf-8", errors="replace")

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "EpubArchive":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
