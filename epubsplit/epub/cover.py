"""Cover image handling for split EPUBs.

The written book always stores its cover as ``cover.jpg``; covers in other
formats are re-encoded to JPEG so the file name and media type stay honest.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from ..error import ResourceReadError

# Set up logging
logger = logging.getLogger(__name__)

COVER_IMAGE_NAME = "cover.jpg"
COVER_PAGE_NAME = "cover.xhtml"
COVER_MEDIA_TYPE = "image/jpeg"

# JPEG quality used when a cover has to be re-encoded
DEFAULT_QUALITY = 90


@dataclass(frozen=True)
class CoverImage:
    """JPEG bytes ready to store, with pixel size when known."""

    data: bytes
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def has_size(self) -> bool:
        return bool(self.width and self.height)


def load_cover(image_path: Union[str, Path], quality: int = DEFAULT_QUALITY) -> CoverImage:
    """Read a cover image from disk.

    Args:
        image_path: Path to the cover image.
        quality: JPEG quality if the image has to be converted.

    Returns:
        CoverImage: JPEG data and dimensions.

    Raises:
        ResourceReadError: If the file can't be read.
    """
    image_path = Path(image_path)
    try:
        data = image_path.read_bytes()
    except OSError as e:
        raise ResourceReadError(
            message=f"Cannot read cover image {image_path}: {e}",
            original_error=e,
            path=str(image_path),
        ) from e

    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if img.format == "JPEG":
                return CoverImage(data, width, height)

            logger.info(f"Converting {img.format} cover {image_path.name} to JPEG")
            # JPEG has no alpha channel or palette
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            output = io.BytesIO()
            img.save(output, format="JPEG", quality=quality, optimize=True)
            return CoverImage(output.getvalue(), width, height)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not identify cover image {image_path.name} ({e}); storing it unchanged")
        return CoverImage(data)
