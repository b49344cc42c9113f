"""Archive-internal path handling.

Every lookup key used by the model (manifest hrefs, guide and navigation
targets, resource closures) goes through :func:`normalize_path`, so two
references to the same archive entry always compare equal.
"""

import re
from typing import Optional, Tuple
from urllib.parse import unquote

# Scheme prefix such as "http:", "data:" or "mailto:"
URL_SCHEME = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*:')

DEFAULT_MEDIA_TYPE = "application/octet-stream"

MEDIA_TYPES = {
    "css": "text/css",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ttf": "application/x-font-ttf",
    "otf": "application/vnd.ms-opentype",
    "woff": "application/font-woff",
    "woff2": "font/woff2",
}


def normalize_path(reference: str, base_dir: str = "") -> str:
    """Resolve a reference against a base directory into a canonical path.

    Percent-encoding is decoded (malformed escapes are kept or replaced rather
    than rejected), empty and ``.`` segments are dropped and ``..`` discards
    the preceding segment. ``..`` at the archive root is ignored.

    Decoding is applied once, so only raw references should be passed in.
    Re-normalizing a result is a no-op unless the decoded name itself holds
    a ``%XX`` sequence: ``a%2541.png`` gives ``a%41.png``, which would decode
    again to ``aA.png``.

    Args:
        reference: Raw reference as found in a document.
        base_dir: Normalized directory ending in ``/``, or ``""`` for the root.

    Returns:
        The canonical archive-internal path.
    """
    decoded = unquote(reference or "", encoding="utf-8", errors="replace")
    if base_dir and not base_dir.endswith("/"):
        base_dir += "/"

    segments = []
    for segment in (base_dir + decoded).split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    return "/".join(segments)


def directory_of(path: str) -> str:
    """Return the directory part of a normalized path, ending in ``/`` or empty."""
    head, sep, _ = path.rpartition("/")
    return head + sep


def split_anchor(reference: str) -> Tuple[str, Optional[str]]:
    """Split ``"doc.xhtml#frag"`` into ``("doc.xhtml", "frag")``.

    An empty fragment (``"doc.xhtml#"``) is reported as no anchor.
    """
    path, sep, anchor = (reference or "").partition("#")
    return path, (anchor if sep and anchor else None)


def is_external(reference: str) -> bool:
    """True for absolute URLs and inline ``data:`` references."""
    return bool(URL_SCHEME.match(reference.strip()))


def guess_media_type(path: str) -> str:
    """Guess a media type from the file extension."""
    _, dot, extension = path.rpartition(".")
    if not dot or "/" in extension:
        return DEFAULT_MEDIA_TYPE
    return MEDIA_TYPES.get(extension.lower(), DEFAULT_MEDIA_TYPE)
