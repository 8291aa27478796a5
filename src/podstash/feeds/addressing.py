"""Content addressing for archived media.

Remote identifiers (episode GUIDs, image URLs) are unstable and often not
usable as file names. Each one is mapped to a fixed-length hex digest that is
used as the local file name, so recomputing the address from the same input
always yields the same path and a repeated sync finds the file already cached.

The digest algorithm is part of the on-disk format: changing it orphans every
file already in an archive.
"""

import hashlib
import posixpath
from collections.abc import Iterable
from urllib.parse import urlparse

from podstash.utils.errors import ContentAddressError

ADDRESS_ALGORITHM = "sha1"
ADDRESS_LENGTH = 40

DEFAULT_AUDIO_EXTENSION = ".mp3"


def address_of(value: str) -> str:
    """Compute the content address of a remote identifier.

    Args:
        value: GUID or URL

    Returns:
        Lowercase hex digest

    Raises:
        ContentAddressError: If value is not a string
    """
    if not isinstance(value, str):
        raise ContentAddressError(value, f"expected str, got {type(value).__name__}")

    try:
        data = value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ContentAddressError(value, str(e)) from e

    return hashlib.new(ADDRESS_ALGORITHM, data).hexdigest()


def media_extension(url: str, default: str = "") -> str:
    """Infer a file extension from the path component of a URL.

    Query strings and fragments are ignored, so
    ``https://cdn.example/ep1.m4a?token=x`` yields ``.m4a``.

    Args:
        url: Remote media URL
        default: Extension to use when the path has none

    Returns:
        Extension including the leading dot, or ``default``
    """
    path = urlparse(url.strip()).path
    ext = posixpath.splitext(posixpath.basename(path))[1]

    # A dot followed by nothing or by path-unsafe characters is not an extension
    if len(ext) < 2 or not ext[1:].isalnum():
        return default

    return ext.lower()


def episode_set_signature(guids: Iterable[str]) -> str:
    """Order-independent signature of a set of episode GUIDs.

    Two snapshots listing the same GUIDs in any order (or with duplicates)
    have the same signature.

    Args:
        guids: Episode GUIDs

    Returns:
        Hex digest over the sorted, distinct GUID addresses
    """
    addresses = sorted({address_of(guid) for guid in guids})
    return hashlib.new(ADDRESS_ALGORITHM, "\n".join(addresses).encode("ascii")).hexdigest()


def address_from_filename(name: str) -> str:
    """Return the address part of a cached media file name."""
    return name.split(".")[0]
