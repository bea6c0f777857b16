"""gzip compression for archived workflow logs.

Output is deterministic: the compression level is fixed and the gzip header
timestamp is pinned to zero, so the same log always produces the same bytes.
"""

from __future__ import annotations

import gzip
import zlib

from .errors import CompressionError

COMPRESSION_LEVEL = 9


def compress(data: bytes) -> bytes:
    """Return the gzip-framed form of ``data``.

    Raises
    ------
    CompressionError
        If the underlying compressor fails.

    """
    try:
        return gzip.compress(data, compresslevel=COMPRESSION_LEVEL, mtime=0)
    except (OSError, zlib.error, ValueError) as exc:
        msg = f"failed to compress {len(data)} bytes: {exc}"
        raise CompressionError(msg) from exc


def decompress(data: bytes) -> bytes:
    """Inverse of :func:`compress`."""
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        msg = f"failed to decompress {len(data)} bytes: {exc}"
        raise CompressionError(msg) from exc
