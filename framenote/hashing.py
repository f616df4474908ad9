"""
Content addressing for local video files.

A video is never uploaded; it is identified by a SHA-256 digest of its bytes
so that the same file yields the same identity on any machine, under any name.

Large files are sampled instead of read in full: the digest covers the decimal
byte length, the first MiB, the middle MiB and the last MiB, in that order.
Two different large files with identical size and identical sampled regions
collide. That risk is accepted.
"""

import hashlib
import io
import os
from pathlib import Path
from typing import BinaryIO, Union

from .errors import IntegrityError
from .logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB
FULL_HASH_LIMIT = CHUNK_SIZE * 3


def _read_exact(stream: BinaryIO, offset: int, length: int) -> bytes:
    stream.seek(offset)
    data = stream.read(length)
    if len(data) != length:
        raise IntegrityError(
            f"Short read at offset {offset}: expected {length} bytes, got {len(data)}"
        )
    return data


def sample_offsets(size: int) -> list[tuple[int, int]]:
    """Return the (offset, length) windows hashed for a file of ``size`` bytes.

    Files at or below three chunks are read whole.
    """
    if size <= FULL_HASH_LIMIT:
        return [(0, size)]
    middle = size // 2 - CHUNK_SIZE // 2
    return [(0, CHUNK_SIZE), (middle, CHUNK_SIZE), (size - CHUNK_SIZE, CHUNK_SIZE)]


def hash_stream(stream: BinaryIO, size: int) -> str:
    """Compute the video identity of an open, seekable binary stream.

    Args:
        stream: Binary file object positioned anywhere
        size: Total byte length of the stream

    Returns:
        64-character lowercase hex digest

    Raises:
        IntegrityError: If any sampled region cannot be fully read
    """
    hasher = hashlib.sha256()
    try:
        if size <= FULL_HASH_LIMIT:
            hasher.update(_read_exact(stream, 0, size))
        else:
            hasher.update(str(size).encode("ascii"))
            for offset, length in sample_offsets(size):
                hasher.update(_read_exact(stream, offset, length))
    except IntegrityError:
        raise
    except OSError as e:
        raise IntegrityError(f"Could not read video data: {e}") from e
    return hasher.hexdigest()


def hash_bytes(data: bytes) -> str:
    """Video identity of an in-memory byte string (same scheme as files)."""
    return hash_stream(io.BytesIO(data), len(data))


def hash_file(path: Union[str, Path]) -> str:
    """Compute the video identity of a local file.

    Raises:
        IntegrityError: If the file is missing or cannot be fully read
    """
    path = Path(path)
    try:
        size = os.path.getsize(path)
        with open(path, "rb") as f:
            digest = hash_stream(f, size)
    except IntegrityError:
        raise
    except OSError as e:
        raise IntegrityError(f"Could not read {path}: {e}") from e

    method = "full" if size <= FULL_HASH_LIMIT else "sampled"
    logger.debug("Hashed %s (%d bytes, %s): %s", path.name, size, method, digest[:12])
    return digest


def is_video_identity(value: str) -> bool:
    """Check that ``value`` looks like a video identity (64 lowercase hex chars)."""
    return len(value) == 64 and all(c in "0123456789abcdef" for c in value)
