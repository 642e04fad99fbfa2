"""Content fingerprinting for catalogued files."""

import hashlib
from pathlib import Path
from typing import BinaryIO

DEFAULT_ALGORITHM = "md5"
CHUNK_SIZE = 65536


def hash_stream(stream: BinaryIO, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Digest every byte of an open binary stream and return the hex string."""
    h = hashlib.new(algorithm)
    while chunk := stream.read(CHUNK_SIZE):
        h.update(chunk)
    return h.hexdigest()


def hash_file(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Compute the content fingerprint of a file using chunked reads.

    Read errors are not caught here: a file that cannot be opened or read
    raises OSError to the caller.
    """
    with open(path, "rb") as f:
        return hash_stream(f, algorithm)


def is_supported(algorithm: str) -> bool:
    # shake_* digests have no fixed length
    return algorithm in hashlib.algorithms_available and not algorithm.startswith("shake_")
