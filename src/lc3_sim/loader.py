"""ImageLoader: populate an AddressSpace from an LC-3 object image.

Image format:
    word 0      origin address (big-endian)
    word 1..N   program words (big-endian), placed at origin, origin+1, ...

There is no header or length field; the end of the stream ends the image.
A short body is not an error, but a stream without a complete origin word is.
"""

import logging
import struct
from pathlib import Path
from typing import BinaryIO, List, Tuple, Union

from .errors import LoadError
from .memory import MEMORY_SIZE, AddressSpace

logger = logging.getLogger(__name__)

WORD_SIZE = 2


def read_image(stream: BinaryIO) -> Tuple[int, List[int]]:
    """Parse an object image from a binary stream.

    Args:
        stream: Binary stream positioned at the start of the image

    Returns:
        Tuple of (origin, words) with words in host order

    Raises:
        LoadError: If the stream cannot be read or lacks an origin word
    """
    try:
        data = stream.read()
    except OSError as e:
        raise LoadError(f"Cannot read image: {e}") from e

    if data is None or len(data) < WORD_SIZE:
        raise LoadError("Image truncated: missing origin word")

    (origin,) = struct.unpack_from(">H", data, 0)

    body = data[WORD_SIZE:]
    count = min(len(body) // WORD_SIZE, MEMORY_SIZE - origin)
    if len(body) % WORD_SIZE:
        logger.debug("Ignoring trailing odd byte in image")
    words = list(struct.unpack_from(f">{count}H", body, 0))
    return origin, words


def load_image(memory: AddressSpace, stream: BinaryIO) -> int:
    """Read an image from stream into memory.

    Returns:
        The image origin
    """
    origin, words = read_image(stream)
    stored = memory.load(origin, words)
    logger.debug("Loaded %d words at origin 0x%04X", stored, origin)
    return origin


def load_image_file(memory: AddressSpace, path: Union[str, Path]) -> int:
    """Open an object file and load it into memory.

    Returns:
        The image origin

    Raises:
        LoadError: If the file cannot be opened or read
    """
    try:
        with open(path, "rb") as f:
            return load_image(memory, f)
    except OSError as e:
        raise LoadError(f"Cannot open image {path}: {e}") from e
