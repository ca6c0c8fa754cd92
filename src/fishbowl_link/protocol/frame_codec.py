"""Length-prefixed framing for the Fishbowl TCP stream.

Every message in both directions is a 4-byte big-endian unsigned length
followed by that many bytes of UTF-8 JSON.
"""

import logging
import struct

from fishbowl_link.protocol.exceptions import FrameDecodeError

logger = logging.getLogger(__name__)

LENGTH_PREFIX_SIZE = 4
DEFAULT_MAX_FRAME_SIZE = 64 * 1024 * 1024

_LENGTH_STRUCT = struct.Struct(">I")


def encode_frame(payload: str) -> bytes:
    """Prefix a UTF-8 payload with its big-endian byte length."""
    body = payload.encode("utf-8")
    return _LENGTH_STRUCT.pack(len(body)) + body


class FrameDecoder:
    r"""Reassemble complete frames from arbitrary TCP chunk boundaries.

    The decoder holds at most one partial frame. When no length is pending it
    reads the 4-byte length word (which may itself be split across chunks),
    then accumulates body bytes until the declared length is reached.

    A single chunk may carry the tail of one frame followed by further frames;
    all complete frames are returned in wire order and the remainder is kept
    for the next feed.

    Example:
        decoder = FrameDecoder()
        frame = encode_frame('{"FbiJson": {}}')
        assert decoder.feed(frame[:6]) == []  # awaiting more data
        assert decoder.feed(frame[6:]) == [b'{"FbiJson": {}}']

    """

    def __init__(self, max_frame_size: int = DEFAULT_MAX_FRAME_SIZE) -> None:
        self.max_frame_size: int = max_frame_size
        self.declared_length: int | None = None
        self.buffer: bytearray = bytearray()

    @property
    def awaiting_data(self) -> bool:
        """True while a partial frame (or partial length word) is buffered."""
        return self.declared_length is not None or len(self.buffer) > 0

    def feed(self, data: bytes) -> list[bytes]:
        """Add a chunk and return the body of every frame it completes.

        Args:
            data: Incoming bytes from a TCP read

        Returns:
            Complete frame bodies in wire order (may be empty)

        Raises:
            FrameDecodeError: Declared length exceeds max_frame_size

        """
        self.buffer.extend(data)
        frames: list[bytes] = []

        while True:
            if self.declared_length is None:
                if len(self.buffer) < LENGTH_PREFIX_SIZE:
                    break
                (length,) = _LENGTH_STRUCT.unpack_from(self.buffer)
                if length > self.max_frame_size:
                    buffered = len(self.buffer)
                    self.reset()
                    logger.error(
                        "Declared frame length %d exceeds max %d",
                        length,
                        self.max_frame_size,
                        extra={"declared_length": length, "buffer_size": buffered},
                    )
                    raise FrameDecodeError("frame_too_large", buffer_size=length)
                self.declared_length = length
                del self.buffer[:LENGTH_PREFIX_SIZE]

            if len(self.buffer) < self.declared_length:
                break

            frames.append(bytes(self.buffer[: self.declared_length]))
            del self.buffer[: self.declared_length]
            self.declared_length = None

        if self.awaiting_data:
            logger.debug(
                "Waiting for more data from Fishbowl...",
                extra={"declared_length": self.declared_length, "buffered": len(self.buffer)},
            )
        return frames

    def reset(self) -> None:
        """Drop any partial frame."""
        self.declared_length = None
        self.buffer = bytearray()
