# telemetry/framer.py
"""
Recovers JSON objects from the simulator's undelimited TCP stream.

The simulator writes objects back to back with no length prefix or
separator, so boundaries are found by tracking brace depth byte by byte.
Quotes and backslash escapes are tracked too, so braces inside string
values never move the depth counter.
"""
import logging
from typing import Callable, Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)

OPEN_BRACE = ord("{")
CLOSE_BRACE = ord("}")
QUOTE = ord('"')
BACKSLASH = ord("\\")
WHITESPACE = frozenset(b" \t\r\n")


class FramingError(ValueError):
    """Bytes that cannot belong to any JSON object in the stream."""

    def __init__(self, message: str, data: bytes = b""):
        super().__init__(message)
        self.data = data


class JsonObjectFramer:
    """
    Splits a byte stream into complete top-level JSON objects.

    State persists between feed() calls, so an object may arrive spread
    over any number of chunks. Framing problems are handed to ``on_error``
    and the framer resynchronises on the next ``{``; they never stop the
    stream.
    """

    def __init__(
        self,
        on_error: Optional[Callable[[FramingError], None]] = None,
        max_document_bytes: Optional[int] = None,
    ):
        if max_document_bytes is not None and max_document_bytes < 2:
            raise ValueError("max_document_bytes must be at least 2")
        self.on_error = on_error
        self.max_document_bytes = max_document_bytes

        self._buffer = bytearray()
        self._depth = 0
        self._in_string = False
        self._escaped = False
        self._discarding = False
        self._overflowed = False

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def pending(self) -> int:
        """Number of bytes of the object currently being accumulated."""
        return len(self._buffer)

    def reset(self) -> None:
        """Drop any partial object, e.g. after reconnecting."""
        self._buffer = bytearray()
        self._depth = 0
        self._in_string = False
        self._escaped = False
        self._discarding = False
        self._overflowed = False

    def feed(self, chunk: bytes) -> List[bytes]:
        """
        Consume one chunk and return every object it completes, in order.
        """
        documents: List[bytes] = []
        for byte in chunk:
            if self._depth == 0:
                self._scan_between_objects(byte)
                continue

            if not self._overflowed:
                self._buffer.append(byte)

            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif byte == BACKSLASH:
                    self._escaped = True
                elif byte == QUOTE:
                    self._in_string = False
            elif byte == QUOTE:
                self._in_string = True
            elif byte == OPEN_BRACE:
                self._depth += 1
            elif byte == CLOSE_BRACE:
                self._depth -= 1
                if self._depth == 0:
                    if self._overflowed:
                        self._overflowed = False
                        continue
                    documents.append(bytes(self._buffer))
                    # New buffer rather than truncation; emitted bytes are never reused
                    self._buffer = bytearray()
                    continue

            if (
                not self._overflowed
                and self.max_document_bytes is not None
                and len(self._buffer) > self.max_document_bytes
            ):
                self._abandon_document()

        return documents

    # ------------------ Internals ------------------ #

    def _scan_between_objects(self, byte: int) -> None:
        if byte == OPEN_BRACE:
            self._buffer.append(byte)
            self._depth = 1
            self._discarding = False
            return

        if byte in WHITESPACE:
            return

        # Report a run of garbage once, not once per byte
        if not self._discarding:
            self._discarding = True
            if byte == CLOSE_BRACE:
                message = "Unbalanced '}' outside of any object"
            else:
                message = f"Unexpected byte {bytes([byte])!r} between objects"
            self._report(FramingError(message, bytes([byte])))

    def _abandon_document(self) -> None:
        partial = bytes(self._buffer)
        # Keep tracking depth and string state until the object closes, but stop buffering
        self._buffer = bytearray()
        self._overflowed = True
        self._report(FramingError(
            f"Object exceeds {self.max_document_bytes} bytes, discarding it",
            partial,
        ))

    def _report(self, error: FramingError) -> None:
        if self.on_error is not None:
            self.on_error(error)
        else:
            logger.warning("Framing error: %s", error)


def frame_stream(
    chunks: Iterable[bytes],
    framer: Optional[JsonObjectFramer] = None,
) -> Iterator[bytes]:
    """Lazily yield objects from an iterable of byte chunks."""
    if framer is None:
        framer = JsonObjectFramer()
    for chunk in chunks:
        yield from framer.feed(chunk)
