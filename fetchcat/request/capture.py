"""Response capture: header line protocol and body sinks.

The transport hands every response header line to a header sink and
every body chunk to a body sink. Both sinks report how much they consumed;
anything short of the full input aborts the attempt.
"""

from io import BytesIO
from typing import Protocol

from fetchcat.request.constants import UNBOUNDED_SIZE


class HeaderSink(Protocol):
    """Consumer of raw response header lines."""

    def receive(self, line: str) -> int:
        """Consume one header line and return the number of characters taken."""
        ...


class BodySink(Protocol):
    """Consumer of response body chunks."""

    def write(self, chunk: bytes) -> int:
        """Consume a chunk and return the number of bytes accepted."""
        ...

    def getvalue(self) -> bytes:
        """Return every accepted byte."""
        ...


class HeaderCapture:
    """Collects response headers across redirect hops.

    Header lines arrive one at a time in transport order, with each hop's
    block preceded by its status line. A status line clears everything
    collected so far, so only the final hop survives.
    """

    def __init__(self) -> None:
        self._headers: dict[str, list[str]] = {}

    def receive(self, line: str) -> int:
        """Consume one raw header line.

        Args:
            line: Header line, possibly with its trailing CRLF.

        Returns:
            Length of the line, always.
        """
        length = len(line)

        name, sep, value = line.partition(":")
        if not sep:
            if "http" in line.lower():
                self._headers = {}
            return length

        key = name.strip().lower()
        self._headers.setdefault(key, []).append(value.strip())
        return length

    def reset(self) -> None:
        """Drop every captured header."""
        self._headers = {}

    def values(self, name: str) -> list[str]:
        """Get every value captured for a header name (case-insensitive).

        Args:
            name: Header name.

        Returns:
            Values in arrival order, empty if the header is absent.
        """
        return list(self._headers.get(name.lower(), []))

    def as_dict(self) -> dict[str, list[str]]:
        """Get a copy of all captured headers keyed by lowercased name."""
        return {key: list(values) for key, values in self._headers.items()}


class BufferSink:
    """Body sink without a size limit."""

    def __init__(self) -> None:
        self._buffer = BytesIO()

    def write(self, chunk: bytes) -> int:
        """Accept the whole chunk."""
        return self._buffer.write(chunk)

    def getvalue(self) -> bytes:
        """Return the buffered body."""
        return self._buffer.getvalue()


class CappedBufferSink:
    """Body sink that refuses data beyond a byte budget.

    A chunk that would push the buffer past the capacity is refused in
    full (zero bytes accepted) rather than truncated.
    """

    def __init__(self, capacity: int) -> None:
        """Initialize the sink.

        Args:
            capacity: Maximum number of body bytes to accept.
        """
        if capacity < 0:
            msg = f"Capacity must be non-negative, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._buffer = BytesIO()
        self._size = 0

    @property
    def capacity(self) -> int:
        """Get the byte budget."""
        return self._capacity

    def write(self, chunk: bytes) -> int:
        """Accept the chunk if it fits in the remaining budget.

        Args:
            chunk: Body bytes.

        Returns:
            len(chunk) if accepted, 0 if refused.
        """
        if len(chunk) > self._capacity - self._size:
            return 0
        self._buffer.write(chunk)
        self._size += len(chunk)
        return len(chunk)

    def getvalue(self) -> bytes:
        """Return the accepted body bytes."""
        return self._buffer.getvalue()


def make_body_sink(max_bytes: int) -> BufferSink | CappedBufferSink:
    """Select the body sink for a response size cap.

    Args:
        max_bytes: Byte cap, or UNBOUNDED_SIZE for no cap.

    Returns:
        CappedBufferSink for a non-negative cap, BufferSink otherwise.
    """
    if max_bytes == UNBOUNDED_SIZE or max_bytes < 0:
        return BufferSink()
    return CappedBufferSink(max_bytes)
