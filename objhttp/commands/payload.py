from __future__ import annotations

from typing import Iterator

from objhttp.common.errors import InvalidRangeError


class Payload:
    """Caller-owned upload data plus a delivery cursor.

    ``data`` is borrowed, not copied, and must stay alive until the send
    finishes. Only ``read`` moves ``sent_so_far``, which never decreases and
    never passes ``length``. After a failed send the cursor holds the number
    of bytes handed to the transport, so a caller can resume from there.
    """

    def __init__(self, data: bytes, start: int = 0, length: int | None = None):
        try:
            view = memoryview(data)
        except TypeError as exc:
            raise InvalidRangeError(
                f"Payload must be bytes-like, not {type(data).__name__}"
            ) from exc
        if start < 0 or start > len(view):
            raise InvalidRangeError(
                f"Payload start {start} is outside data of {len(view)} bytes"
            )
        if length is None:
            length = len(view) - start
        if length < 0 or start + length > len(view):
            raise InvalidRangeError(
                f"Payload window {start}+{length} exceeds data of {len(view)} bytes"
            )
        self._data = view
        self.start = start
        self.length = length
        self.sent_so_far = 0

    @property
    def data(self) -> memoryview:
        return self._data

    @property
    def total_length(self) -> int:
        return len(self._data)

    @property
    def remaining(self) -> int:
        return self.length - self.sent_so_far

    @property
    def complete(self) -> bool:
        return self.sent_so_far == self.length

    def read(self, max_bytes: int) -> bytes:
        """Hand the next chunk to the transport and advance the cursor."""
        if max_bytes <= 0:
            return b""
        count = min(max_bytes, self.remaining)
        begin = self.start + self.sent_so_far
        chunk = self._data[begin : begin + count].tobytes()
        self.sent_so_far += count
        return chunk


class PayloadStream:
    """Iterable body with a known length.

    The explicit ``__len__`` lets HTTP libraries send a ``Content-Length``
    instead of falling back to chunked transfer encoding.
    """

    def __init__(self, payload: Payload, chunk_size: int = 1024 * 1024):
        self.payload = payload
        self.chunk_size = chunk_size

    def __len__(self) -> int:
        return self.payload.remaining

    def __iter__(self) -> Iterator[bytes]:
        while self.payload.remaining:
            yield self.payload.read(self.chunk_size)
