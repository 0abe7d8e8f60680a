"""Decoder for the container runtime's multiplexed log protocol.

When a container runs without a TTY, the runtime interleaves stdout and
stderr in one byte stream. Each frame carries an 8-byte header::

    [stream_type, 0, 0, 0, size_b3, size_b2, size_b1, size_b0]

where ``stream_type`` is 1 for stdout and 2 for stderr and ``size`` is the
big-endian payload length. Nothing in this module raises on malformed
input: any bytes that cannot be framed are passed through as text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from ._models import LogRecord, LogStream

if TYPE_CHECKING:
    from collections.abc import Iterator

HEADER_SIZE: Final = 8
STDOUT: Final = 1
STDERR: Final = 2

_STREAMS: Final[dict[int, LogStream]] = {STDOUT: "stdout", STDERR: "stderr"}

# A frame header left at the start of a line by backends that combine streams.
_HEADER_PREFIX = re.compile(r"^[\x00-\x02]\x00\x00\x00.{4}", re.DOTALL)
_TIMESTAMP_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2}T\S+)\s(.*)$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class LogFrame:
    """One decoded frame.

    Attributes:
        payload: Frame payload bytes.
        stream: Stream the frame belongs to, or None for unframed bytes.
    """

    payload: bytes
    stream: LogStream | None


def encode_frame(payload: bytes, stream_type: int = STDOUT) -> bytes:
    """Encode a payload as a single multiplexed frame."""
    return bytes((stream_type, 0, 0, 0)) + len(payload).to_bytes(4, "big") + payload


def is_multiplexed(buffer: bytes) -> bool:
    """Return True when the buffer starts with a valid frame header."""
    return (
        len(buffer) >= HEADER_SIZE
        and buffer[0] in _STREAMS
        and buffer[1:4] == b"\x00\x00\x00"
    )


def iter_frames(buffer: bytes) -> Iterator[LogFrame]:
    """Split a buffer into frames.

    Reads a header, extracts the payload, advances past it and repeats. The
    loop stops at the first position where a frame cannot be read (fewer
    than 8 bytes left, a declared length longer than the remaining bytes, or
    an unknown stream type) and yields the rest of the buffer unchanged as
    an unframed frame. Frames with an empty payload yield nothing.

    Args:
        buffer: Raw bytes from the runtime.

    Yields:
        Frames in buffer order.
    """
    offset = 0
    size = len(buffer)
    while offset < size:
        remaining = size - offset
        if remaining < HEADER_SIZE:
            yield LogFrame(buffer[offset:], None)
            return

        stream = _STREAMS.get(buffer[offset])
        length = int.from_bytes(buffer[offset + 4 : offset + HEADER_SIZE], "big")
        if stream is None or length > remaining - HEADER_SIZE:
            yield LogFrame(buffer[offset:], None)
            return

        start = offset + HEADER_SIZE
        if length:
            yield LogFrame(buffer[start : start + length], stream)
        offset = start + length


def _decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def decode_chunk(chunk: bytes) -> str:
    """Decode one chunk delivered by a streaming connection.

    Payloads are concatenated in frame order. Unframed trailing bytes are
    appended as text.
    """
    return _decode_text(b"".join(frame.payload for frame in iter_frames(chunk)))


def decode_buffer(buffer: bytes) -> str:
    """Decode a complete buffer of multiplexed log output."""
    payloads = [frame.payload for frame in iter_frames(buffer)]
    return _decode_text(b"".join(payloads))


def split_plain_lines(text: str) -> list[str]:
    """Split unframed log text into lines.

    Blank lines are dropped and a header-shaped prefix at the start of a
    line is removed. Only the binary shape of a frame header is stripped
    (a stream byte followed by three zero bytes and a length). Stripping
    any eight word characters followed by whitespace would also eat the
    first word of lines such as "Starting server", so that looser rule is
    not applied.
    """
    lines: list[str] = []
    for line in text.splitlines():
        cleaned = _HEADER_PREFIX.sub("", line, count=1)
        if cleaned.strip():
            lines.append(cleaned)
    return lines


def to_record(line: str, stream: LogStream | None, *, timestamps: bool) -> LogRecord:
    """Build a LogRecord, splitting off a timestamp prefix when requested."""
    if timestamps:
        match = _TIMESTAMP_PREFIX.match(line)
        if match is not None:
            return LogRecord(
                text=match.group(2), stream=stream, timestamp=match.group(1)
            )
    return LogRecord(text=line, stream=stream)


def decode_log_records(buffer: bytes, *, timestamps: bool = True) -> list[LogRecord]:
    """Decode a complete log buffer into records.

    Multiplexed buffers keep the stream of each frame; anything else goes
    through the plain-text fallback.

    Args:
        buffer: Raw log bytes.
        timestamps: Whether lines carry a timestamp prefix.

    Returns:
        Non-blank log records in order.
    """
    if not is_multiplexed(buffer):
        return [
            to_record(line, None, timestamps=timestamps)
            for line in split_plain_lines(_decode_text(buffer))
        ]

    decoder = LogStreamDecoder(timestamps=timestamps)
    records = decoder.feed(buffer)
    records.extend(decoder.flush())
    return records


@dataclass(slots=True)
class LogStreamDecoder:
    """Incremental decoder for a streamed log connection.

    Network chunks do not line up with frame boundaries, so incomplete
    frames and incomplete lines are held until more bytes arrive. A stream
    whose first bytes are not a frame header is treated as plain text for
    its whole lifetime.

    Attributes:
        timestamps: Whether lines carry a timestamp prefix.
    """

    timestamps: bool = True
    _pending: bytes = field(default=b"", init=False)
    _framed: bool | None = field(default=None, init=False)
    _partial: dict[LogStream | None, str] = field(default_factory=dict, init=False)

    def feed(self, chunk: bytes) -> list[LogRecord]:
        """Consume a chunk and return the records it completes."""
        self._pending += chunk
        if self._framed is None:
            if len(self._pending) < HEADER_SIZE:
                return []
            self._framed = is_multiplexed(self._pending)

        if not self._framed:
            data, self._pending = self._pending, b""
            return self._emit(_decode_text(data), None)

        records: list[LogRecord] = []
        while len(self._pending) >= HEADER_SIZE:
            stream = _STREAMS.get(self._pending[0])
            if stream is None:
                # Lost framing; the rest is text.
                data, self._pending = self._pending, b""
                records.extend(self._emit(_decode_text(data), None))
                break
            length = int.from_bytes(self._pending[4:HEADER_SIZE], "big")
            end = HEADER_SIZE + length
            if len(self._pending) < end:
                break
            payload = self._pending[HEADER_SIZE:end]
            self._pending = self._pending[end:]
            if payload:
                records.extend(self._emit(_decode_text(payload), stream))
        return records

    def flush(self) -> list[LogRecord]:
        """Return whatever is still buffered once the stream has ended."""
        records: list[LogRecord] = []
        if self._pending:
            data, self._pending = self._pending, b""
            for frame in iter_frames(data):
                records.extend(self._emit(_decode_text(frame.payload), frame.stream))
        for stream, text in list(self._partial.items()):
            records.extend(
                to_record(line, stream, timestamps=self.timestamps)
                for line in split_plain_lines(text)
            )
        self._partial.clear()
        return records

    def _emit(self, text: str, stream: LogStream | None) -> list[LogRecord]:
        text = self._partial.pop(stream, "") + text
        lines = text.split("\n")
        tail = lines.pop()
        if tail:
            self._partial[stream] = tail
        return [
            to_record(line, stream, timestamps=self.timestamps)
            for line in split_plain_lines("\n".join(lines))
        ]
