"""
=============================================================================
BODY TRANSFER
=============================================================================

Moves message bodies between a byte stream and a sink in bounded memory.
No body is ever loaded whole: readers yield blocks of at most
`block_size` bytes and writers frame whatever they are handed.

=============================================================================
HOW DOES THE RECEIVER KNOW WHERE THE BODY ENDS?
=============================================================================

HTTP/1.1 (without keep-alive tricks) has two framing strategies, decided
from the headers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     FRAMING RESOLUTION                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Transfer-Encoding: chunked ?  ──yes──►  Framing.chunked()          │
    │            │                              (always wins)              │
    │            no                                                        │
    │            ▼                                                         │
    │   Content-Length: N ?           ──yes──►  Framing.fixed(N)           │
    │            │                              (N not decimal → error)    │
    │            no                                                        │
    │            ▼                                                         │
    │   Framing.none()                          no body                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

FIXED LENGTH
────────────

    Content-Length: 9\\r\\n
    \\r\\n
    Wikipedia                  ← exactly 9 bytes, never more are read

CHUNKED
───────

    Transfer-Encoding: chunked\\r\\n
    \\r\\n
    4\\r\\n                      ← chunk size in HEX
    Wiki\\r\\n                   ← 4 bytes of data + CRLF
    5\\r\\n
    pedia\\r\\n
    0\\r\\n                      ← zero-size chunk ends the body
    \\r\\n                       ← (optional trailer headers come before this)

Chunk boundaries have nothing to do with TCP segment boundaries or our
read buffer. A 1 MB chunk arrives as many reads; a read may also contain
the tail of one chunk and the head of the next. The decoder therefore
works line-by-line and count-by-count, never buffer-by-buffer.

=============================================================================
PROGRESS REPORTING
=============================================================================

Every reader and writer accepts an optional progress callback:

    progress(bytes_so_far, total_if_known)

It fires after every delivered block. For chunked reads the total is
None until the zero chunk arrives, then one last call reports
(n, n) so the caller knows the transfer is complete.

=============================================================================
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

from .errors import MalformedChunk, MalformedHeader, UnexpectedEof
from .headers import Headers


DEFAULT_BLOCK_SIZE = 8192
MAX_CHUNK_LINE = 1024
MAX_TRAILERS = 100

ProgressCallback = Callable[[int, Optional[int]], None]

_HEX_SIZE = re.compile(r"[0-9A-Fa-f]+")


# =============================================================================
# FRAMING MODE
# =============================================================================

class FramingKind(Enum):
    NONE = "none"
    FIXED = "fixed"
    CHUNKED = "chunked"


@dataclass(frozen=True)
class Framing:
    """
    How a message body is delimited. Exactly one kind per message.

        Framing.fixed(12)   → 12 bytes follow the head
        Framing.chunked()   → chunk records until the zero chunk
        Framing.none()      → no body at all
    """

    kind: FramingKind
    length: Optional[int] = None

    @classmethod
    def fixed(cls, length: int) -> "Framing":
        if length < 0:
            raise ValueError(f"Body length must be non-negative, got {length}")
        return cls(FramingKind.FIXED, length)

    @classmethod
    def chunked(cls) -> "Framing":
        return cls(FramingKind.CHUNKED)

    @classmethod
    def none(cls) -> "Framing":
        return cls(FramingKind.NONE)

    @property
    def is_fixed(self) -> bool:
        return self.kind is FramingKind.FIXED

    @property
    def is_chunked(self) -> bool:
        return self.kind is FramingKind.CHUNKED

    @property
    def has_body(self) -> bool:
        """False when reading the body would be a no-op."""
        if self.kind is FramingKind.FIXED:
            return self.length > 0
        return self.kind is FramingKind.CHUNKED


def resolve_framing(headers: Headers) -> Framing:
    """
    Decide the body framing from a header set.

    A pure function of the headers: same headers, same result.

    Raises:
        MalformedHeader: Content-Length is present but not a decimal
                         non-negative integer.
    """
    transfer_encoding = headers.get("Transfer-Encoding")
    if transfer_encoding is not None:
        codings = [c.strip().lower() for c in transfer_encoding.split(",") if c.strip()]
        if codings and codings[-1] == "chunked":
            return Framing.chunked()

    content_length = headers.get("Content-Length")
    if content_length is not None:
        if not (content_length.isascii() and content_length.isdigit()):
            raise MalformedHeader(f"Invalid Content-Length: {content_length!r}")
        return Framing.fixed(int(content_length))

    return Framing.none()


# =============================================================================
# PROGRESS STATE
# =============================================================================

@dataclass
class Progress:
    """
    Mutable transfer progress, usable directly as a progress callback.

        progress = Progress()
        for block in read_body(stream, framing, progress=progress):
            ...
        progress.done   # True once the body is complete
    """

    transferred: int = 0
    total: Optional[int] = None
    done: bool = False

    def __call__(self, so_far: int, total: Optional[int]) -> None:
        self.transferred = so_far
        self.total = total
        if total is not None and so_far >= total:
            self.done = True

    def update(self, count: int) -> None:
        """Add `count` freshly transferred bytes."""
        self(self.transferred + count, self.total)

    def finish(self) -> None:
        """Mark complete; an unknown total becomes what was transferred."""
        self(self.transferred, self.transferred)

    @property
    def fraction(self) -> Optional[float]:
        if self.total is None:
            return None
        if self.total == 0:
            return 1.0
        return self.transferred / self.total


# =============================================================================
# READING
# =============================================================================

def read_fixed(
    stream,
    length: int,
    progress: Optional[ProgressCallback] = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> Iterator[bytes]:
    """
    Yield exactly `length` body bytes in blocks of at most `block_size`.

    Never asks the stream for more than what remains, so bytes that belong
    to whatever follows the body stay unread.

    Raises:
        UnexpectedEof: The stream ended before `length` bytes arrived.
    """
    if length == 0:
        if progress:
            progress(0, 0)
        return

    received = 0
    while received < length:
        block = stream.read(min(block_size, length - received))
        if not block:
            raise UnexpectedEof(f"Body ended after {received} of {length} bytes")
        received += len(block)
        if progress:
            progress(received, length)
        yield block


def _read_chunk_size(stream) -> int:
    raw = stream.readline(MAX_CHUNK_LINE + 1)
    if not raw:
        raise UnexpectedEof("Stream ended before the next chunk size")
    if not raw.endswith(b"\n"):
        if len(raw) > MAX_CHUNK_LINE:
            raise MalformedChunk("Chunk size line too long")
        raise UnexpectedEof("Stream ended inside a chunk size line")

    # Chunk extensions (";name=value") are allowed and ignored
    size_text = raw.split(b";", 1)[0].strip().decode("ascii", errors="replace")
    if not _HEX_SIZE.fullmatch(size_text):
        raise MalformedChunk(f"Invalid chunk size: {size_text!r}")
    return int(size_text, 16)


def _expect_crlf(stream) -> None:
    tail = stream.readline(3)
    # A lone CR is a CRLF cut short by the end of the stream
    if not tail or tail == b"\r":
        raise UnexpectedEof("Stream ended before the CRLF after chunk data")
    if tail not in (b"\r\n", b"\n"):
        raise MalformedChunk("Chunk data not followed by CRLF")


def _skip_trailers(stream) -> None:
    # The peer may close right after "0\r\n"; that still ends the body.
    for _ in range(MAX_TRAILERS + 1):
        line = stream.readline(MAX_CHUNK_LINE + 1)
        if not line or line in (b"\r\n", b"\n") or not line.endswith(b"\n"):
            return
    raise MalformedChunk(f"More than {MAX_TRAILERS} trailer lines")


def read_chunked(
    stream,
    progress: Optional[ProgressCallback] = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> Iterator[bytes]:
    """
    Decode a chunked body, yielding payload blocks as they arrive.

    The output is the concatenation of all chunk payloads; block
    boundaries in the output are not chunk boundaries.

    Raises:
        MalformedChunk: Non-hex size, or chunk data not followed by CRLF.
        UnexpectedEof: The stream ended mid-chunk.
    """
    received = 0
    while True:
        size = _read_chunk_size(stream)

        if size == 0:
            _skip_trailers(stream)
            if progress:
                progress(received, received)
            return

        remaining = size
        while remaining > 0:
            block = stream.read(min(block_size, remaining))
            if not block:
                raise UnexpectedEof(
                    f"Chunk ended after {size - remaining} of {size} bytes"
                )
            remaining -= len(block)
            received += len(block)
            if progress:
                progress(received, None)
            yield block

        _expect_crlf(stream)


def read_body(
    stream,
    framing: Framing,
    progress: Optional[ProgressCallback] = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> Iterator[bytes]:
    """Yield the body blocks of a message with the given framing."""
    if framing.is_chunked:
        return read_chunked(stream, progress, block_size)
    if framing.is_fixed:
        return read_fixed(stream, framing.length, progress, block_size)
    return iter(())


def copy_body(
    stream,
    framing: Framing,
    sink,
    progress: Optional[ProgressCallback] = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> int:
    """Stream a body into `sink.write`. Returns the number of bytes copied."""
    copied = 0
    for block in read_body(stream, framing, progress, block_size):
        sink.write(block)
        copied += len(block)
    return copied


def drain_body(
    stream,
    framing: Framing,
    progress: Optional[ProgressCallback] = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> int:
    """Read and discard a body. Returns the number of bytes drained."""
    return sum(len(block) for block in read_body(stream, framing, progress, block_size))


# =============================================================================
# WRITING
# =============================================================================

class FixedBodyWriter:
    """
    Writes a body whose size was announced in Content-Length.

    The head must already carry the matching Content-Length. Writing more
    than announced is a programming error (ValueError); closing with fewer
    bytes written raises UnexpectedEof because the peer would hang waiting.
    """

    def __init__(self, sink, length: int, progress: Optional[ProgressCallback] = None):
        self.sink = sink
        self.length = length
        self.progress = progress
        self.written = 0
        self.closed = False

    def write(self, data: bytes) -> int:
        if not data:
            return 0
        if self.written + len(data) > self.length:
            raise ValueError(
                f"Body exceeds Content-Length: {self.written + len(data)} > {self.length}"
            )
        self.sink.write(data)
        self.written += len(data)
        if self.progress:
            self.progress(self.written, self.length)
        return len(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.written != self.length:
            raise UnexpectedEof(f"Body ended after {self.written} of {self.length} bytes")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
        else:
            self.closed = True
        return False


class ChunkedBodyWriter:
    """
    Frames arbitrary-size writes as chunk records.

        write(b"Wiki")   →  4\\r\\nWiki\\r\\n
        write(b"pedia")  →  5\\r\\npedia\\r\\n
        close()          →  0\\r\\n\\r\\n

    Empty writes are skipped: a zero-size chunk would end the body early.
    """

    def __init__(self, sink, progress: Optional[ProgressCallback] = None):
        self.sink = sink
        self.progress = progress
        self.written = 0
        self.closed = False

    def write(self, data: bytes) -> int:
        if self.closed:
            raise ValueError("Write to a closed chunked body")
        if not data:
            return 0
        self.sink.write(b"%x\r\n" % len(data) + data + b"\r\n")
        self.written += len(data)
        if self.progress:
            self.progress(self.written, None)
        return len(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.sink.write(b"0\r\n\r\n")
        if self.progress:
            self.progress(self.written, self.written)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # No sentinel after a failure: the peer must see a truncated body
        if exc_type is None:
            self.close()
        else:
            self.closed = True
        return False


def open_body_writer(
    sink,
    framing: Framing,
    progress: Optional[ProgressCallback] = None,
):
    """Return the writer matching `framing`. No-body framing accepts 0 bytes."""
    if framing.is_chunked:
        return ChunkedBodyWriter(sink, progress)
    length = framing.length if framing.is_fixed else 0
    return FixedBodyWriter(sink, length, progress)


def write_body(
    sink,
    framing: Framing,
    blocks: Iterable[bytes],
    progress: Optional[ProgressCallback] = None,
) -> int:
    """Write every block through the writer for `framing`; returns bytes written."""
    with open_body_writer(sink, framing, progress) as writer:
        for block in blocks:
            writer.write(block)
    return writer.written
