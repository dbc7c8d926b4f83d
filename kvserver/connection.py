"""Per-client buffering: framing of requests and responses.

Every message on the wire, in both directions, is a 32-bit little-endian
length followed by that many bytes.  A client may send several requests
back to back, and they may arrive split at any byte boundary.
"""

from __future__ import annotations

import logging
import struct

from kvserver.commands import Store
from kvserver.protocol import MAX_MSG, ErrorCode, ProtocolError, ResponseWriter, parse_request

_U32 = struct.Struct("<I")
_HEADER = _U32.size

log = logging.getLogger(__name__)


def take_message(buffer: bytes | bytearray | memoryview) -> tuple[bytes, int] | None:
    """Find the first complete message at the start of ``buffer``.

    Returns ``(body, consumed)``, where ``consumed`` counts the header too,
    or None if more bytes are needed.  Raises ProtocolError if the declared
    length is over MAX_MSG.
    """
    view = memoryview(buffer)
    if len(view) < _HEADER:
        return None
    (length,) = _U32.unpack(view[:_HEADER])
    if length > MAX_MSG:
        raise ProtocolError(f"message too long: {length} bytes")
    end = _HEADER + length
    if len(view) < end:
        return None
    return bytes(view[_HEADER:end]), end


def frame_response(body: bytes | bytearray | memoryview) -> bytes:
    """Prefix a response body with its length.

    A body over MAX_MSG is replaced by a TOO_BIG error value.
    """
    data = bytes(body)
    if len(data) > MAX_MSG:
        writer = ResponseWriter()
        writer.err(ErrorCode.TOO_BIG, "response is too big")
        data = writer.getvalue()
    return _U32.pack(len(data)) + data


class Connection:
    """State of one client: unparsed input, unsent output and what it waits for."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self.incoming = bytearray()
        self.outgoing = bytearray()
        self.want_read = True
        self.want_write = False
        self.want_close = False

    def feed(self, data: bytes | bytearray | memoryview) -> int:
        """Take bytes read from the client and answer every complete request.

        Empty ``data`` means the client closed its side.  Returns the number
        of requests answered.  A malformed or oversized request marks the
        connection for closing.
        """
        if not data:
            if self.incoming:
                log.info("unexpected EOF")
            else:
                log.info("client closed")
            self.want_close = True
            return 0

        self.incoming += data
        handled = 0
        while not self.want_close:
            try:
                found = take_message(self.incoming)
            except ProtocolError as exc:
                log.warning("too long: %s", exc)
                self.want_close = True
                break
            if found is None:
                break
            body, consumed = found
            try:
                args = parse_request(body)
            except ProtocolError as exc:
                log.warning("bad request: %s", exc)
                self.want_close = True
                break
            log.debug("client says: %r", args)
            self.outgoing += frame_response(self.store.execute(args))
            del self.incoming[:consumed]
            handled += 1

        if self.outgoing:
            self.want_read = False
            self.want_write = True
        return handled

    def pending(self) -> bytes:
        """Return the bytes waiting to be sent."""
        return bytes(self.outgoing)

    def consume(self, count: int) -> None:
        """Drop ``count`` bytes that were sent from the front of the output."""
        if not 0 <= count <= len(self.outgoing):
            raise ValueError(f"cannot consume {count} of {len(self.outgoing)} pending bytes")
        del self.outgoing[:count]
        if not self.outgoing:
            self.want_read = True
            self.want_write = False