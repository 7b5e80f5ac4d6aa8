"""Byte sinks the hook writes formatted lines to."""

import logging
import socket

from logagent.errors import WriteError

logger = logging.getLogger(__name__)


class StreamSink:
    """Writes to a binary file-like object (file, pipe, BytesIO)."""

    def __init__(self, stream, flush: bool = True):
        self._stream = stream
        self._flush = flush and hasattr(stream, "flush")

    def write(self, data: bytes) -> int:
        """Write all of *data*, retrying short writes from raw streams."""
        view = memoryview(data)
        try:
            while view:
                written = self._stream.write(view)
                if written is None:
                    break
                if written <= 0:
                    raise WriteError(
                        f"Stream accepted no bytes, {len(view)} of {len(data)} unwritten"
                    )
                view = view[written:]
            if self._flush:
                self._stream.flush()
        except (OSError, ValueError) as e:
            raise WriteError(f"Stream write failed: {e}") from e
        return len(data)


class SocketSink:
    """Writes to a connected socket. Dialing and reconnects are up to the caller."""

    def __init__(self, sock: socket.socket):
        self._sock = sock

    def write(self, data: bytes) -> int:
        try:
            self._sock.sendall(data)
        except OSError as e:
            logger.debug("Socket send failed: %s", e)
            raise WriteError(f"Socket send failed: {e}") from e
        return len(data)


def as_sink(target):
    """Return *target* if it can be written to, wrapping sockets first."""
    if isinstance(target, socket.socket):
        return SocketSink(target)
    if not callable(getattr(target, "write", None)):
        raise TypeError(f"{type(target).__name__} is not a writable sink")
    return target
