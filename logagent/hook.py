"""Hooks that deliver formatted entries to a sink.

AsyncHook decouples the caller from sink I/O:
  Producers call fire() -> entry copy goes onto a bounded queue.
  One dispatch thread dequeues -> formats -> writes to the sink.
SyncHook formats and writes on the calling thread instead.
"""

import logging
import queue
import threading
from enum import Enum

from logagent.errors import ConfigurationError, FormatError, MisuseError, WriteError
from logagent.models import ALL_LEVELS, Level, LogEntry
from logagent.sinks import as_sink
from logagent.stats import DeliveryStats

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1024

# How often a blocked producer or an idle worker re-checks for shutdown
_POLL_INTERVAL = 0.1

_STOP = object()


class HookState(Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


class AsyncHook:
    """Fire-and-forget hook backed by a bounded queue and one dispatch thread.

    Only the dispatch thread touches the formatter and the sink, so the
    sink does not need to be thread-safe. ``fire`` never raises for a full
    queue or a failed write; those entries are dropped and counted in
    ``stats``. When ``block_when_full`` is set, ``fire`` waits for queue
    space instead of dropping, until the hook is stopped.
    """

    def __init__(
        self,
        sink,
        formatter,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        block_when_full: bool = False,
    ):
        if isinstance(queue_size, bool) or not isinstance(queue_size, int) or queue_size <= 0:
            raise ConfigurationError(f"queue_size must be a positive integer, got {queue_size!r}")

        self._state = HookState.CREATED
        self._sink = as_sink(sink)
        self._formatter = formatter
        self._block_when_full = block_when_full
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._idle = threading.Condition()
        self._pending = 0
        self._stats = DeliveryStats()

        self._thread = threading.Thread(
            target=self._dispatch_loop, name="logagent-dispatch", daemon=True,
        )
        self._thread.start()
        self._state = HookState.RUNNING
        logger.debug("Dispatch worker started (queue_size=%d)", queue_size)

    @property
    def state(self) -> HookState:
        return self._state

    @property
    def stats(self) -> DeliveryStats:
        return self._stats

    def levels(self) -> list[Level]:
        """The hook accepts every level; filtering is up to the caller."""
        return list(ALL_LEVELS)

    def fire(self, entry: LogEntry) -> None:
        self.submit(entry)

    def submit(self, entry: LogEntry):
        """Queue a copy of *entry* for delivery.

        Raises:
            MisuseError: if the hook has been stopped.
        """
        item = entry.dup()
        if self._block_when_full:
            self._check_running()
            self._stats.record_submitted()
            self._put_blocking(item)
            return

        with self._state_lock:
            self._check_running()
            self._stats.record_submitted()
            self._begin()
            try:
                self._queue.put_nowait(item)
            except queue.Full:
                self._done()
                self._stats.record_dropped()
                logger.debug("Queue full, dropping entry")

    def flush(self, timeout: float | None = 5.0) -> bool:
        """Wait until every queued entry has been handled.

        Returns False if *timeout* expired first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def stop(self, timeout: float = 5.0):
        """Stop the dispatch thread. Entries still queued are discarded."""
        with self._state_lock:
            if self._state is HookState.STOPPED:
                return
            self._state = HookState.STOPPED

        self._stop_event.set()
        try:
            self._queue.put_nowait(_STOP)
        except queue.Full:
            # The worker sees the stop event as soon as it takes the next item
            pass

        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Dispatch worker did not exit within %.1fs", timeout)

        discarded = self._discard_remaining()
        if discarded:
            logger.info("Discarded %d undelivered entries on stop", discarded)
        logger.debug("Hook stopped: %s", self._stats.snapshot())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _check_running(self):
        if self._state is not HookState.RUNNING:
            raise MisuseError("fire() called on a stopped hook")

    def _put_blocking(self, item: LogEntry):
        self._begin()
        while True:
            # Holding the state lock means nothing is queued once stop() has begun
            with self._state_lock:
                if self._state is not HookState.RUNNING:
                    break
                try:
                    self._queue.put_nowait(item)
                    return
                except queue.Full:
                    pass
            self._stop_event.wait(_POLL_INTERVAL)
        self._done()
        self._stats.record_dropped()
        logger.debug("Hook stopped while waiting for queue space, dropping entry")

    def _begin(self):
        with self._idle:
            self._pending += 1

    def _done(self, count: int = 1):
        with self._idle:
            self._pending -= count
            if self._pending <= 0:
                self._idle.notify_all()

    def _dispatch_loop(self):
        """Dequeue entries one at a time until stopped."""
        while True:
            try:
                item = self._queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if self._stop_event.is_set():
                    return
                continue
            if item is _STOP:
                return
            if self._stop_event.is_set():
                self._stats.record_discarded()
                self._done()
                return
            try:
                self._deliver(item)
            finally:
                self._done()

    def _deliver(self, entry: LogEntry):
        """Format and write one entry. Failures are logged, never raised."""
        try:
            data = self._formatter.format(entry)
        except FormatError as e:
            self._stats.record_format_failed()
            logger.warning("Dropping entry that failed to format: %s", e)
            return
        except Exception:
            self._stats.record_format_failed()
            logger.exception("Formatter raised unexpectedly, dropping entry")
            return

        try:
            self._sink.write(data)
        except (WriteError, OSError) as e:
            self._stats.record_write_failed()
            logger.warning("Sink write failed, dropping entry: %s", e)
            return
        except Exception:
            self._stats.record_write_failed()
            logger.exception("Sink raised unexpectedly, dropping entry")
            return
        self._stats.record_written()

    def _discard_remaining(self) -> int:
        count = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _STOP:
                continue
            count += 1
        if count:
            self._stats.record_discarded(count)
            self._done(count)
        return count


class SyncHook:
    """Formats and writes on the caller's thread, raising failures to it."""

    def __init__(self, sink, formatter):
        self._sink = as_sink(sink)
        self._formatter = formatter
        self._lock = threading.Lock()
        self._stopped = False
        self._stats = DeliveryStats()

    @property
    def stats(self) -> DeliveryStats:
        return self._stats

    def levels(self) -> list[Level]:
        return list(ALL_LEVELS)

    def fire(self, entry: LogEntry) -> None:
        """Format and write *entry*.

        Raises:
            FormatError: if the entry cannot be serialized.
            WriteError: if the sink rejects the write.
            MisuseError: if the hook has been stopped.
        """
        if self._stopped:
            raise MisuseError("fire() called on a stopped hook")
        self._stats.record_submitted()
        try:
            data = self._formatter.format(entry)
        except FormatError:
            self._stats.record_format_failed()
            raise

        with self._lock:
            try:
                self._sink.write(data)
            except WriteError:
                self._stats.record_write_failed()
                raise
            except Exception as e:
                self._stats.record_write_failed()
                raise WriteError(f"Sink write failed: {e}") from e
        self._stats.record_written()

    def stop(self, timeout: float = 5.0):
        self._stopped = True


def new_hook(sink, formatter):
    """Return an async hook with the default queue size and its stop function."""
    return new_hook_with_queue_size(sink, formatter, DEFAULT_QUEUE_SIZE)


def new_hook_with_queue_size(sink, formatter, queue_size: int, block_when_full: bool = False):
    """Return an async hook with a *queue_size* queue and its stop function.

    Raises:
        ConfigurationError: if *queue_size* is not positive.
    """
    hook = AsyncHook(sink, formatter, queue_size=queue_size, block_when_full=block_when_full)
    return hook, hook.stop
