"""
The scheduler queues up and deduplicates subscription callbacks that are
not delivered in sync, and should be integrated in the event loop of your
choosing.
"""

import asyncio


class Scheduler:
    __slots__ = (
        "__weakref__",
        "_queue",
        "detect_cycles",
        "flushing",
        "request_flush",
        "waiting",
    )

    def __init__(self):
        # dict used as an insertion ordered set
        self._queue = {}
        self.flushing = False
        self.waiting = False
        self.request_flush = self.request_flush_raise
        self.detect_cycles = True

    def request_flush_raise(self):
        """
        Error raising default request flusher.
        """
        raise ValueError("No flush request handler registered")

    def register_request_flush(self, callback):
        """
        Register callback for registering a call to flush
        """
        self.request_flush = callback

    def request_flush_asyncio(self):
        loop = asyncio.get_event_loop()
        loop.call_soon(self.flush)

    def register_asyncio(self):
        """
        Utility function for integration with asyncio
        """
        self.register_request_flush(self.request_flush_asyncio)

    def flush(self):
        """
        Flush the queue to call all queued callbacks.
        You can call this manually, or register a callback
        to request to perform the flush.
        """
        if not self._queue:
            return

        self.flushing = True
        self.waiting = False
        rounds = 0
        try:
            while self._queue:
                rounds += 1
                if self.detect_cycles and rounds > 100:
                    raise RecursionError(
                        "Infinite update loop detected while flushing subscriptions"
                    )
                # callbacks queued while running end up in the next round
                pending, self._queue = self._queue, {}
                for callback in pending:
                    callback()
        finally:
            self.clear()

    def clear(self):
        self._queue.clear()
        self.flushing = False
        self.waiting = False

    def queue(self, callback):
        if callback in self._queue:
            return

        self._queue[callback] = None
        if not self.flushing and not self.waiting:
            self.waiting = True
            self.request_flush()


# Construct global instance
scheduler = Scheduler()
