"""Server lifecycle state and child process tracking."""

import logging
import os
import threading
import time

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter

LIFECYCLE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.lifecycle"), {}
)


class ServerLifecycle:
    """Tracks the stop request and the children forked for connections.

    Children are reaped explicitly with non-blocking ``waitpid`` calls, so no
    ``SIGCHLD`` disposition is needed and no zombies outlive a reap pass.
    """

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self._children: set[int] = set()

    def should_stop(self) -> bool:
        """Check if the server should stop accepting new connections."""
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        """Ask the accept loop to exit at its next wake-up."""
        self._stop_event.set()
        LIFECYCLE_LOGGER.info(
            "Beginning shutdown", extra={"event": "shutdown_requested"}
        )

    def register_child(self, pid: int) -> None:
        self._children.add(pid)

    def active_child_count(self) -> int:
        return len(self._children)

    def reap_children(self) -> int:
        """Collect every child that has exited; returns how many were reaped."""
        reaped = 0
        while self._children:
            try:
                pid, _ = os.waitpid(-1, os.WNOHANG)
            except ChildProcessError:
                self._children.clear()
                break
            if pid == 0:
                break
            self._children.discard(pid)
            reaped += 1
        if reaped and LIFECYCLE_LOGGER.logger.isEnabledFor(logging.DEBUG):
            LIFECYCLE_LOGGER.debug(
                "Reaped connection children",
                extra={
                    "event": "children_reaped",
                    "children": reaped,
                },
            )
        return reaped

    def wait_for_children(self, timeout: float, poll_interval: float = 0.05) -> bool:
        """Reap children until none remain or ``timeout`` elapses."""
        deadline = time.monotonic() + timeout
        while True:
            self.reap_children()
            if not self._children:
                return True
            if time.monotonic() >= deadline:
                LIFECYCLE_LOGGER.warning(
                    "Shutdown timeout exceeded",
                    extra={
                        "event": "shutdown_timeout",
                        "children": len(self._children),
                    },
                )
                return False
            time.sleep(poll_interval)
