"""Deadline and call_with_deadline — cancellable timed agent calls.

The engine never blocks on an agent longer than the turn deadline. Each
call runs on its own daemon thread; the caller waits until the deadline
and then walks away. Abandoning a call sets the deadline's cancel signal,
which adapters and cooperative agents observe, and adapters pass the
remaining time down as their HTTP timeout so the connection closes on
its own. Whatever the abandoned call eventually returns is discarded.
"""

from __future__ import annotations

import itertools
import threading
import time
from typing import Any, Callable

_call_ids = itertools.count(1)


class CallTimedOut(Exception):
    """The call did not finish before its deadline."""

    def __init__(self, timeout_s: float, name: str = "call"):
        self.timeout_s = timeout_s
        self.name = name
        super().__init__(f"{name} exceeded deadline of {timeout_s:.3f}s")


class Deadline:
    """A point in (monotonic) time plus a cancel signal."""

    def __init__(self, timeout_s: float) -> None:
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {timeout_s}")
        self.timeout_s = timeout_s
        self._expires_at = time.monotonic() + timeout_s
        self._cancelled = threading.Event()

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() == 0.0

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait_cancelled(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout. Returns True if cancelled."""
        return self._cancelled.wait(timeout)


def call_with_deadline(
    fn: Callable[[], Any],
    deadline: Deadline,
    name: str = "call",
) -> Any:
    """Run fn() and return its result, or raise CallTimedOut at the deadline.

    Exceptions raised by fn() propagate to the caller unchanged.
    """
    outcome: dict[str, Any] = {}
    done = threading.Event()

    def runner() -> None:
        try:
            outcome["value"] = fn()
        except BaseException as exc:  # re-raised in the caller's thread
            outcome["error"] = exc
        finally:
            done.set()

    worker = threading.Thread(
        target=runner, daemon=True, name=f"{name}-{next(_call_ids)}",
    )
    worker.start()

    if not done.wait(deadline.remaining()):
        deadline.cancel()
        raise CallTimedOut(deadline.timeout_s, name)

    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("value")
