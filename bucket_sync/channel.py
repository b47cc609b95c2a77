from __future__ import annotations
"""Bridges planning on a worker thread with prompts on the presentation thread."""
import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

from .models import ConflictDecision, ConflictRequest, RenameRequest

T = TypeVar("T")

DispatchFn = Callable[[Callable[[], None]], None]
ReplyFn = Callable[[Optional[T]], None]
ConflictPromptFn = Callable[[ConflictRequest, ReplyFn[ConflictDecision]], None]
RenamePromptFn = Callable[[RenameRequest, ReplyFn[str]], None]

LOGGER = logging.getLogger(__name__)


class _Slot(Generic[T]):
    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._value: Optional[T] = None

    def reply(self, value: Optional[T]) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._value = value
            self._event.set()

    def wait(self) -> Optional[T]:
        self._event.wait()
        return self._value


class DecisionChannel:
    """A :class:`~bucket_sync.resolver.DecisionSource` answered asynchronously.

    Each request is handed to the presentation context through ``dispatch``
    together with a one-shot ``reply`` callable; the calling thread blocks until
    ``reply`` is invoked. Replying ``None`` counts as dismissing the prompt.
    Never call the blocking methods from the presentation thread itself.
    """

    def __init__(
        self,
        *,
        on_conflict: ConflictPromptFn,
        on_rename: RenamePromptFn,
        dispatch: DispatchFn | None = None,
    ):
        self._on_conflict = on_conflict
        self._on_rename = on_rename
        self._dispatch = dispatch or (lambda func: func())
        self._lock = threading.Lock()
        self._pending: _Slot | None = None

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def decide_conflict(self, request: ConflictRequest) -> Optional[ConflictDecision]:
        return self._await(lambda reply: self._on_conflict(request, reply))

    def request_rename(self, request: RenameRequest) -> Optional[str]:
        return self._await(lambda reply: self._on_rename(request, reply))

    def cancel_pending(self) -> bool:
        """Dismiss the outstanding prompt, if any. Returns True when one was pending."""
        with self._lock:
            slot = self._pending
        if slot is None:
            return False
        LOGGER.debug("Dismissing pending decision")
        slot.reply(None)
        return True

    def _await(self, ask: Callable[[ReplyFn], None]):
        slot: _Slot = _Slot()
        with self._lock:
            if self._pending is not None:
                raise RuntimeError("Another decision is still pending")
            self._pending = slot
        try:
            self._dispatch(lambda: ask(slot.reply))
            return slot.wait()
        finally:
            with self._lock:
                self._pending = None
