"""Shared check-in feed: one writer (the parent chat), many readers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from eldercare.care.models import CheckInLog, Message

logger = logging.getLogger(__name__)


class CheckInFeed:
    """Append-only log of parent messages and structured check-ins.

    Readers get tuple snapshots. Appends only happen through the
    ``FeedWriter`` returned by ``writer()``.
    """

    def __init__(self) -> None:
        self._entries: list[Message] = []
        self._check_ins: list[CheckInLog] = []
        self._listeners: list[Callable[[CheckInFeed], None]] = []

    @property
    def entries(self) -> tuple[Message, ...]:
        return tuple(self._entries)

    @property
    def check_ins(self) -> tuple[CheckInLog, ...]:
        return tuple(self._check_ins)

    def __len__(self) -> int:
        return len(self._entries)

    def subscribe(self, listener: Callable[[CheckInFeed], None]) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def writer(self) -> FeedWriter:
        return FeedWriter(self)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Feed listener failed")


class FeedWriter:
    """Write capability for a CheckInFeed."""

    def __init__(self, feed: CheckInFeed) -> None:
        self._feed = feed

    def append(self, message: Message) -> None:
        self._feed._entries.append(message)
        logger.debug("Feed entry %s (%d total)", message.id, len(self._feed._entries))
        self._feed._notify()

    def record_check_in(self, check_in: CheckInLog) -> None:
        self._feed._check_ins.append(check_in)
        logger.info(
            "Check-in recorded: mood=%r medicine=%s activity=%r",
            check_in.mood,
            check_in.medicine,
            check_in.activity,
        )
        self._feed._notify()
