"""Top-level app state: active persona, shared feed and both controllers."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from eldercare.care.dashboard import Dashboard
from eldercare.care.extraction import extract_check_in
from eldercare.care.feed import CheckInFeed
from eldercare.care.models import AppState, Role
from eldercare.care.parent import ParentChat
from eldercare.config import settings

if TYPE_CHECKING:
    from eldercare.care.devices import Alerts, Locator, Microphone
    from eldercare.care.models import Message
    from eldercare.llm.client import ResponseGenerator

logger = logging.getLogger(__name__)


class Shell:
    """Composes the parent chat and the caregiver dashboard.

    The shell owns the feed. The parent chat reaches it only through the
    completion callback; the dashboard only reads it.
    """

    def __init__(
        self,
        generate: ResponseGenerator | None = None,
        *,
        microphone: Microphone | None = None,
        locator: Locator | None = None,
        alert: Alerts | None = None,
        parent_name: str | None = None,
        child_name: str | None = None,
    ) -> None:
        self.parent_name = parent_name or settings.parent_name
        self.child_name = child_name if child_name is not None else settings.child_name
        self.role = Role.PARENT
        self.feed = CheckInFeed()
        self._writer = self.feed.writer()
        self._tasks: set[asyncio.Task] = set()

        self.parent = ParentChat(
            generate,
            on_log=self._log_parent_turn,
            microphone=microphone,
            locator=locator,
            alert=alert,
        )
        self.dashboard = Dashboard(self.feed, generate, parent_name=self.parent_name)

    def switch_role(self, role: Role) -> Role:
        if role is not self.role:
            logger.info("Role → %s", role.value)
        self.role = role
        return role

    def toggle_role(self) -> Role:
        return self.switch_role(Role.CHILD if self.role is Role.PARENT else Role.PARENT)

    def snapshot(self) -> AppState:
        return AppState(
            current_role=self.role,
            parent_name=self.parent_name,
            child_name=self.child_name,
            messages=self.parent.messages,
            logs=self.feed.entries,
            check_ins=self.feed.check_ins,
        )

    def _log_parent_turn(self, message: Message) -> None:
        self._writer.append(message)
        if settings.checkin_extraction_enabled:
            # Background extraction; keep a reference so the task isn't collected
            task = asyncio.create_task(extract_check_in(message, self._writer))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
