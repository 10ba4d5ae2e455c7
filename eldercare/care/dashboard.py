"""Caregiver dashboard derived from the check-in feed."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from eldercare.care.models import Role
from eldercare.config import settings
from eldercare.llm.client import generate_response, run_generator
from eldercare.llm.prompt import build_dashboard_context

if TYPE_CHECKING:
    from eldercare.care.feed import CheckInFeed
    from eldercare.care.models import CheckInLog, Location, Message
    from eldercare.llm.client import ResponseGenerator

logger = logging.getLogger(__name__)


class Dashboard:
    """Read-only view over the feed plus on-demand status queries."""

    def __init__(
        self,
        feed: CheckInFeed,
        generate: ResponseGenerator | None = None,
        *,
        window: int | None = None,
        parent_name: str | None = None,
    ) -> None:
        self._feed = feed
        self._generate = generate or generate_response
        self._window = window or settings.dashboard_window
        self.parent_name = parent_name or settings.parent_name
        self.update_text = ""
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def last_location(self) -> Location | None:
        """Location of the most recent entry that carried one."""
        for entry in reversed(self._feed.entries):
            if entry.location is not None:
                return entry.location
        return None

    @property
    def media_count(self) -> int:
        return sum(1 for entry in self._feed.entries if entry.media is not None)

    @property
    def timeline(self) -> list[Message]:
        """Most recent entries, newest first."""
        return list(reversed(self._feed.entries[-self._window :]))

    @property
    def latest_check_in(self) -> CheckInLog | None:
        check_ins = self._feed.check_ins
        return check_ins[-1] if check_ins else None

    async def request_update(self, query: str | None = None) -> str | None:
        """Ask the caregiver persona about recent activity.

        Dashboard queries are single-turn. Returns None without calling the
        model if a previous request is still pending.
        """
        if self._busy:
            logger.info("Update ignored: a request is already in flight")
            return None
        self._busy = True
        try:
            recent = self._feed.entries[-self._window :]
            context = build_dashboard_context(recent, query)
            self.update_text = await run_generator(self._generate, context, Role.CHILD, [])
        finally:
            self._busy = False
        return self.update_text

    def summary_lines(self) -> list[str]:
        """Plain-text dashboard cards."""
        location = self.last_location
        lines = [f"{self.parent_name}'s Care Dashboard", ""]
        if location is not None:
            lines.append(f"Safety: last seen at {location.describe(2)}")
        else:
            lines.append("Safety: no location shared recently.")
        lines.append(f"Media vault: {self.media_count} photos/audio notes")

        check_in = self.latest_check_in
        if check_in is not None:
            medicine = "taken" if check_in.medicine else "not confirmed"
            lines.append(
                f"Latest check-in: mood {check_in.mood or '?'}, medicine {medicine}, "
                f"activity {check_in.activity or '?'}, meal {check_in.meal or '?'}"
            )

        lines.append("")
        lines.append("Care timeline:")
        timeline = self.timeline
        if not timeline:
            lines.append("  No activity logged yet.")
        for entry in timeline:
            when = datetime.fromtimestamp(entry.timestamp / 1000).strftime("%H:%M")
            label = "Parent Update" if entry.is_user else "ElderCare Message"
            suffix = ""
            if entry.media is not None:
                suffix = f" [{entry.media.mime_type.split('/')[0].upper()} ATTACHED]"
            lines.append(f"  {when} {label}: {entry.content}{suffix}")
        return lines
