"""Device capability boundary: microphone, geolocation and user alerts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from eldercare.care.models import Location


class DeviceError(Exception):
    """Base class for device capability failures."""


class PermissionDeniedError(DeviceError):
    """The user refused access to the microphone or location."""


class PositionUnavailableError(DeviceError):
    """The device could not produce a position fix."""


class RecordingSession(Protocol):
    async def stop(self) -> bytes:
        """Stop capture and return the accumulated audio."""
        ...


class Microphone(Protocol):
    async def open(self) -> RecordingSession:
        """Acquire the microphone. Raises PermissionDeniedError on refusal."""
        ...


class Locator(Protocol):
    async def current_position(self) -> Location:
        """One-shot position request. Raises DeviceError on failure."""
        ...


class Alerts(Protocol):
    def __call__(self, message: str) -> None: ...


@dataclass
class FixedLocator:
    """A locator that reports a position already known to the caller."""

    position: Location

    async def current_position(self) -> Location:
        return self.position
