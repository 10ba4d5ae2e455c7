"""Data models for the parent conversation and the check-in feed."""

from __future__ import annotations

import base64
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Which persona the app is currently acting as."""

    PARENT = "PARENT"
    CHILD = "CHILD"


class Speaker(str, Enum):
    """Who authored a message."""

    USER = "user"
    ASSISTANT = "assistant"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Location:
    """A GPS fix in decimal degrees."""

    lat: float
    lng: float

    def describe(self, precision: int = 4) -> str:
        return f"{self.lat:.{precision}f}, {self.lng:.{precision}f}"


@dataclass(frozen=True)
class Media:
    """An attachment carried inline with a message.

    Attributes:
        data: Base64-encoded payload.
        mime_type: Raw MIME type, e.g. ``"image/jpeg"`` or ``"audio/webm"``.
        url: Local display handle. Never sent to the model.
    """

    data: str
    mime_type: str
    url: str | None = None

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str, url: str | None = None) -> Media:
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type, url=url)

    @property
    def kind(self) -> MediaKind | None:
        """The media family from the MIME prefix, or None if unrecognised."""
        prefix = self.mime_type.split("/", 1)[0].lower()
        try:
            return MediaKind(prefix)
        except ValueError:
            return None

    @property
    def subtype(self) -> str:
        _, _, sub = self.mime_type.partition("/")
        return sub

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


@dataclass(frozen=True)
class HistoryEntry:
    """One prior turn handed to the response generator."""

    role: Speaker
    text: str
    media: Media | None = None


@dataclass(frozen=True)
class Message:
    """A single chat message. Immutable once created."""

    role: Speaker
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: int = field(default_factory=_now_ms)
    media: Media | None = None
    location: Location | None = None

    @property
    def is_user(self) -> bool:
        return self.role is Speaker.USER

    def to_history(self) -> HistoryEntry:
        """Reduce to role/text/media. Shared coordinates are folded into the text."""
        text = self.content
        if self.location is not None:
            coords = f"(Location: {self.location.lat}, {self.location.lng})"
            text = f"{text} {coords}" if text else coords
        return HistoryEntry(role=self.role, text=text, media=self.media)


class CheckInLog(BaseModel):
    """Structured fields pulled out of a parent check-in."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: int = Field(default_factory=_now_ms)
    mood: str = ""
    medicine: bool = False
    activity: str = ""
    meal: str = ""
    notes: str = ""
    location: tuple[float, float] | None = None


@dataclass(frozen=True)
class AppState:
    """Read-only snapshot of the whole app."""

    current_role: Role
    parent_name: str
    child_name: str
    messages: tuple[Message, ...] = ()
    logs: tuple[Message, ...] = ()
    check_ins: tuple[CheckInLog, ...] = ()
