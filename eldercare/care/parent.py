"""Parent-facing check-in conversation."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from eldercare.care.devices import DeviceError
from eldercare.care.models import Media, Message, Role, Speaker
from eldercare.care.safety import detect_emergency
from eldercare.config import settings
from eldercare.llm.client import generate_response, run_generator
from eldercare.llm.prompt import EMERGENCY_RESPONSE

if TYPE_CHECKING:
    from collections.abc import Callable

    from eldercare.care.devices import Alerts, Locator, Microphone, RecordingSession
    from eldercare.care.models import HistoryEntry, Location
    from eldercare.llm.client import ResponseGenerator

logger = logging.getLogger(__name__)

GREETING = "Hello Aunty/Uncle, how are you today? Did you take your medicine this morning?"
LOCATION_ANNOUNCEMENT = "I am sharing my current location."
LOCATION_ALERT = "Could not get location. Please enable GPS."
MICROPHONE_ALERT = "Could not access the microphone. Please allow microphone access."
RECORDING_MIME_TYPE = "audio/webm"


class ChatState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    SENDING = "sending"


def location_prompt(location: Location) -> str:
    return f"I'm at these coordinates: {location.lat}, {location.lng}"


def _log_alert(message: str) -> None:
    logger.warning("Alert: %s", message)


class ParentChat:
    """Owns the parent's message list and the commands that grow it.

    Each ``send`` appends one user message and one assistant message.
    Only one request is in flight at a time; sends issued while a reply
    is pending are dropped.
    """

    def __init__(
        self,
        generate: ResponseGenerator | None = None,
        *,
        on_log: Callable[[Message], None] | None = None,
        microphone: Microphone | None = None,
        locator: Locator | None = None,
        alert: Alerts | None = None,
        safety_gate: bool | None = None,
    ) -> None:
        self._generate = generate or generate_response
        self._on_log = on_log
        self._microphone = microphone
        self._locator = locator
        self._alert = alert or _log_alert
        self._safety_gate = settings.safety_gate_enabled if safety_gate is None else safety_gate

        self._messages: list[Message] = [Message(role=Speaker.ASSISTANT, content=GREETING)]
        self._listeners: list[Callable[[Message], None]] = []
        self._state = ChatState.IDLE
        self._draft = ""
        self._pending_media: Media | None = None
        self._recording: RecordingSession | None = None

    # -- Observable state ----------------------------------------------------

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def pending_media(self) -> Media | None:
        return self._pending_media

    @property
    def is_recording(self) -> bool:
        return self._recording is not None

    def subscribe(self, listener: Callable[[Message], None]) -> None:
        """Call ``listener`` with every message appended from now on."""
        self._listeners.append(listener)

    # -- Composing -----------------------------------------------------------

    def set_draft(self, text: str) -> None:
        self._draft = text
        if self._state is not ChatState.SENDING:
            self._state = ChatState.COMPOSING if text.strip() else ChatState.IDLE

    def attach_media(self, media: Media) -> Media:
        """Stage media for the next send, replacing anything already staged."""
        if self._pending_media is not None:
            logger.debug("Replacing staged %s", self._pending_media.mime_type)
        self._pending_media = media
        return media

    def attach_file(self, data: bytes, mime_type: str, url: str | None = None) -> Media:
        """Stage a picked image or video. The MIME type comes from the file."""
        return self.attach_media(Media.from_bytes(data, mime_type, url=url))

    def clear_pending(self) -> None:
        self._pending_media = None

    async def start_recording(self) -> bool:
        """Open the microphone. Returns False if access was refused."""
        if self._recording is not None:
            return True
        if self._microphone is None:
            self._alert(MICROPHONE_ALERT)
            return False
        try:
            self._recording = await self._microphone.open()
        except DeviceError as exc:
            logger.warning("Microphone unavailable: %s", exc)
            self._alert(MICROPHONE_ALERT)
            return False
        logger.info("Recording started")
        return True

    async def stop_recording(self) -> Media | None:
        """Stop capture and stage the audio as pending media."""
        if self._recording is None:
            return None
        session, self._recording = self._recording, None
        try:
            audio = await session.stop()
        except DeviceError as exc:
            logger.warning("Recording failed: %s", exc)
            self._alert(MICROPHONE_ALERT)
            return None
        logger.info("Recording stopped (%d bytes)", len(audio))
        return self.attach_media(Media.from_bytes(audio, RECORDING_MIME_TYPE))

    # -- Sending -------------------------------------------------------------

    async def send(
        self,
        text: str | None = None,
        media: Media | None = None,
        location: Location | None = None,
    ) -> Message | None:
        """Send a user turn and append the assistant's reply.

        ``text`` defaults to the current draft and ``media`` to the staged
        attachment. Returns the assistant message, or None when nothing was
        sent.
        """
        if self._state is ChatState.SENDING:
            logger.info("Send ignored: a reply is still pending")
            return None

        content = self._draft if text is None else text
        attached = media or self._pending_media
        if not content.strip() and attached is None and location is None:
            return None

        user_msg = Message(
            role=Speaker.USER,
            content=content,
            media=attached,
            location=location,
        )
        self._append(user_msg)
        self._draft = ""
        self._pending_media = None
        self._state = ChatState.SENDING

        try:
            history = [m.to_history() for m in self._messages]
            prompt_text = location_prompt(location) if location is not None else content
            reply = await self._reply(content, prompt_text, history)
            assistant_msg = Message(role=Speaker.ASSISTANT, content=reply)
            self._append(assistant_msg)
        finally:
            self._state = ChatState.COMPOSING if self._draft.strip() else ChatState.IDLE

        if self._on_log is not None:
            self._on_log(user_msg)
        return assistant_msg

    async def share_location(self, locator: Locator | None = None) -> Message | None:
        """Send the device position with the fixed announcement text."""
        locator = locator or self._locator
        if locator is None:
            self._alert(LOCATION_ALERT)
            return None
        try:
            position = await locator.current_position()
        except DeviceError as exc:
            logger.warning("Location unavailable: %s", exc)
            self._alert(LOCATION_ALERT)
            return None
        return await self.send(LOCATION_ANNOUNCEMENT, location=position)

    # -- Internals -----------------------------------------------------------

    async def _reply(self, content: str, prompt_text: str, history: list[HistoryEntry]) -> str:
        if self._safety_gate and detect_emergency(content):
            return EMERGENCY_RESPONSE
        return await run_generator(self._generate, prompt_text, Role.PARENT, history)

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        for listener in list(self._listeners):
            listener(message)
