"""Tests for the parent check-in conversation."""

import asyncio

import pytest

from eldercare.care.devices import FixedLocator, PositionUnavailableError
from eldercare.care.models import Location, Media, Role, Speaker
from eldercare.care.parent import (
    GREETING,
    LOCATION_ALERT,
    LOCATION_ANNOUNCEMENT,
    MICROPHONE_ALERT,
    RECORDING_MIME_TYPE,
    ChatState,
    ParentChat,
    location_prompt,
)
from eldercare.llm.client import CONNECTION_ERROR_REPLY, EMPTY_REPLY
from eldercare.llm.prompt import EMERGENCY_RESPONSE


@pytest.fixture
def logged() -> list:
    return []


@pytest.fixture
def chat(fake_generate, logged, alerts) -> ParentChat:
    return ParentChat(fake_generate, on_log=logged.append, alert=alerts.append, safety_gate=True)


class _FailingLocator:
    async def current_position(self) -> Location:
        raise PositionUnavailableError("GPS off")


# -- Initial state -------------------------------------------------------------


def test_starts_with_greeting(chat) -> None:
    assert len(chat.messages) == 1
    assert chat.messages[0].role is Speaker.ASSISTANT
    assert chat.messages[0].content == GREETING
    assert chat.state is ChatState.IDLE


# -- send ------------------------------------------------------------------------


async def test_each_send_adds_user_and_assistant(chat, fake_generate) -> None:
    for i in range(3):
        await chat.send(f"message {i}")

    msgs = chat.messages
    assert len(msgs) == 1 + 2 * 3
    assert [m.role for m in msgs[1:]] == [Speaker.USER, Speaker.ASSISTANT] * 3
    assert [m.content for m in msgs[1::2]] == ["message 0", "message 1", "message 2"]
    assert len(fake_generate.calls) == 3


async def test_send_passes_full_history_ending_on_user(chat, fake_generate) -> None:
    await chat.send("I had idli for breakfast")

    prompt_text, role, history = fake_generate.calls[0]
    assert prompt_text == "I had idli for breakfast"
    assert role is Role.PARENT
    assert [h.role for h in history] == [Speaker.ASSISTANT, Speaker.USER]
    assert history[0].text == GREETING
    assert history[-1].text == "I had idli for breakfast"


async def test_empty_send_is_noop(chat, fake_generate, logged) -> None:
    result = await chat.send("   ")

    assert result is None
    assert len(chat.messages) == 1
    assert fake_generate.calls == []
    assert logged == []


async def test_send_uses_draft_by_default(chat) -> None:
    chat.set_draft("Feeling good today")
    assert chat.state is ChatState.COMPOSING

    await chat.send()

    assert chat.messages[1].content == "Feeling good today"
    assert chat.draft == ""
    assert chat.state is ChatState.IDLE


def test_clearing_draft_returns_to_idle(chat) -> None:
    chat.set_draft("hi")
    chat.set_draft("")
    assert chat.state is ChatState.IDLE


async def test_only_user_message_is_logged(chat, logged) -> None:
    await chat.send("Took my tablets")

    assert len(logged) == 1
    assert logged[0].role is Speaker.USER
    assert logged[0].content == "Took my tablets"


async def test_media_only_send(chat, fake_generate) -> None:
    chat.attach_file(b"\xff\xd8jpeg", "image/jpeg")

    reply = await chat.send()

    assert reply is not None
    user_msg = chat.messages[1]
    assert user_msg.content == ""
    assert user_msg.media.mime_type == "image/jpeg"
    assert fake_generate.calls[0][2][-1].media == user_msg.media
    assert chat.pending_media is None


async def test_reattaching_replaces_pending_media(chat, fake_generate) -> None:
    chat.attach_file(b"first", "image/png")
    second = chat.attach_file(b"second", "video/mp4")

    assert chat.pending_media == second

    await chat.send("look at this")

    assert chat.messages[1].media == second
    sent_media = [h.media for h in fake_generate.calls[0][2] if h.media is not None]
    assert sent_media == [second]


async def test_explicit_media_overrides_pending(chat) -> None:
    chat.attach_file(b"staged", "image/png")
    explicit = Media.from_bytes(b"explicit", "image/gif")

    await chat.send("hi", media=explicit)

    assert chat.messages[1].media == explicit
    assert chat.pending_media is None


def test_clear_pending(chat) -> None:
    chat.attach_file(b"x", "image/png")
    chat.clear_pending()
    assert chat.pending_media is None


# -- Failure recovery ------------------------------------------------------------


async def test_throwing_generator_yields_connection_apology(make_generator) -> None:
    generate = make_generator(RuntimeError("network down"))
    chat = ParentChat(generate, safety_gate=False)

    for text in ("hello", "are you there?"):
        reply = await chat.send(text)
        assert reply.content == CONNECTION_ERROR_REPLY
        assert chat.state is ChatState.IDLE

    assert len(chat.messages) == 5


async def test_empty_reply_yields_trouble_string(make_generator) -> None:
    chat = ParentChat(make_generator(""), safety_gate=False)

    reply = await chat.send("hello")

    assert reply.content == EMPTY_REPLY
    assert chat.messages[-1].content == EMPTY_REPLY


async def test_send_while_pending_is_rejected(make_generator) -> None:
    gate = asyncio.Event()
    calls = []

    async def slow_generate(prompt_text, role, history):
        calls.append(prompt_text)
        await gate.wait()
        return "ok"

    chat = ParentChat(slow_generate, safety_gate=False)
    first = asyncio.create_task(chat.send("first"))
    await asyncio.sleep(0)
    assert chat.state is ChatState.SENDING

    second = await chat.send("second")
    assert second is None

    gate.set()
    reply = await first
    assert reply.content == "ok"
    assert calls == ["first"]
    assert [m.content for m in chat.messages[1:]] == ["first", "ok"]


async def test_draft_typed_while_sending_leaves_chat_composing() -> None:
    gate = asyncio.Event()

    async def slow_generate(prompt_text, role, history):
        await gate.wait()
        return "ok"

    chat = ParentChat(slow_generate, safety_gate=False)
    first = asyncio.create_task(chat.send("first"))
    await asyncio.sleep(0)

    chat.set_draft("and another thing")
    assert chat.state is ChatState.SENDING

    gate.set()
    await first
    assert chat.state is ChatState.COMPOSING
    assert chat.draft == "and another thing"


# -- Safety gate -----------------------------------------------------------------


async def test_emergency_bypasses_model(chat, fake_generate, logged) -> None:
    reply = await chat.send("I fell in the bathroom and can't get up")

    assert reply.content == EMERGENCY_RESPONSE
    assert fake_generate.calls == []
    assert len(logged) == 1


async def test_emergency_goes_to_model_when_gate_disabled(fake_generate) -> None:
    chat = ParentChat(fake_generate, safety_gate=False)

    await chat.send("I have chest pain")

    assert len(fake_generate.calls) == 1


async def test_benign_check_in_reaches_model(chat, fake_generate, logged) -> None:
    reply = await chat.send("I fell asleep after lunch")

    assert reply.content == fake_generate.reply
    assert fake_generate.calls[0][0] == "I fell asleep after lunch"
    assert len(logged) == 1


# -- Location --------------------------------------------------------------------


async def test_share_location_uses_fixed_text_and_exact_coords(chat, fake_generate) -> None:
    chat.set_draft("something typed but not sent")
    position = Location(lat=26.9124, lng=75.7873)

    await chat.share_location(FixedLocator(position))

    user_msg = chat.messages[1]
    assert user_msg.content == LOCATION_ANNOUNCEMENT
    assert user_msg.location == position
    assert fake_generate.calls[0][0] == location_prompt(position)
    assert "26.9124" in fake_generate.calls[0][2][-1].text


async def test_share_location_uses_injected_locator(fake_generate) -> None:
    chat = ParentChat(fake_generate, locator=FixedLocator(Location(1.5, 2.5)))

    await chat.share_location()

    assert chat.messages[1].location == Location(1.5, 2.5)


async def test_share_location_failure_alerts_without_sending(chat, fake_generate, alerts) -> None:
    result = await chat.share_location(_FailingLocator())

    assert result is None
    assert alerts == [LOCATION_ALERT]
    assert len(chat.messages) == 1
    assert fake_generate.calls == []


async def test_share_location_without_locator_alerts(chat, alerts) -> None:
    assert await chat.share_location() is None
    assert alerts == [LOCATION_ALERT]


# -- Recording -------------------------------------------------------------------


async def test_recording_stages_audio(fake_generate, make_microphone) -> None:
    mic = make_microphone(b"voice-bytes")
    chat = ParentChat(fake_generate, microphone=mic)

    assert await chat.start_recording() is True
    assert chat.is_recording

    media = await chat.stop_recording()

    assert not chat.is_recording
    assert mic.sessions[0].stopped
    assert media.mime_type == RECORDING_MIME_TYPE
    assert media.to_bytes() == b"voice-bytes"
    assert chat.pending_media == media


async def test_recording_replaces_staged_file(fake_generate, make_microphone) -> None:
    chat = ParentChat(fake_generate, microphone=make_microphone())
    chat.attach_file(b"photo", "image/jpeg")

    await chat.start_recording()
    media = await chat.stop_recording()

    assert chat.pending_media == media


async def test_microphone_denied_leaves_state_unchanged(
    fake_generate, make_microphone, alerts
) -> None:
    chat = ParentChat(fake_generate, microphone=make_microphone(deny=True), alert=alerts.append)

    assert await chat.start_recording() is False
    assert not chat.is_recording
    assert alerts == [MICROPHONE_ALERT]
    assert len(chat.messages) == 1


async def test_stop_without_recording_is_noop(chat) -> None:
    assert await chat.stop_recording() is None
    assert chat.pending_media is None


async def test_subscribers_see_appends(chat) -> None:
    seen = []
    chat.subscribe(seen.append)

    await chat.send("hi")

    assert [m.role for m in seen] == [Speaker.USER, Speaker.ASSISTANT]
