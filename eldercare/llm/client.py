"""Hosted model client: turn assembly, provider dispatch and reply recovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import anthropic
from google import genai
from google.genai import types

from eldercare.care.models import MediaKind, Speaker
from eldercare.config import settings
from eldercare.llm.models import ANTHROPIC, ModelManager, provider_for
from eldercare.llm.prompt import system_instruction_for

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from eldercare.care.models import HistoryEntry, Media, Role

    ResponseGenerator = Callable[[str, Role, Sequence[HistoryEntry]], Awaitable[str]]

logger = logging.getLogger(__name__)

EMPTY_REPLY = "I'm sorry, I'm having trouble connecting right now. Please try again."
CONNECTION_ERROR_REPLY = "Error: Could not reach ElderCare. Please check your internet connection."

USER_ROLE = "user"
MODEL_ROLE = "model"

_gemini_client: genai.Client | None = None
_anthropic_client: anthropic.AsyncAnthropic | None = None


@dataclass
class Turn:
    """One role-tagged unit of conversation in provider-neutral form."""

    role: str  # USER_ROLE or MODEL_ROLE
    text: str
    media: Media | None = None


def _get_gemini_client() -> genai.Client:
    """Lazily initialize the Gemini client."""
    global _gemini_client  # noqa: PLW0603
    if _gemini_client is None:
        _gemini_client = genai.Client(api_key=settings.gemini_api_key)
    return _gemini_client


def _get_anthropic_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _anthropic_client  # noqa: PLW0603
    if _anthropic_client is None:
        _anthropic_client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _anthropic_client


def build_turns(prompt_text: str, history: Sequence[HistoryEntry]) -> list[Turn]:
    """Map history onto provider turns, closing with the prompt if needed.

    The prompt is appended as a final user turn only when the history is
    empty or ends on a model turn. Otherwise the last history entry already
    carries the newest utterance.
    """
    turns = [
        Turn(
            role=MODEL_ROLE if entry.role is Speaker.ASSISTANT else USER_ROLE,
            text=entry.text,
            media=entry.media,
        )
        for entry in history
    ]
    if not turns or turns[-1].role != USER_ROLE:
        turns.append(Turn(role=USER_ROLE, text=prompt_text))
    return turns


# -- Gemini ------------------------------------------------------------------


def to_gemini_contents(turns: Sequence[Turn]) -> list[types.Content]:
    """Convert turns to Gemini contents with inline binary parts."""
    contents: list[types.Content] = []
    for turn in turns:
        parts: list[types.Part] = []
        if turn.text or turn.media is None:
            parts.append(types.Part(text=turn.text))
        if turn.media is not None:
            parts.append(
                types.Part.from_bytes(data=turn.media.to_bytes(), mime_type=turn.media.mime_type)
            )
        contents.append(types.Content(role=turn.role, parts=parts))
    return contents


async def _call_gemini(turns: Sequence[Turn], system: str | None, model: str) -> str:
    client = _get_gemini_client()
    config = types.GenerateContentConfig(
        system_instruction=system,
        temperature=settings.temperature,
    )
    response = await client.aio.models.generate_content(
        model=model,
        contents=to_gemini_contents(turns),
        config=config,
    )
    return response.text or ""


# -- Anthropic ---------------------------------------------------------------


def _anthropic_blocks(turn: Turn) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = []
    if turn.text:
        blocks.append({"type": "text", "text": turn.text})
    media = turn.media
    if media is not None:
        if media.kind is MediaKind.IMAGE:
            blocks.append({
                "type": "image",
                "source": {"type": "base64", "media_type": media.mime_type, "data": media.data},
            })
        else:
            blocks.append({
                "type": "text",
                "text": f"[{media.mime_type} attachment omitted: not supported by this model]",
            })
    if not blocks:
        blocks.append({"type": "text", "text": "[empty message]"})
    return blocks


def to_anthropic_messages(turns: Sequence[Turn]) -> list[dict[str, Any]]:
    """Convert turns to Claude messages.

    Claude requires the conversation to open on a user turn and to
    alternate roles, so leading model turns are dropped and consecutive
    same-role turns are merged.
    """
    messages: list[dict[str, Any]] = []
    for turn in turns:
        role = "assistant" if turn.role == MODEL_ROLE else "user"
        if not messages and role == "assistant":
            continue
        blocks = _anthropic_blocks(turn)
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"].extend(blocks)
        else:
            messages.append({"role": role, "content": blocks})
    return messages


async def _call_anthropic(turns: Sequence[Turn], system: str | None, model: str) -> str:
    client = _get_anthropic_client()
    kwargs: dict[str, Any] = {
        "model": model,
        "max_tokens": settings.max_tokens,
        "temperature": settings.temperature,
        "messages": to_anthropic_messages(turns),
    }
    if system is not None:
        kwargs["system"] = system
    response = await client.messages.create(**kwargs)
    return "".join(block.text for block in response.content if block.type == "text")


# -- Public API --------------------------------------------------------------


async def _call_model(turns: Sequence[Turn], system: str | None, model: str) -> str:
    if provider_for(model) == ANTHROPIC:
        return await _call_anthropic(turns, system, model)
    return await _call_gemini(turns, system, model)


async def complete_text(
    prompt: str,
    *,
    system: str | None = None,
    model: str | None = None,
) -> str:
    """Single-shot model call with no history.

    Use this for isolated tasks (extraction, summarisation). Unlike
    generate_response(), errors propagate to the caller.
    """
    model_id = model or ModelManager.get().model_id()
    return await _call_model([Turn(role=USER_ROLE, text=prompt)], system, model_id)


async def generate_response(
    prompt_text: str,
    role: Role,
    history: Sequence[HistoryEntry],
    model: str | None = None,
) -> str:
    """Generate a persona reply for a conversation.

    Args:
        prompt_text: The newest user utterance. Sent only when ``history``
            does not already end on a user turn.
        role: Selects the persona instruction.
        history: Prior turns, oldest first, each optionally carrying media.
        model: Model ID override; defaults to the active chat model.

    Returns:
        The model's plain-text reply, or a fixed apology string. Never raises.
    """
    model_id = model or ModelManager.get().model_id()
    system = system_instruction_for(role)
    try:
        turns = build_turns(prompt_text, history)
        text = await _call_model(turns, system, model_id)
    except Exception:
        logger.exception("Model call failed (role=%s, model=%s)", role.value, model_id)
        return CONNECTION_ERROR_REPLY

    if not text or not text.strip():
        logger.warning("Empty reply from %s (role=%s)", model_id, role.value)
        return EMPTY_REPLY
    return text


async def run_generator(
    generate: ResponseGenerator,
    prompt_text: str,
    role: Role,
    history: Sequence[HistoryEntry],
) -> str:
    """Invoke any generator with the same recovery rules as generate_response()."""
    try:
        text = await generate(prompt_text, role, history)
    except Exception:
        logger.exception("Response generator failed (role=%s)", role.value)
        return CONNECTION_ERROR_REPLY
    if not text or not text.strip():
        return EMPTY_REPLY
    return text
