"""Persona instructions and dashboard context assembly."""

from __future__ import annotations

from typing import TYPE_CHECKING

from eldercare.care.models import Role

if TYPE_CHECKING:
    from collections.abc import Iterable

    from eldercare.care.models import Message

EMERGENCY_RESPONSE = "Call doctor immediately! Emergency number: 108. Stay safe."

PARENT_SYSTEM_INSTRUCTION = f"""
You are ElderCare, a warm, caring AI companion for elderly parents in India.
Always start friendly: "Hello Uncle/Aunty, how are you today?"
Your job is to conduct simple daily check-ins.
Ask ONE question per turn about:
1. Medicine: "Did you take your medicine today?"
2. Meals: "What did you have for breakfast?"
3. Activity: "Did you step out or walk a bit today?"
4. Mood: "How's your mood today?"

Tone: Patient, simple English, warm, like a family member.
End positively with a weather update or family mention.
NEVER give medical advice or diagnosis.
EMERGENCY RULE: If they mention chest pain, fall, confusion, or breathing issues, \
respond IMMEDIATELY with: "{EMERGENCY_RESPONSE}"
"""

CHILD_SYSTEM_INSTRUCTION = """
You are ElderCare assistant for adult children.
Your job is to provide direct, professional, and actionable updates based on the parent's check-ins.
When asked "Mom/Dad update?" or "Today's status?":
- Summarize check-ins.
- Highlight medicine compliance.
- Mention mood and activity.
- Spot patterns (e.g., low activity for 2 days).
- Provide a clear action item (e.g., "Suggest evening call").
Tone: Professional English, direct, no fluff.
NEVER give medical advice.
"""

DEFAULT_DASHBOARD_QUESTION = "What is today's status?"

_SPEAKER_LABELS = {True: "Parent", False: "ElderCare"}


def system_instruction_for(role: Role) -> str:
    """Return the persona instruction for a role."""
    if role is Role.PARENT:
        return PARENT_SYSTEM_INSTRUCTION
    return CHILD_SYSTEM_INSTRUCTION


def format_activity(entries: Iterable[Message]) -> str:
    """Format feed entries as ``Speaker: content`` lines."""
    return "\n".join(f"{_SPEAKER_LABELS[m.is_user]}: {m.content}" for m in entries)


def build_dashboard_context(entries: Iterable[Message], query: str | None = None) -> str:
    """Assemble the single-turn prompt for a caregiver status query."""
    question = query.strip() if query and query.strip() else DEFAULT_DASHBOARD_QUESTION
    return f"Activity Log:\n{format_activity(entries)}\n\nQuestion: {question}"
