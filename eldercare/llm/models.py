"""Hosted model catalog and the runtime choice of model per purpose."""

import logging
from dataclasses import dataclass
from enum import Enum

from eldercare.config import settings

logger = logging.getLogger(__name__)

GEMINI = "gemini"
ANTHROPIC = "anthropic"


class Purpose(str, Enum):
    CHAT = "chat"
    EXTRACTION = "extraction"


@dataclass(frozen=True)
class HostedModel:
    name: str
    model_id: str
    provider: str


CATALOG: tuple[HostedModel, ...] = (
    HostedModel("flash", "gemini-3-flash-preview", GEMINI),
    HostedModel("pro", "gemini-2.5-pro", GEMINI),
    HostedModel("haiku", "claude-haiku-4-5-20251001", ANTHROPIC),
    HostedModel("sonnet", "claude-sonnet-4-5-20250929", ANTHROPIC),
)
DEFAULT_MODEL = CATALOG[0]

MODEL_MAP: dict[str, str] = {m.name: m.model_id for m in CATALOG}

_BY_KEY: dict[str, HostedModel] = {key: m for m in CATALOG for key in (m.name, m.model_id)}


def lookup(name_or_id: str) -> HostedModel | None:
    """Find a catalog entry by friendly name or full model ID."""
    return _BY_KEY.get(name_or_id.strip().lower())


def provider_for(model_id: str) -> str:
    """Which hosted provider serves a model ID.

    IDs outside the catalog are routed by prefix, so a raw ``claude-*``
    override still reaches Anthropic.
    """
    model = _BY_KEY.get(model_id)
    if model is not None:
        return model.provider
    return ANTHROPIC if model_id.startswith("claude") else GEMINI


class ModelManager:
    """Process-wide choice of hosted model for each purpose.

    Chat replies and background check-in extraction can run on different
    models; both start from the configured defaults.
    """

    _instance: "ModelManager | None" = None

    def __init__(self) -> None:
        configured = {
            Purpose.CHAT: settings.default_chat_model,
            Purpose.EXTRACTION: settings.default_extraction_model,
        }
        self._active: dict[Purpose, HostedModel] = {}
        for purpose, name in configured.items():
            model = lookup(name)
            if model is None:
                logger.warning(
                    "Unknown %s model %r, using %s", purpose.value, name, DEFAULT_MODEL.name
                )
                model = DEFAULT_MODEL
            self._active[purpose] = model
        logger.info(
            "Models: chat=%s (%s), extraction=%s (%s)",
            self._active[Purpose.CHAT].name,
            self._active[Purpose.CHAT].provider,
            self._active[Purpose.EXTRACTION].name,
            self._active[Purpose.EXTRACTION].provider,
        )

    @classmethod
    def get(cls) -> "ModelManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def active(self, purpose: Purpose = Purpose.CHAT) -> HostedModel:
        return self._active[purpose]

    def model_id(self, purpose: Purpose = Purpose.CHAT) -> str:
        return self._active[purpose].model_id

    def select(self, name: str, purpose: Purpose = Purpose.CHAT) -> HostedModel | None:
        """Switch ``purpose`` to the named model. Returns None if unknown."""
        model = lookup(name)
        if model is None:
            return None
        self._active[purpose] = model
        logger.info("%s model → %s (%s)", purpose.value, model.name, model.provider)
        return model
