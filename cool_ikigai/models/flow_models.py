# cool_ikigai/models/flow_models.py

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ConversationStep(str, Enum):
    INTRODUCTION = "introduction"
    READY_CHECK = "ready_check"
    PASSIONS = "passions"
    VALIDATE_PASSIONS = "validate_passions"
    TALENTS = "talents"
    VALIDATE_TALENTS = "validate_talents"
    WORLD_NEEDS = "world_needs"
    VALIDATE_WORLD_NEEDS = "validate_world_needs"
    MONETIZATION = "monetization"
    VALIDATE_MONETIZATION = "validate_monetization"
    SUMMARY = "summary"
    EMAIL_REQUEST = "email_request"
    CONTACT_ENTRY = "contact_entry"
    COACHING = "coaching"
    COACHING_SCHEDULE = "coaching_schedule"
    COACHING_CONFIRMATION = "coaching_confirmation"
    CONCLUSION = "conclusion"


class Domain(str, Enum):
    """The four Ikigai dimensions"""
    PASSIONS = "passions"
    TALENTS = "talents"
    WORLD_NEEDS = "worldNeeds"
    MONETIZATION = "monetization"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Sender(str, Enum):
    SYSTEM = "system"
    USER = "user"


class Message(BaseModel):
    """One transcript entry"""
    text: str
    sender: Sender


class ResponseRecord(BaseModel):
    """A user answer given at a step. Never mutated once recorded."""
    model_config = ConfigDict(frozen=True)

    step: ConversationStep
    raw_text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TextAnalysis(BaseModel):
    keywords: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)
    sentiment: Sentiment = Sentiment.NEUTRAL
    confidence: float = 0.0


class IkigaiSummary(BaseModel):
    """Final cross-domain narrative. Composed once per session."""
    model_config = ConfigDict(frozen=True)

    passions: str
    talents: str
    world_needs: str
    monetization: str
    common_themes: List[str] = Field(default_factory=list)
    careers: List[str] = Field(default_factory=list)
    narrative: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_ikigai_data(self) -> Dict[str, str]:
        """Shape used by the save/email/WhatsApp endpoints"""
        return {
            "passions": self.passions,
            "talents": self.talents,
            "worldNeeds": self.world_needs,
            "monetization": self.monetization,
            "summary": self.narrative,
        }


class EffectType(str, Enum):
    """Side effects requested by a transition, executed by the session"""
    SCHEDULE_CONCLUSION = "schedule_conclusion"
    DELIVER_SUMMARY = "deliver_summary"
    SCHEDULE_COACHING = "schedule_coaching"


class Effect(BaseModel):
    type: EffectType
    payload: Dict[str, Any] = Field(default_factory=dict)


class StepResult(BaseModel):
    """What the dialogue returns for one turn"""
    outgoing_message: str
    options: List[str] = Field(default_factory=list)
    terminal: bool = False
    step: ConversationStep
    effects: List[Effect] = Field(default_factory=list)


class TextPayload(BaseModel):
    """Object form of an inbound utterance; clients send one of these keys"""
    content: Optional[str] = None
    message: Optional[str] = None
    text: Optional[str] = None

    def get_text(self) -> str:
        for value in (self.content, self.message, self.text):
            if value is not None:
                return value
        return ""


InboundPayload = Union[str, TextPayload]


def normalize_utterance(payload: Union[InboundPayload, Dict[str, Any], None]) -> str:
    """Collapse every accepted inbound shape to the plain utterance text"""
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload.strip()
    if isinstance(payload, dict):
        payload = TextPayload(**{k: v for k, v in payload.items() if k in ("content", "message", "text")})
    return payload.get_text().strip()
