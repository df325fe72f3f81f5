"""Conversation memory data models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from learner_model.models.analysis import AnalysisResult

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class MemoryView(StrEnum):
    """Named read-only views over a user's conversation log."""

    SHORT_TERM = "short_term"
    MEDIUM_TERM = "medium_term"
    LONG_TERM = "long_term"


class MemoryTier(BaseModel):
    duration_ms: int = Field(gt=0)
    capacity: int = Field(gt=0)


class MemoryTiers(BaseModel):
    short_term: MemoryTier = MemoryTier(duration_ms=DAY_MS, capacity=10)
    medium_term: MemoryTier = MemoryTier(duration_ms=7 * DAY_MS, capacity=50)
    long_term: MemoryTier = MemoryTier(duration_ms=30 * DAY_MS, capacity=200)

    def for_view(self, view: MemoryView | str) -> MemoryTier:
        return getattr(self, MemoryView(view).value)


class ConversationLogEntry(BaseModel):
    timestamp: int  # ms since epoch
    user_input: str = ""
    system_response: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    analysis: AnalysisResult = Field(default_factory=AnalysisResult)


class ConversationLog(BaseModel):
    """One user's conversation log, oldest first."""

    user_id: str
    entries: list[ConversationLogEntry] = Field(default_factory=list)
