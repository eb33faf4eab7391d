from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Type
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tickerbrief.utils.time import utc_now


MAX_ARTICLES_ANALYZED = 25


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    MIXED = "mixed"


class MarketImpact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MINIMAL = "minimal"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ProcessingStatus(str, Enum):
    """Which generation path produced a summary."""
    COMPLETE = "complete"
    RECOVERED = "recovered"
    FALLBACK = "fallback"
    ERROR = "error"


def normalize_choice(value: Any, choices: Type[Enum], default: Enum) -> Enum:
    """
    Map free-form model output onto an enum member.

    Case-insensitive; for "positive/negative" style answers the first valid
    option wins; anything unrecognised becomes `default`.
    """
    if isinstance(value, choices):
        return value
    if not isinstance(value, str):
        return default

    valid = {member.value: member for member in choices}
    cleaned = value.strip().lower()
    if cleaned in valid:
        return valid[cleaned]

    for token in re.split(r"[/|,]|\bor\b|\s+", cleaned):
        token = token.strip(" .\"'")
        if token in valid:
            return valid[token]
    return default


def split_key_points(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        lines = [re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", line).strip() for line in value.splitlines()]
        return [line for line in lines if line]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return [str(value)]


class Summary(BaseModel):
    """Structured daily summary for one ticker."""
    model_config = ConfigDict(populate_by_name=True)

    ticker: str
    summary: str
    what_changed_today: str = Field(alias="whatChangedToday")
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    sentiment: Sentiment = Sentiment.NEUTRAL
    sentiment_reasoning: str = Field(default="", alias="sentimentReasoning")
    market_implications: str = Field(default="", alias="marketImplications")
    market_impact: MarketImpact = Field(default=MarketImpact.MEDIUM, alias="marketImpact")
    confidence: Confidence = Confidence.MEDIUM
    articles_analyzed: int = Field(default=0, ge=0, le=MAX_ARTICLES_ANALYZED, alias="articlesAnalyzed")
    total_articles: int = Field(default=0, ge=0, alias="totalArticles")
    historical_articles_used: int = Field(default=0, ge=0, alias="historicalArticlesUsed")
    recovered: bool = False
    processing_status: ProcessingStatus = Field(default=ProcessingStatus.COMPLETE, alias="processingStatus")
    last_updated: datetime = Field(default_factory=utc_now, alias="lastUpdated")
    error: Optional[str] = None

    @field_validator("sentiment", mode="before")
    @classmethod
    def _normalize_sentiment(cls, value: Any) -> Sentiment:
        return normalize_choice(value, Sentiment, Sentiment.NEUTRAL)

    @field_validator("market_impact", mode="before")
    @classmethod
    def _normalize_market_impact(cls, value: Any) -> MarketImpact:
        return normalize_choice(value, MarketImpact, MarketImpact.MEDIUM)

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value: Any) -> Confidence:
        return normalize_choice(value, Confidence, Confidence.MEDIUM)

    @field_validator("key_points", mode="before")
    @classmethod
    def _coerce_key_points(cls, value: Any) -> List[str]:
        return split_key_points(value)

    @field_validator("summary", "what_changed_today", "sentiment_reasoning", "market_implications", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return " ".join(str(item) for item in value)
        return str(value)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


@dataclass
class SummaryOutcome:
    """Tagged result of a summarization request; `status` says how it was produced."""
    status: ProcessingStatus
    summary: Summary
    reasons: List[str] = field(default_factory=list)

    @property
    def is_degraded(self) -> bool:
        return self.status != ProcessingStatus.COMPLETE
