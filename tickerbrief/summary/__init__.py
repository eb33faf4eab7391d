from .model import Summary, SummaryOutcome, ProcessingStatus, Sentiment, MarketImpact, Confidence
from .selector import ArticleSelector
from .generator import SummaryGenerator

__all__ = [
    "Summary",
    "SummaryOutcome",
    "ProcessingStatus",
    "Sentiment",
    "MarketImpact",
    "Confidence",
    "ArticleSelector",
    "SummaryGenerator",
]
