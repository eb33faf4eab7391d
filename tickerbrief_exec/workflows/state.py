from typing import TypedDict, List, Optional

from tickerbrief.news.model import NewsArticle
from tickerbrief.summary.model import SummaryOutcome


class BaseState(TypedDict):
    error_message: Optional[str]


class DailySummaryState(BaseState):
    """State for the daily summary workflow of a single ticker."""
    ticker: str
    articles: List[NewsArticle]  # Everything collected today, after filtering and dedup
    selected_articles: List[NewsArticle]
    history: List[NewsArticle]
    outcome: Optional[SummaryOutcome]
