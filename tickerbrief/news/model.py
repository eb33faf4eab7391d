from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from tickerbrief.utils.time import parse_date_str, to_iso


class NewsSourceType(Enum):
    """External sources an article can come from."""
    TRADINGVIEW = "TradingView"
    FINVIZ = "Finviz"
    POLYGON = "Polygon"

    @property
    def credibility(self) -> int:
        """Credibility tier used to rank sources; higher is more reliable."""
        return SOURCE_CREDIBILITY[self]


SOURCE_CREDIBILITY = {
    NewsSourceType.POLYGON: 3,
    NewsSourceType.FINVIZ: 2,
    NewsSourceType.TRADINGVIEW: 1,
}


@dataclass(frozen=True)
class NewsArticle:
    """A single news article about a ticker, as produced by a source adapter."""
    title: str
    url: str
    source: NewsSourceType
    published_at: datetime
    provider: str = ""
    content: str = ""  # May equal the title when the source gives no description
    time_ago: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "source": self.source.value,
            "provider": self.provider or self.source.value,
            "publishedAt": to_iso(self.published_at),
            "content": self.content or self.title,
            "timeAgo": self.time_ago,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NewsArticle":
        published_at = data.get("publishedAt") or data.get("published_at")
        return cls(
            title=data["title"],
            url=data.get("url", ""),
            source=NewsSourceType(data["source"]),
            published_at=published_at if isinstance(published_at, datetime) else parse_date_str(published_at),
            provider=data.get("provider") or "",
            content=data.get("content") or data["title"],
            time_ago=data.get("timeAgo") or data.get("time_ago"),
        )
