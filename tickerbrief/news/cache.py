from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import threading
import time

from tickerbrief.config import CONFIG
from tickerbrief.news.model import NewsArticle


@dataclass(frozen=True)
class CacheEntry:
    key: str
    articles: List[NewsArticle]
    captured_at: float


class ArticleCache:
    """Short-TTL, per-ticker cache of collected articles. Entries are replaced wholesale."""

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = CONFIG.NEWS_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, ticker: str) -> Optional[List[NewsArticle]]:
        key = ticker.upper()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.clock() - entry.captured_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return entry.articles

    def set(self, ticker: str, articles: List[NewsArticle]) -> None:
        key = ticker.upper()
        with self._lock:
            self._entries[key] = CacheEntry(key=key, articles=list(articles), captured_at=self.clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


# Shared process-wide instance
article_cache = ArticleCache()
