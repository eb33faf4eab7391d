import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from tickerbrief.news.cache import ArticleCache, article_cache
from tickerbrief.news.model import NewsArticle, NewsSourceType
from tickerbrief.news.relevance import filter_relevant, remove_duplicates
from tickerbrief.news.source import NewsSourceRegistry
from tickerbrief.logging_config import create_logger


SourceFetcher = Callable[[str], Awaitable[List[NewsArticle]]]


class NewsCollector:
    """
    Fans out to every news source concurrently, then merges, filters,
    de-duplicates and caches the result per ticker.
    """

    def __init__(
        self,
        sources: Optional[Sequence[Tuple[str, SourceFetcher]]] = None,
        cache: Optional[ArticleCache] = None,
    ):
        self.sources = list(sources) if sources is not None else self._registered_sources()
        self.cache = cache if cache is not None else article_cache
        self.logger = create_logger("NewsCollector")

    @staticmethod
    def _registered_sources() -> List[Tuple[str, SourceFetcher]]:
        def fetcher(source: NewsSourceType) -> SourceFetcher:
            return lambda ticker: NewsSourceRegistry.retrieve_news_articles_from_source(source, ticker)

        return [(source.value, fetcher(source)) for source in NewsSourceRegistry.get_all_sources()]

    async def _gather_from_sources(self, ticker: str) -> List[NewsArticle]:
        results = await asyncio.gather(
            *(fetch(ticker) for _, fetch in self.sources),
            return_exceptions=True,
        )

        all_articles: List[NewsArticle] = []
        for (name, _), result in zip(self.sources, results):
            if isinstance(result, BaseException):
                self.logger.error(f"{name} failed for {ticker}: {result}")
                continue
            all_articles.extend(result)

        return all_articles

    async def collect_news(self, ticker: str) -> List[NewsArticle]:
        """
        Collect relevant, unique articles for a ticker, newest first.

        A fresh cache entry is returned without touching the network. Never
        raises; total failure yields an empty list.
        """
        ticker = ticker.upper()
        cached = self.cache.get(ticker)
        if cached is not None:
            self.logger.info(f"Using cached news for {ticker}")
            return cached

        try:
            all_articles = await self._gather_from_sources(ticker)
            relevant_articles = filter_relevant(all_articles, ticker)
            unique_articles = remove_duplicates(relevant_articles)
        except Exception as e:
            self.logger.error(f"Error collecting news for {ticker}: {e}")
            return []

        self.logger.info(
            f"{ticker}: Total collected: {len(all_articles)}, Relevant: {len(relevant_articles)}, Unique: {len(unique_articles)}"
        )

        self.cache.set(ticker, unique_articles)
        return unique_articles
