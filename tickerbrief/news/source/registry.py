from typing import List, Dict, Callable, Optional
from dataclasses import dataclass
import asyncio
from inspect import iscoroutinefunction, signature

from tickerbrief.news.model import NewsArticle, NewsSourceType
from tickerbrief.logging_config import create_logger


@dataclass
class NewsSource:
    """Information about a registered news source function."""
    source_function: Callable
    source: NewsSourceType
    description: str


class NewsSourceRegistry:
    """Registry for managing news source functions."""

    _sources: Dict[NewsSourceType, NewsSource] = {}
    logger = create_logger("NewsSourceRegistry")

    @classmethod
    def _validate_source_function(cls, func: Callable) -> None:
        """A source function takes the ticker as its first positional parameter."""
        parameters = list(signature(func).parameters.values())
        if not parameters:
            raise ValueError(f"Function {func.__name__} must accept a ticker parameter")

        required_params = [p for p in parameters[1:] if p.default == p.empty]
        if required_params:
            raise ValueError(f"Function {func.__name__} has required parameters {[p.name for p in required_params]} besides the ticker")

    @classmethod
    def register(cls, source: NewsSourceType, description: str):
        """
        Decorator to register a news source function.
        """
        def decorator(func: Callable) -> Callable:
            cls._validate_source_function(func)

            if not iscoroutinefunction(func):
                async def async_wrapper(*args, **kwargs):
                    return await asyncio.to_thread(func, *args, **kwargs)

                async_wrapper.__signature__ = signature(func)
                async_wrapper.__name__ = func.__name__
                async_wrapper.__annotations__ = func.__annotations__
                wrapped_func = async_wrapper
            else:
                wrapped_func = func

            cls._sources[source] = NewsSource(
                source_function=wrapped_func,
                source=source,
                description=description,
            )

            return func
        return decorator

    @classmethod
    async def retrieve_news_articles_from_source(cls, source: NewsSourceType, ticker: str) -> List[NewsArticle]:
        """
        Execute a registered news source for a ticker.

        Never raises: any fault inside the source is logged and degrades to an
        empty result so one unavailable source cannot abort a collection.
        """
        news_source = cls._sources.get(source)
        if news_source is None:
            cls.logger.error(f"News source {source.value} is not registered")
            return []

        try:
            articles = await news_source.source_function(ticker)
        except Exception as e:
            cls.logger.error(f"Error executing news source {source.value} for {ticker}: {e}")
            return []

        cls.logger.info(f"Retrieved {len(articles)} articles from {source.value} for {ticker}")
        return list(articles)

    @classmethod
    def get_all_sources(cls) -> Dict[NewsSourceType, NewsSource]:
        """Get all registered news sources."""
        sources = cls._sources.copy()
        if not sources:
            raise ValueError("No news sources registered")

        return sources

    @classmethod
    def get_source(cls, source: NewsSourceType) -> Optional[NewsSource]:
        return cls._sources.get(source)


def news_source(source: NewsSourceType, description: str):
    """
    Decorator for registering news source functions.

    Usage:
        @news_source(
            source=NewsSourceType.FINVIZ,
            description="Ticker news table scraped from the Finviz quote page"
        )
        async def finviz_news(ticker: str) -> List[NewsArticle]:
            ...
    """
    return NewsSourceRegistry.register(source, description)
