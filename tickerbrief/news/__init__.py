# Import core models
from .model import NewsArticle, NewsSourceType

from .source.registry import NewsSourceRegistry, NewsSource

# Import all news sources to trigger registration
from .source import *

from .cache import ArticleCache, article_cache
from .collector import NewsCollector

__all__ = [
    "NewsArticle",
    "NewsSourceType",
    "NewsSourceRegistry",
    "NewsSource",
    "ArticleCache",
    "article_cache",
    "NewsCollector",
]
