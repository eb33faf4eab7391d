from .registry import NewsSourceRegistry, NewsSource, news_source

# Import all news sources to trigger registration
from .web import *
from .api import *

__all__ = [
    "NewsSourceRegistry",
    "NewsSource",
    "news_source",
]
