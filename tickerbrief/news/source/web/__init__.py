from .tradingview import tradingview_news
from .finviz import finviz_news

__all__ = ["tradingview_news", "finviz_news"]
