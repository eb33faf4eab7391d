from .polygon import polygon_news, PolygonNewsParam

__all__ = ["polygon_news", "PolygonNewsParam"]
