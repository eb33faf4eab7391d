from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tickerbrief.config import CONFIG
from tickerbrief.news.model import NewsArticle, NewsSourceType
from tickerbrief.news.source.http import fetch_json
from tickerbrief.news.source.registry import news_source
from tickerbrief.utils.time import parse_date_str, utc_now
from tickerbrief.logging_config import create_logger


logger = create_logger("source.polygon")

POLYGON_NEWS_URL = "https://api.polygon.io/v2/reference/news"
POLYGON_TIMEOUT_SECONDS = 10.0


class PolygonNewsParam(BaseModel):
    """Server-side filtering options for the Polygon news endpoint."""
    limit: int = Field(default=20, ge=1, le=1000, description="Maximum number of results")
    order: Literal["asc", "desc"] = Field(default="desc", description="Sort order")
    sort: str = Field(default="published_utc", description="Field to sort by")
    published_utc_gte: Optional[str] = Field(default=None, description="Only articles published on or after this date (YYYY-MM-DD or RFC 3339)")
    published_utc_lte: Optional[str] = Field(default=None, description="Only articles published on or before this date (YYYY-MM-DD or RFC 3339)")


class PolygonPublisher(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class PolygonNewsItem(BaseModel):
    """Subset of the provider's native news result schema."""
    model_config = ConfigDict(extra="ignore")

    title: str
    article_url: str
    published_utc: Optional[str] = None
    description: Optional[str] = None
    publisher: Optional[PolygonPublisher] = None


def build_polygon_query(ticker: str, param: PolygonNewsParam, api_key: str) -> Dict[str, Any]:
    query: Dict[str, Any] = {
        "ticker": ticker.upper(),
        "limit": param.limit,
        "order": param.order,
        "sort": param.sort,
        "apiKey": api_key,
    }
    if param.published_utc_gte:
        query["published_utc.gte"] = param.published_utc_gte
    if param.published_utc_lte:
        query["published_utc.lte"] = param.published_utc_lte
    return query


def parse_polygon_response(payload: Any, now: Optional[datetime] = None) -> List[NewsArticle]:
    """Map the provider's result list to articles, skipping malformed items."""
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        return []

    now = now or utc_now()
    articles = []
    for raw_item in payload["results"]:
        try:
            item = PolygonNewsItem.model_validate(raw_item)
        except ValidationError as e:
            logger.debug(f"Polygon: skipping malformed result: {e.error_count()} validation errors")
            continue

        publisher_name = item.publisher.name if item.publisher and item.publisher.name else ""
        articles.append(NewsArticle(
            title=item.title,
            url=item.article_url,
            source=NewsSourceType.POLYGON,
            provider=publisher_name or NewsSourceType.POLYGON.value,
            published_at=parse_date_str(item.published_utc, now),
            content=item.description or item.title,
        ))

    return articles


@news_source(
    source=NewsSourceType.POLYGON,
    description="Ticker news from the Polygon.io reference news API"
)
async def polygon_news(ticker: str, param: Optional[PolygonNewsParam] = None) -> List[NewsArticle]:
    api_key = CONFIG.POLYGON_API_KEY
    if not api_key:
        logger.warning("Polygon API key not available, skipping source")
        return []

    param = param or PolygonNewsParam()
    status, payload = await fetch_json(
        POLYGON_NEWS_URL,
        params=build_polygon_query(ticker, param, api_key),
        timeout=POLYGON_TIMEOUT_SECONDS,
    )

    if status == 401:
        logger.error(f"Polygon API rejected credentials for {ticker} (HTTP 401)")
        return []

    if status != 200:
        logger.error(f"Polygon API returned status {status} for {ticker}")
        return []

    articles = parse_polygon_response(payload)
    if not articles:
        logger.info(f"No news results from Polygon API for {ticker}")
    else:
        logger.info(f"Polygon: found {len(articles)} articles for {ticker}")
    return articles
