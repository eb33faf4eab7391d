from datetime import datetime
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo
import re

from tickerbrief.news.model import NewsArticle, NewsSourceType
from tickerbrief.news.relevance import is_relevant_text
from tickerbrief.news.source.http import BROWSER_HEADERS, fetch_text
from tickerbrief.news.source.registry import news_source
from tickerbrief.news.source.strategy import (
    ExtractionStrategy,
    HeadlineLinkStrategy,
    ScrapedPage,
    clean_text,
    run_strategies,
)
from tickerbrief.utils.time import ensure_utc
from tickerbrief.logging_config import create_logger


logger = create_logger("source.finviz")

FINVIZ_ORIGIN = "https://finviz.com"
FINVIZ_TIMEOUT_SECONDS = 10.0
FINVIZ_TIMEZONE = ZoneInfo("America/New_York")

FINVIZ_HEADERS = {
    **BROWSER_HEADERS,
    "Referer": "https://finviz.com/",
}

FULL_DATE_PATTERN = re.compile(r"^([A-Za-z]{3})-(\d{1,2})-(\d{2})(?:\s+(\d{1,2}:\d{2}\s*[AP]M))?", re.IGNORECASE)
TODAY_PATTERN = re.compile(r"^Today\s+(\d{1,2}:\d{2}\s*[AP]M)", re.IGNORECASE)
TIME_ONLY_PATTERN = re.compile(r"^(\d{1,2}:\d{2}\s*[AP]M)$", re.IGNORECASE)


def get_finviz_quote_url(ticker: str) -> str:
    return f"{FINVIZ_ORIGIN}/quote.ashx?t={ticker.upper()}&p=d"


def _combine(day: datetime, time_text: Optional[str]) -> datetime:
    if time_text:
        clock = datetime.strptime(time_text.replace(" ", "").upper(), "%I:%M%p")
        day = day.replace(hour=clock.hour, minute=clock.minute)
    return ensure_utc(day)


def parse_finviz_timestamp(date_text: str, current_day: Optional[datetime], now: datetime) -> Tuple[datetime, Optional[datetime]]:
    """
    Parse a Finviz news-table date cell.

    Rows show "Oct-17-25 08:30AM" for the first item of a day and only
    "09:15AM" for the following ones, so the last full date seen is carried
    forward. Returns (published_at, day to carry forward).
    """
    date_text = date_text.strip()
    local_now = now.astimezone(FINVIZ_TIMEZONE)
    today = local_now.replace(hour=0, minute=0, second=0, microsecond=0)

    try:
        match = FULL_DATE_PATTERN.match(date_text)
        if match:
            month, day, year, time_text = match.groups()
            parsed = datetime.strptime(f"{month.title()}-{int(day):02d}-{year}", "%b-%d-%y")
            day_start = parsed.replace(tzinfo=FINVIZ_TIMEZONE)
            return _combine(day_start, time_text), day_start

        match = TODAY_PATTERN.match(date_text)
        if match:
            return _combine(today, match.group(1)), today

        match = TIME_ONLY_PATTERN.match(date_text)
        if match:
            day_start = current_day or today
            return _combine(day_start, match.group(1)), day_start
    except ValueError as e:
        logger.debug(f"Finviz: could not parse date cell '{date_text}': {e}")

    return now, current_day


class NewsTableStrategy(ExtractionStrategy):
    """The quote page's news table: date cell first, headline link last."""

    name = "news-table"
    max_items = 10

    selectors = ["#news-table tr", ".fullview-news-outer tr"]

    def extract(self, page: ScrapedPage) -> List[NewsArticle]:
        rows = []
        for selector in self.selectors:
            rows = page.soup.select(selector)
            if rows:
                break

        articles: List[NewsArticle] = []
        current_day: Optional[datetime] = None

        for row in rows:
            if len(articles) >= self.max_items:
                break

            cells = row.find_all("td")
            if len(cells) < 2:
                continue

            date_text = clean_text(cells[0])
            news_cell = cells[-1]
            link = news_cell.find("a")
            if link is None:
                continue

            published_at, current_day = parse_finviz_timestamp(date_text, current_day, page.now)

            title = clean_text(link)
            href = link.get("href")
            if not title or len(title) <= 10 or not href:
                continue
            if not is_relevant_text(title, page.ticker):
                continue

            provider_element = news_cell.select_one(".news-link-right")
            provider = clean_text(provider_element).strip("()") if provider_element else ""

            articles.append(page.build_article(title, href, date_text, provider, published_at=published_at))
            logger.debug(f"Finviz found: {title[:80]}...")

        return articles


FINVIZ_STRATEGIES: List[ExtractionStrategy] = [
    NewsTableStrategy(),
    HeadlineLinkStrategy(selectors=['a.tab-link-news', 'a[href*="/news/"]']),
]


def extract_finviz_articles(html: str, ticker: str, url: str = "", now: Optional[datetime] = None) -> List[NewsArticle]:
    page = ScrapedPage.from_html(
        html,
        url=url or get_finviz_quote_url(ticker),
        ticker=ticker,
        source=NewsSourceType.FINVIZ,
        origin=FINVIZ_ORIGIN,
        now=now,
    )
    return run_strategies(FINVIZ_STRATEGIES, page, logger)


@news_source(
    source=NewsSourceType.FINVIZ,
    description="Ticker news table scraped from the Finviz quote page"
)
async def finviz_news(ticker: str) -> List[NewsArticle]:
    url = get_finviz_quote_url(ticker)
    status, html = await fetch_text(url, headers=FINVIZ_HEADERS, timeout=FINVIZ_TIMEOUT_SECONDS)

    if status != 200:
        logger.warning(f"Finviz returned status {status} for {ticker}")
        return []

    articles = extract_finviz_articles(html, ticker, url)
    logger.info(f"Finviz: found {len(articles)} articles for {ticker}")
    return articles
