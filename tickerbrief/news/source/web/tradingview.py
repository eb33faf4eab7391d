import re
from typing import List, Optional

from bs4 import Tag

from tickerbrief.news.model import NewsArticle, NewsSourceType
from tickerbrief.news.relevance import is_relevant_text
from tickerbrief.news.source.http import BROWSER_HEADERS, fetch_text
from tickerbrief.news.source.registry import news_source
from tickerbrief.news.source.strategy import (
    ExtractionStrategy,
    HeadlineLinkStrategy,
    ScrapedPage,
    clean_text,
    contains_navigation_term,
    run_strategies,
)
from tickerbrief.logging_config import create_logger


logger = create_logger("source.tradingview")

TRADINGVIEW_ORIGIN = "https://in.tradingview.com"
TRADINGVIEW_TIMEOUT_SECONDS = 15.0


def get_tradingview_news_url(ticker: str) -> str:
    return f"{TRADINGVIEW_ORIGIN}/symbols/NASDAQ-{ticker.upper()}/news/"


class TableRowStrategy(ExtractionStrategy):
    """News rows carrying a relative-time marker, or news-item containers."""

    name = "table-rows"
    max_items = 15

    selectors = [
        'table tr:has(td:-soup-contains("ago"))',
        'tr:has(td:-soup-contains("minutes ago"))',
        'tr:has(td:-soup-contains("hours ago"))',
        '[class*="row"]:has([class*="time"])',
        '[class*="news-item"]',
        '[data-testid*="news"]',
    ]

    def _from_table_row(self, page: ScrapedPage, cells: List[Tag]) -> Optional[NewsArticle]:
        # time | symbol | headline | provider
        time_text = clean_text(cells[0])
        symbol_text = clean_text(cells[1])
        headline_cell = cells[2]
        provider = clean_text(cells[3]) if len(cells) > 3 else ""

        headline = clean_text(headline_cell)
        link = headline_cell.find("a")
        href = link.get("href") if link else None

        if not headline or len(headline) <= 15 or "ago" not in time_text:
            return None
        if not is_relevant_text(headline, page.ticker, symbol_text):
            return None

        return page.build_article(headline, href, time_text, provider)

    def _from_container(self, page: ScrapedPage, element: Tag) -> Optional[NewsArticle]:
        headline_element = element.select_one('a, [class*="title"], [class*="headline"]')
        if headline_element is None:
            return None

        time_element = element.select_one('[class*="time"], [datetime]')
        time_text = ""
        if time_element is not None:
            time_text = clean_text(time_element) or time_element.get("datetime", "")

        headline = clean_text(headline_element)
        href = headline_element.get("href")
        if not href:
            inner_link = headline_element.find("a")
            href = inner_link.get("href") if inner_link else None

        if not headline or len(headline) <= 15:
            return None
        if not is_relevant_text(headline, page.ticker):
            return None

        return page.build_article(headline, href, time_text)

    def extract(self, page: ScrapedPage) -> List[NewsArticle]:
        articles: List[NewsArticle] = []

        for selector in self.selectors:
            elements = page.soup.select(selector)
            logger.debug(f"TradingView: found {len(elements)} elements with selector: {selector}")

            for element in elements:
                if len(articles) >= self.max_items:
                    break

                cells = element.find_all("td")
                if len(cells) >= 3:
                    article = self._from_table_row(page, cells)
                else:
                    article = self._from_container(page, element)

                if article is not None:
                    articles.append(article)

            if articles:
                break

        return articles


class TextPatternStrategy(ExtractionStrategy):
    """Last resort: scan leaf elements for headline-shaped sentences."""

    name = "text-patterns"
    max_items = 5

    news_patterns = [
        re.compile(r"\b(says?|reports?|announces?|reveals?)\b", re.IGNORECASE),
        re.compile(r"\b(earnings?|revenue|profit|loss)\b", re.IGNORECASE),
        re.compile(r"\b(upgrade|downgrade|target|analyst)\b", re.IGNORECASE),
        re.compile(r"\b(deal|agreement|merger|acquisition)\b", re.IGNORECASE),
        re.compile(r"\b(lawsuit|court|legal|rights)\b", re.IGNORECASE),
    ]

    def extract(self, page: ScrapedPage) -> List[NewsArticle]:
        articles: List[NewsArticle] = []
        seen = set()

        for element in page.soup.find_all(True):
            if len(articles) >= self.max_items:
                break
            if element.name in ("script", "style", "head", "title", "meta"):
                continue
            if element.find(True) is not None:
                continue

            text = clean_text(element)
            if text in seen or not (30 < len(text) < 200):
                continue
            if contains_navigation_term(text):
                continue
            if not any(pattern.search(text) for pattern in self.news_patterns):
                continue
            if not is_relevant_text(text, page.ticker):
                continue

            seen.add(text)
            link = element if element.name == "a" else element.find_parent("a")
            articles.append(page.build_article(text, link.get("href") if link else None))

        return articles


TRADINGVIEW_STRATEGIES: List[ExtractionStrategy] = [
    TableRowStrategy(),
    HeadlineLinkStrategy(),
    TextPatternStrategy(),
]


def extract_tradingview_articles(html: str, ticker: str, url: str = "") -> List[NewsArticle]:
    page = ScrapedPage.from_html(
        html,
        url=url or get_tradingview_news_url(ticker),
        ticker=ticker,
        source=NewsSourceType.TRADINGVIEW,
        origin=TRADINGVIEW_ORIGIN,
    )
    return run_strategies(TRADINGVIEW_STRATEGIES, page, logger)


@news_source(
    source=NewsSourceType.TRADINGVIEW,
    description="Ticker news listing scraped from the TradingView symbol news page"
)
async def tradingview_news(ticker: str) -> List[NewsArticle]:
    url = get_tradingview_news_url(ticker)
    status, html = await fetch_text(url, headers=BROWSER_HEADERS, timeout=TRADINGVIEW_TIMEOUT_SECONDS)

    if status != 200:
        logger.warning(f"TradingView returned status {status} for {ticker}")
        return []

    articles = extract_tradingview_articles(html, ticker, url)
    logger.info(f"TradingView: found {len(articles)} articles for {ticker}")
    return articles
