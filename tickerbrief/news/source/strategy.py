"""
Extraction strategies for scraped news pages.

Target markup is not contractually stable, so every scraped source applies an
ordered list of strategies and keeps the result of the first one that yields
at least one relevant article.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence
from urllib.parse import urljoin
import logging
import re

from bs4 import BeautifulSoup, Tag

from tickerbrief.news.model import NewsArticle, NewsSourceType
from tickerbrief.news.relevance import is_relevant_text
from tickerbrief.utils.time import parse_date_str, utc_now


NAVIGATION_TERMS = ["tradingview", "chart", "symbol", "sign in", "log in", "subscribe"]

AGO_PATTERN = re.compile(r"\bago\b", re.IGNORECASE)


@dataclass
class ScrapedPage:
    """A fetched page together with the context strategies need."""
    url: str
    ticker: str
    source: NewsSourceType
    soup: BeautifulSoup
    origin: str
    now: datetime = field(default_factory=utc_now)

    @classmethod
    def from_html(cls, html: str, url: str, ticker: str, source: NewsSourceType, origin: str, now: Optional[datetime] = None) -> "ScrapedPage":
        return cls(
            url=url,
            ticker=ticker.upper(),
            source=source,
            soup=BeautifulSoup(html, "html.parser"),
            origin=origin,
            now=now or utc_now(),
        )

    def absolute_url(self, href: Optional[str]) -> str:
        if not href:
            return self.url
        if href.startswith("http"):
            return href
        return urljoin(self.origin.rstrip("/") + "/", href)

    def build_article(self, headline: str, href: Optional[str], time_text: str = "", provider: str = "", published_at: Optional[datetime] = None) -> NewsArticle:
        return NewsArticle(
            title=headline,
            url=self.absolute_url(href),
            source=self.source,
            provider=provider or self.source.value,
            published_at=published_at or parse_date_str(time_text, self.now),
            content=headline,
            time_ago=time_text or None,
        )


def clean_text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return " ".join(element.get_text(" ", strip=True).split())


def contains_navigation_term(text: str) -> bool:
    lowered = text.lower()
    return any(term in lowered for term in NAVIGATION_TERMS)


class ExtractionStrategy(ABC):
    """Common capability of every extraction heuristic: page in, articles out."""

    name: str = "strategy"
    max_items: int = 10

    @abstractmethod
    def extract(self, page: ScrapedPage) -> List[NewsArticle]:
        ...


class HeadlineLinkStrategy(ExtractionStrategy):
    """Headline-shaped links anywhere on the page, excluding navigation."""

    name = "headline-links"
    max_items = 10

    def __init__(self, selectors: Optional[Sequence[str]] = None, min_length: int = 25, max_length: int = 300):
        self.selectors = list(selectors or [
            'a[href*="/news/"]',
            '[class*="headline"] a',
            '[class*="title"] a',
            'td a[href*="news"]',
        ])
        self.min_length = min_length
        self.max_length = max_length

    def _nearby_time_text(self, link: Tag) -> str:
        container = link.find_parent(["tr", "div"])
        if container is None:
            return ""
        time_string = container.find(string=AGO_PATTERN)
        return " ".join(str(time_string).split()) if time_string else ""

    def extract(self, page: ScrapedPage) -> List[NewsArticle]:
        articles: List[NewsArticle] = []
        seen = set()

        for selector in self.selectors:
            for link in page.soup.select(selector):
                if len(articles) >= self.max_items:
                    return articles

                headline = clean_text(link)
                if (
                    not headline
                    or headline in seen
                    or not (self.min_length < len(headline) < self.max_length)
                    or " " not in headline
                    or contains_navigation_term(headline)
                ):
                    continue

                if not is_relevant_text(headline, page.ticker):
                    continue

                seen.add(headline)
                articles.append(page.build_article(headline, link.get("href"), self._nearby_time_text(link)))

        return articles


def run_strategies(strategies: Sequence[ExtractionStrategy], page: ScrapedPage, logger: logging.Logger) -> List[NewsArticle]:
    """Apply strategies in order and return the first non-empty result."""
    for strategy in strategies:
        try:
            articles = strategy.extract(page)
        except Exception as e:
            logger.warning(f"{page.source.value}: strategy '{strategy.name}' failed for {page.ticker}: {e}")
            continue

        logger.debug(f"{page.source.value}: strategy '{strategy.name}' found {len(articles)} articles for {page.ticker}")
        if articles:
            return articles

    logger.info(f"{page.source.value}: no extraction strategy matched for {page.ticker}")
    return []
