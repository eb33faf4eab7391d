"""
Relevance heuristics and de-duplication for collected ticker news.
"""
import re
from typing import Iterable, List, Optional

from tickerbrief.news.model import NewsArticle


# Company-name aliases, OR'd into a single case-insensitive pattern per ticker
COMPANY_NAME_ALIASES = {
    "AAPL": ["apple"],
    "MSFT": ["microsoft"],
    "GOOGL": ["google", "alphabet"],
    "GOOG": ["google", "alphabet"],
    "AMZN": ["amazon"],
    "TSLA": ["tesla"],
    "META": ["meta", "facebook"],
    "NVDA": ["nvidia"],
    "NFLX": ["netflix"],
    "AMD": ["advanced micro devices"],
    "INTC": ["intel"],
}

FINANCE_SIGNAL_KEYWORDS = [
    "earnings",
    "revenue",
    "analyst",
    "price target",
    "upgrade",
    "downgrade",
]

FINGERPRINT_LENGTH = 50


def company_name_pattern(ticker: str) -> re.Pattern:
    aliases = COMPANY_NAME_ALIASES.get(ticker.upper(), [ticker.lower()])
    return re.compile(r"\b(?:" + "|".join(re.escape(alias) for alias in aliases) + r")\b", re.IGNORECASE)


def has_finance_signal(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in FINANCE_SIGNAL_KEYWORDS)


def is_relevant_text(text: str, ticker: str, symbol_text: Optional[str] = None) -> bool:
    """
    Candidate-level relevance check used by the source adapters.

    True if the ticker appears in the text, a known company alias matches,
    a symbol cell carries the ticker, or the text holds a finance signal.
    """
    if not text:
        return False
    ticker_upper = ticker.upper()
    return (
        ticker.lower() in text.lower()
        or bool(company_name_pattern(ticker).search(text))
        or (bool(symbol_text) and ticker_upper in symbol_text.upper())
        or has_finance_signal(text)
    )


def is_relevant_article(article: NewsArticle, ticker: str) -> bool:
    """Second, collection-level pass over merged articles."""
    ticker_lower = ticker.lower()
    title = article.title.lower()
    content = (article.content or "").lower()
    return ticker_lower in title or ticker_lower in content or has_finance_signal(title)


def filter_relevant(articles: Iterable[NewsArticle], ticker: str) -> List[NewsArticle]:
    return [article for article in articles if is_relevant_article(article, ticker)]


def fingerprint(title: str) -> str:
    """Lowercased title with non-alphanumerics stripped, truncated to 50 chars."""
    return re.sub(r"[^a-z0-9]", "", title.lower())[:FINGERPRINT_LENGTH]


def remove_duplicates(articles: Iterable[NewsArticle]) -> List[NewsArticle]:
    """Keep the first article per fingerprint and sort newest first."""
    seen = set()
    unique = []

    for article in articles:
        key = fingerprint(article.title)
        if key and key not in seen:
            seen.add(key)
            unique.append(article)

    return sorted(unique, key=lambda article: article.published_at, reverse=True)
