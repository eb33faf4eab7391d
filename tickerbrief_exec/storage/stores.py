"""
SQLAlchemy-backed collaborators of the summary pipeline.

`TickerStore` holds the tracked symbols, `SummaryStore` the last few summaries
per ticker (each with the articles it was generated from) and `HistoryStore` a
rolling window of daily article snapshots used for day-over-day comparison.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import json
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from tickerbrief.config import CONFIG
from tickerbrief.logging_config import create_logger
from tickerbrief.news.model import NewsArticle
from tickerbrief.summary.model import Summary
from tickerbrief.utils.time import to_iso, utc_now
from .db import get_db_session
from .model import NewsHistory, Ticker, TickerSummary


def normalize_ticker(ticker: str) -> str:
    normalized = (ticker or "").strip().upper()
    if not normalized:
        raise ValueError("Ticker symbol must not be empty")
    return normalized


class TickerStore:

    def __init__(self, session_factory: Optional[sessionmaker] = None, default_tickers: Optional[List[str]] = None):
        self.session_factory = session_factory
        self.default_tickers = default_tickers if default_tickers is not None else CONFIG.DEFAULT_TICKERS
        self.logger = create_logger("TickerStore")

    def get_tickers(self) -> List[str]:
        """Tracked tickers in insertion order; an empty table is seeded with the defaults."""
        with get_db_session(self.session_factory) as session:
            if session.query(Ticker).count() == 0 and self.default_tickers:
                self.logger.info(f"Seeding default tickers: {', '.join(self.default_tickers)}")
                for symbol in self.default_tickers:
                    session.add(Ticker(symbol=normalize_ticker(symbol)))
                session.flush()

            return [row.symbol for row in session.query(Ticker).order_by(Ticker.id).all()]

    def add_ticker(self, ticker: str) -> bool:
        """Returns False if the ticker was already tracked."""
        symbol = normalize_ticker(ticker)
        with get_db_session(self.session_factory) as session:
            if session.query(Ticker).filter(Ticker.symbol == symbol).first():
                return False
            session.add(Ticker(symbol=symbol))
            self.logger.info(f"Added ticker {symbol}")
            return True

    def remove_ticker(self, ticker: str) -> bool:
        """Stop tracking a ticker and drop its stored summaries and history."""
        symbol = normalize_ticker(ticker)
        with get_db_session(self.session_factory) as session:
            removed = session.query(Ticker).filter(Ticker.symbol == symbol).delete()
            session.query(TickerSummary).filter(TickerSummary.ticker == symbol).delete()
            session.query(NewsHistory).filter(NewsHistory.ticker == symbol).delete()
            if removed:
                self.logger.info(f"Removed ticker {symbol}")
            return bool(removed)


@dataclass
class StoredSummary:
    """A persisted summary together with the articles it was generated from."""
    summary: Summary
    articles: List[NewsArticle] = field(default_factory=list)

    @property
    def sources(self) -> List[Dict[str, Any]]:
        return [
            {
                "url": article.url,
                "headline": article.title,
                "source": article.source.value,
                "provider": article.provider or article.source.value,
                "publishedAt": to_iso(article.published_at),
                "timeAgo": article.time_ago,
            }
            for article in self.articles
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.summary.to_dict(),
            "articles": [article.to_dict() for article in self.articles],
            "sources": self.sources,
        }


class SummaryStore:

    def __init__(self, session_factory: Optional[sessionmaker] = None, retention_count: Optional[int] = None):
        self.session_factory = session_factory
        self.retention_count = retention_count or CONFIG.SUMMARY_RETENTION_COUNT
        self.logger = create_logger("SummaryStore")

    def store(self, ticker: str, summary: Summary, articles: Optional[List[NewsArticle]] = None) -> None:
        symbol = normalize_ticker(ticker)
        with get_db_session(self.session_factory) as session:
            session.add(TickerSummary(
                ticker=symbol,
                processing_status=summary.processing_status.value,
                payload=json.dumps(summary.to_dict()),
                articles=json.dumps([article.to_dict() for article in articles or []]),
            ))
            session.flush()

            stale_ids = [
                row.id for row in session.query(TickerSummary.id)
                .filter(TickerSummary.ticker == symbol)
                .order_by(TickerSummary.id.desc())
                .offset(self.retention_count)
                .all()
            ]
            if stale_ids:
                session.query(TickerSummary).filter(TickerSummary.id.in_(stale_ids)).delete(synchronize_session=False)
                self.logger.debug(f"Pruned {len(stale_ids)} old summaries for {symbol}")

    def _load(self, row: TickerSummary) -> StoredSummary:
        articles: List[NewsArticle] = []
        for data in json.loads(row.articles or "[]"):
            try:
                articles.append(NewsArticle.from_dict(data))
            except (KeyError, ValueError) as e:
                self.logger.warning(f"Skipping malformed article stored with {row.ticker} summary {row.id}: {e}")
        return StoredSummary(Summary.model_validate(json.loads(row.payload)), articles)

    def get_latest(self, ticker: str, n: Optional[int] = None) -> List[StoredSummary]:
        """Most recent summaries first."""
        symbol = normalize_ticker(ticker)
        with get_db_session(self.session_factory) as session:
            rows = (
                session.query(TickerSummary)
                .filter(TickerSummary.ticker == symbol)
                .order_by(TickerSummary.id.desc())
                .limit(n or self.retention_count)
                .all()
            )
            return [self._load(row) for row in rows]

    def get_all_latest(self) -> Dict[str, StoredSummary]:
        with get_db_session(self.session_factory) as session:
            latest_ids = select(func.max(TickerSummary.id)).group_by(TickerSummary.ticker)
            rows = session.query(TickerSummary).filter(TickerSummary.id.in_(latest_ids)).order_by(TickerSummary.ticker).all()
            return {row.ticker: self._load(row) for row in rows}


class HistoryStore:

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        retention_days: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.retention_days = retention_days or CONFIG.HISTORY_RETENTION_DAYS
        self.clock = clock
        self.logger = create_logger("HistoryStore")

    def append_history(self, ticker: str, articles: List[NewsArticle]) -> None:
        """Record today's snapshot (replacing an earlier one from the same UTC day) and prune old days."""
        symbol = normalize_ticker(ticker)
        today = self.clock().date()
        payload = json.dumps([article.to_dict() for article in articles])

        with get_db_session(self.session_factory) as session:
            snapshot = session.query(NewsHistory).filter(
                NewsHistory.ticker == symbol,
                NewsHistory.snapshot_date == today
            ).first()
            if snapshot:
                snapshot.articles = payload  # type: ignore
            else:
                session.add(NewsHistory(ticker=symbol, snapshot_date=today, articles=payload))

            cutoff = today - timedelta(days=self.retention_days)
            pruned = session.query(NewsHistory).filter(
                NewsHistory.ticker == symbol,
                NewsHistory.snapshot_date < cutoff
            ).delete()
            if pruned:
                self.logger.debug(f"Pruned {pruned} history snapshots older than {cutoff} for {symbol}")

    def get_history(self, ticker: str, days: Optional[int] = None) -> List[NewsArticle]:
        """Articles from the previous `days` days, excluding today, newest day first."""
        symbol = normalize_ticker(ticker)
        today = self.clock().date()
        since = today - timedelta(days=days or self.retention_days)

        with get_db_session(self.session_factory) as session:
            snapshots = (
                session.query(NewsHistory)
                .filter(
                    NewsHistory.ticker == symbol,
                    NewsHistory.snapshot_date >= since,
                    NewsHistory.snapshot_date < today
                )
                .order_by(NewsHistory.snapshot_date.desc())
                .all()
            )

            articles: List[NewsArticle] = []
            for snapshot in snapshots:
                for data in json.loads(snapshot.articles):
                    try:
                        articles.append(NewsArticle.from_dict(data))
                    except (KeyError, ValueError) as e:
                        self.logger.warning(f"Skipping malformed history entry for {symbol}: {e}")
            return articles
