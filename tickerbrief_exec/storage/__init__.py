from .db import configure_database, create_session_factory, get_db_session
from .stores import TickerStore, SummaryStore, StoredSummary, HistoryStore

__all__ = [
    "configure_database",
    "create_session_factory",
    "get_db_session",
    "TickerStore",
    "SummaryStore",
    "StoredSummary",
    "HistoryStore",
]
