from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from .enums import WorkflowRunStatus

Base = declarative_base()


class Ticker(Base):
    """Model for storing tracked ticker symbols."""
    __tablename__ = "tickers"

    id = Column(Integer, primary_key=True, index=True)
    symbol = Column(String(16), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TickerSummary(Base):
    """Model for storing generated daily summaries; highest id is the most recent."""
    __tablename__ = "ticker_summaries"

    id = Column(Integer, primary_key=True, index=True)
    ticker = Column(String(16), nullable=False, index=True)
    processing_status = Column(String(32), nullable=False)
    payload = Column(Text, nullable=False)  # JSON string of the serialized summary
    articles = Column(Text, nullable=False, default="[]")  # JSON string of the analyzed articles
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class NewsHistory(Base):
    """Model for storing one snapshot of collected articles per ticker per UTC day."""
    __tablename__ = "news_history"
    __table_args__ = (UniqueConstraint("ticker", "snapshot_date", name="uq_news_history_ticker_date"),)

    id = Column(Integer, primary_key=True, index=True)
    ticker = Column(String(16), nullable=False, index=True)
    snapshot_date = Column(Date, nullable=False, index=True)
    articles = Column(Text, nullable=False)  # JSON string of the article list
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class WorkflowRunHistory(Base):
    """Model for storing workflow run history."""
    __tablename__ = "workflow_run_history"

    id = Column(Integer, primary_key=True, index=True)
    workflow_name = Column(String(255), nullable=False, index=True)
    input_data = Column(Text, nullable=False)  # JSON string of input parameters
    output_data = Column(Text, nullable=True)  # JSON string of output/result
    status = Column(SQLEnum(WorkflowRunStatus), nullable=False)
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
