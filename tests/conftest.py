import pytest
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from langchain_core.language_models.fake_chat_models import FakeListChatModel

from tickerbrief.agent.llm import GenerativeClient
from tickerbrief.agent.rate_limiter import RateLimiter
from tickerbrief.news.model import NewsArticle, NewsSourceType
from tickerbrief_exec.storage.db import create_session_factory


NOW = datetime(2025, 10, 17, 16, 0, tzinfo=timezone.utc)


class FailingClient:
    """Stands in for a generative client whose service is down."""

    def __init__(self):
        self.calls = 0

    async def complete(self, prompt: str) -> str:
        self.calls += 1
        raise RuntimeError("generative service unavailable")


class RecordingClient:
    """Returns canned responses in order and keeps every prompt it was sent."""

    def __init__(self, responses: List[str]):
        self.responses = list(responses)
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.responses[min(len(self.prompts), len(self.responses)) - 1]


@pytest.fixture
def make_article():
    def factory(
        title: str,
        source: NewsSourceType = NewsSourceType.FINVIZ,
        minutes_ago: int = 0,
        url: Optional[str] = None,
        content: str = "",
        provider: str = "",
    ) -> NewsArticle:
        return NewsArticle(
            title=title,
            url=url or f"https://news.example.com/{abs(hash(title))}",
            source=source,
            published_at=NOW - timedelta(minutes=minutes_ago),
            provider=provider,
            content=content or title,
        )
    return factory


@pytest.fixture
def fake_client():
    """GenerativeClient over LangChain's fake chat model, with a limiter that never blocks."""
    def factory(*responses: str) -> GenerativeClient:
        return GenerativeClient(
            llm=FakeListChatModel(responses=list(responses)),
            rate_limiter=RateLimiter(max_requests=1000, window_seconds=60),
        )
    return factory


@pytest.fixture
def failing_client() -> FailingClient:
    return FailingClient()


@pytest.fixture
def recording_client():
    return RecordingClient


@pytest.fixture
def session_factory():
    return create_session_factory("sqlite://")


@pytest.fixture
def now() -> datetime:
    return NOW
