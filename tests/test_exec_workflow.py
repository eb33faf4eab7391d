import json
import pytest
from datetime import timedelta

from tickerbrief.news.model import NewsSourceType
from tickerbrief.summary.generator import SummaryGenerator
from tickerbrief.summary.selector import ArticleSelector
from tickerbrief.utils.time import utc_now
from tickerbrief_exec.controller import run_workflow_with_history
from tickerbrief_exec.storage.db import get_db_session
from tickerbrief_exec.storage.enums import WorkflowRunStatus
from tickerbrief_exec.storage.model import WorkflowRunHistory
from tickerbrief_exec.storage.stores import HistoryStore, SummaryStore, TickerStore
from tickerbrief_exec.workflows.daily_summary import execute_all_tickers_workflow, execute_daily_summary_workflow
from tickerbrief_exec.workflows.nodes.daily_summary import DailySummaryComponents


SUMMARY_RESPONSE = json.dumps({
    "summary": "Apple moved higher on buyback news.",
    "keyPoints": ["Buyback expanded"],
    "sentiment": "positive",
    "whatChangedToday": "A larger buyback was announced.",
    "marketImpact": "medium",
    "confidence": "high",
})


class FakeCollector:

    def __init__(self, articles=None, error=None):
        self.articles = articles or []
        self.error = error
        self.tickers = []

    async def collect_news(self, ticker):
        self.tickers.append(ticker)
        if self.error:
            raise self.error
        return list(self.articles)


class TestDailySummaryWorkflow:

    @pytest.fixture
    def news(self, make_article):
        return [
            make_article("AAPL expands buyback", source=NewsSourceType.POLYGON, minutes_ago=5),
            make_article("Analyst raises AAPL price target", source=NewsSourceType.FINVIZ, minutes_ago=20),
            make_article("AAPL options volume surges", source=NewsSourceType.TRADINGVIEW, minutes_ago=40),
        ]

    def build_components(self, session_factory, collector, client):
        return DailySummaryComponents(
            collector=collector,
            selector=ArticleSelector(client),
            generator=SummaryGenerator(client),
            summary_store=SummaryStore(session_factory),
            history_store=HistoryStore(session_factory),
        )

    @pytest.mark.asyncio
    async def test_complete_run_stores_summary_and_history(self, session_factory, fake_client, news):
        components = self.build_components(session_factory, FakeCollector(news), fake_client(SUMMARY_RESPONSE))

        result = await execute_daily_summary_workflow("aapl", components)

        assert result["ticker"] == "AAPL"
        assert result["error_message"] is None
        assert result["processing_status"] == "complete"
        assert result["articles_collected"] == 3
        assert result["articles_selected"] == 3
        assert result["summary"]["sentiment"] == "positive"

        stored = SummaryStore(session_factory).get_latest("AAPL")
        assert [s.summary.summary for s in stored] == ["Apple moved higher on buyback news."]
        assert [a.title for a in stored[0].articles] == [a.title for a in news]
        assert [s["headline"] for s in stored[0].sources] == [a.title for a in news]

        tomorrow = HistoryStore(session_factory, clock=lambda: utc_now() + timedelta(days=1))
        assert [a.title for a in tomorrow.get_history("AAPL")] == [a.title for a in news]

    @pytest.mark.asyncio
    async def test_no_news_short_circuits_to_fallback(self, session_factory, failing_client):
        components = self.build_components(session_factory, FakeCollector([]), failing_client)

        result = await execute_daily_summary_workflow("AAPL", components)

        assert failing_client.calls == 0
        assert result["processing_status"] == "fallback"
        assert result["error_message"] is None
        assert result["summary"]["keyPoints"] == []
        assert SummaryStore(session_factory).get_latest("AAPL")[0].summary.summary.startswith("No recent news available for AAPL")

    @pytest.mark.asyncio
    async def test_generative_outage_still_stores_fallback(self, session_factory, failing_client, news):
        components = self.build_components(session_factory, FakeCollector(news), failing_client)

        result = await execute_daily_summary_workflow("AAPL", components)

        assert result["processing_status"] == "fallback"
        assert result["error_message"] is None
        assert result["summary"]["confidence"] == "low"

    @pytest.mark.asyncio
    async def test_unexpected_node_failure_yields_error_summary(self, session_factory, failing_client):
        collector = FakeCollector(error=RuntimeError("collector crashed"))
        components = self.build_components(session_factory, collector, failing_client)

        result = await execute_daily_summary_workflow("AAPL", components)

        assert result["processing_status"] == "error"
        assert result["error_message"] == "collector crashed"
        assert SummaryStore(session_factory).get_latest("AAPL")[0].summary.processing_status.value == "error"

    @pytest.mark.asyncio
    async def test_all_tickers_run_sequentially_with_delay(self, session_factory, fake_client, news):
        collector = FakeCollector(news)
        components = self.build_components(session_factory, collector, fake_client(SUMMARY_RESPONSE))
        ticker_store = TickerStore(session_factory, default_tickers=["AAPL", "MSFT", "NVDA"])
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        result = await execute_all_tickers_workflow(ticker_store, components, delay_seconds=2, sleep=fake_sleep)

        assert collector.tickers == ["AAPL", "MSFT", "NVDA"]
        assert delays == [2, 2]
        assert result["total_tickers"] == 3
        assert len(result["successful_tickers"]) == 3
        assert result["error_message"] is None

    @pytest.mark.asyncio
    async def test_all_tickers_reports_failures(self, session_factory, failing_client):
        components = self.build_components(session_factory, FakeCollector(error=RuntimeError("down")), failing_client)
        ticker_store = TickerStore(session_factory, default_tickers=["AAPL", "MSFT"])

        async def no_sleep(seconds):
            pass

        result = await execute_all_tickers_workflow(ticker_store, components, sleep=no_sleep)

        assert [f["ticker"] for f in result["failed_tickers"]] == ["AAPL", "MSFT"]
        assert result["error_message"] == "2 tickers failed to summarize"


class TestWorkflowRunHistory:

    def latest_run(self, session_factory):
        with get_db_session(session_factory) as session:
            run = session.query(WorkflowRunHistory).order_by(WorkflowRunHistory.id.desc()).first()
            return run.status, json.loads(run.output_data), run.completed_at

    @pytest.mark.asyncio
    async def test_successful_run_is_recorded(self, session_factory):
        async def workflow():
            return {"ticker": "AAPL", "error_message": None}

        result = await run_workflow_with_history("summarize", {"ticker": "AAPL"}, workflow, session_factory)

        status, output, completed_at = self.latest_run(session_factory)
        assert result == {"ticker": "AAPL", "error_message": None}
        assert status == WorkflowRunStatus.COMPLETED
        assert output["ticker"] == "AAPL"
        assert completed_at is not None

    @pytest.mark.asyncio
    async def test_reported_error_marks_run_failed(self, session_factory):
        async def workflow():
            return {"error_message": "1 tickers failed to summarize"}

        await run_workflow_with_history("summarize-all", {}, workflow, session_factory)

        status, _, _ = self.latest_run(session_factory)
        assert status == WorkflowRunStatus.FAILED

    @pytest.mark.asyncio
    async def test_raised_exception_marks_run_error(self, session_factory):
        async def workflow():
            raise RuntimeError("boom")

        result = await run_workflow_with_history("collect", {"ticker": "AAPL"}, workflow, session_factory)

        status, output, _ = self.latest_run(session_factory)
        assert result == {"error_message": "boom"}
        assert status == WorkflowRunStatus.ERROR
        assert output == {"error_message": "boom"}
