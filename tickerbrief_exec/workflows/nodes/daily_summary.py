from dataclasses import dataclass
from typing import Optional

from tickerbrief.agent.llm import GenerativeClient
from tickerbrief.news.collector import NewsCollector
from tickerbrief.summary.generator import SummaryGenerator
from tickerbrief.summary.model import MAX_ARTICLES_ANALYZED
from tickerbrief.summary.selector import ArticleSelector
from tickerbrief.logging_config import logger

from ..state import DailySummaryState
from ...storage.stores import HistoryStore, SummaryStore


@dataclass
class DailySummaryComponents:
    """Collaborators the daily summary nodes run against."""
    collector: NewsCollector
    selector: ArticleSelector
    generator: SummaryGenerator
    summary_store: SummaryStore
    history_store: HistoryStore

    @classmethod
    def create(cls, client: Optional[GenerativeClient] = None) -> "DailySummaryComponents":
        # Selector and generator share one client, and through it one rate limiter
        client = client or GenerativeClient()
        return cls(
            collector=NewsCollector(),
            selector=ArticleSelector(client),
            generator=SummaryGenerator(client),
            summary_store=SummaryStore(),
            history_store=HistoryStore(),
        )


def collect_news_node(components: DailySummaryComponents):
    async def node(state: DailySummaryState):
        ticker = state["ticker"]
        try:
            articles = await components.collector.collect_news(ticker)
            logger.info(f"Collected {len(articles)} articles for {ticker}")

            if not articles:
                return {"articles": [], "outcome": components.generator.no_news_outcome(ticker)}
            return {"articles": articles}

        except Exception as e:
            logger.error(f"Collecting news for {ticker} failed: {e}")
            return {"outcome": components.generator.error_outcome(ticker, e), "error_message": str(e)}

    return node


def select_articles_node(components: DailySummaryComponents):
    async def node(state: DailySummaryState):
        ticker = state["ticker"]
        try:
            selected = await components.selector.select(state["articles"])
            logger.info(f"Selected {len(selected)} of {len(state['articles'])} articles for {ticker}")
            return {"selected_articles": selected}

        except Exception as e:
            logger.error(f"Selecting articles for {ticker} failed: {e}")
            return {"outcome": components.generator.error_outcome(ticker, e), "error_message": str(e)}

    return node


def load_history_node(components: DailySummaryComponents):
    async def node(state: DailySummaryState):
        ticker = state["ticker"]
        try:
            history = components.history_store.get_history(ticker)
            logger.info(f"Loaded {len(history)} historical articles for {ticker}")
            return {"history": history}

        except Exception as e:
            # Summaries can still be produced without the comparison window
            logger.warning(f"Loading history for {ticker} failed, continuing without it: {e}")
            return {"history": []}

    return node


def summarize_node(components: DailySummaryComponents):
    async def node(state: DailySummaryState):
        ticker = state["ticker"]
        try:
            outcome = await components.generator.generate(ticker, state["selected_articles"], state["history"])
            logger.info(f"Summary for {ticker} finished with status {outcome.status.value}")
            for reason in outcome.reasons:
                logger.warning(f"{ticker}: {reason}")
            return {"outcome": outcome}

        except Exception as e:
            logger.error(f"Summarizing {ticker} failed: {e}")
            return {"outcome": components.generator.error_outcome(ticker, e), "error_message": str(e)}

    return node


def store_summary_node(components: DailySummaryComponents):
    async def node(state: DailySummaryState):
        ticker = state["ticker"]
        outcome = state["outcome"]
        if outcome is None:
            outcome = components.generator.error_outcome(ticker, ValueError("No summary was produced"))

        try:
            analyzed = state["selected_articles"][:MAX_ARTICLES_ANALYZED]
            components.summary_store.store(ticker, outcome.summary, analyzed)
            if state["articles"]:
                components.history_store.append_history(ticker, state["articles"])
            return {"outcome": outcome}

        except Exception as e:
            logger.error(f"Storing summary for {ticker} failed: {e}")
            return {"outcome": outcome, "error_message": f"Failed to store summary: {e}"}

    return node
