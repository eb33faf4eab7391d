import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from langgraph.graph import StateGraph, END

from tickerbrief.config import CONFIG
from tickerbrief.logging_config import logger
from tickerbrief.summary.model import ProcessingStatus
from .state import DailySummaryState
from .nodes.daily_summary import (
    DailySummaryComponents,
    collect_news_node,
    select_articles_node,
    load_history_node,
    summarize_node,
    store_summary_node,
)
from ..storage.stores import TickerStore, normalize_ticker


def continue_unless_concluded(next_node: str):
    """Route straight to storage once a node has already settled the outcome."""
    def route(state: DailySummaryState):
        return "store_summary" if state.get("outcome") is not None else next_node
    return route


def create_daily_summary_workflow(components: DailySummaryComponents):
    workflow = StateGraph(DailySummaryState)

    workflow.add_node("collect_news", collect_news_node(components))
    workflow.add_node("select_articles", select_articles_node(components))
    workflow.add_node("load_history", load_history_node(components))
    workflow.add_node("summarize", summarize_node(components))
    workflow.add_node("store_summary", store_summary_node(components))

    workflow.add_conditional_edges("collect_news", continue_unless_concluded("select_articles"), ["select_articles", "store_summary"])
    workflow.add_conditional_edges("select_articles", continue_unless_concluded("load_history"), ["load_history", "store_summary"])
    workflow.add_edge("load_history", "summarize")
    workflow.add_edge("summarize", "store_summary")
    workflow.add_edge("store_summary", END)

    workflow.set_entry_point("collect_news")
    return workflow.compile()


async def execute_daily_summary_workflow(ticker: str, components: Optional[DailySummaryComponents] = None) -> Dict[str, Any]:
    try:
        ticker = normalize_ticker(ticker)
        components = components or DailySummaryComponents.create()

        initial_state: DailySummaryState = {
            "ticker": ticker,
            "articles": [],
            "selected_articles": [],
            "history": [],
            "outcome": None,
            "error_message": None
        }

        result = await create_daily_summary_workflow(components).ainvoke(initial_state)
        outcome = result["outcome"]

        error_message = result["error_message"]
        if error_message is None and outcome.status == ProcessingStatus.ERROR:
            error_message = outcome.summary.error

        return {
            "ticker": ticker,
            "articles_collected": len(result["articles"]),
            "articles_selected": len(result["selected_articles"]),
            "historical_articles_used": len(result["history"]),
            "processing_status": outcome.status.value,
            "summary": outcome.summary.to_dict(),
            "error_message": error_message
        }

    except Exception as e:
        logger.error(f"Daily summary workflow for {ticker} failed: {e}")
        return {
            "ticker": ticker,
            "articles_collected": 0,
            "articles_selected": 0,
            "historical_articles_used": 0,
            "processing_status": ProcessingStatus.ERROR.value,
            "summary": None,
            "error_message": str(e)
        }


async def execute_all_tickers_workflow(
    ticker_store: Optional[TickerStore] = None,
    components: Optional[DailySummaryComponents] = None,
    delay_seconds: Optional[float] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Dict[str, Any]:
    """Summarize every tracked ticker one after another, pausing between tickers."""
    ticker_store = ticker_store or TickerStore()
    delay_seconds = CONFIG.TICKER_BATCH_DELAY_SECONDS if delay_seconds is None else delay_seconds

    response: Dict[str, Any] = {
        "total_tickers": 0,
        "successful_tickers": [],
        "failed_tickers": [],
        "error_message": None
    }

    tickers = ticker_store.get_tickers()
    if not tickers:
        response["error_message"] = "No tickers are being tracked"
        return response

    logger.info(f"Summarizing {len(tickers)} tickers")
    components = components or DailySummaryComponents.create()

    successful: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []

    for i, ticker in enumerate(tickers):
        if i > 0 and delay_seconds > 0:
            await sleep(delay_seconds)

        result = await execute_daily_summary_workflow(ticker, components)
        if result.get("error_message") is None:
            successful.append({"ticker": ticker, "processing_status": result["processing_status"]})
            logger.info(f"✅ Summarized {ticker} ({result['processing_status']})")
        else:
            failed.append({"ticker": ticker, "error": result["error_message"]})
            logger.error(f"❌ Failed to summarize {ticker}: {result['error_message']}")

    response["total_tickers"] = len(tickers)
    response["successful_tickers"] = successful
    response["failed_tickers"] = failed
    response["error_message"] = None if len(failed) == 0 else f"{len(failed)} tickers failed to summarize"

    return response
