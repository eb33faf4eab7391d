import asyncio
import json
import sys
import argparse

from tickerbrief.news.collector import NewsCollector
from tickerbrief_exec.controller import run_workflow_with_history
from .workflows.daily_summary import execute_daily_summary_workflow, execute_all_tickers_workflow
from .storage.stores import TickerStore, SummaryStore


def setup_argparser():
    """Set up command line argument parser."""
    parser = argparse.ArgumentParser(description="TickerBrief CLI for daily ticker news summaries")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_ticker_parser = subparsers.add_parser("add-ticker", help="Start tracking a ticker")
    add_ticker_parser.add_argument("--ticker", required=True, help="Ticker symbol to add")

    remove_ticker_parser = subparsers.add_parser("remove-ticker", help="Stop tracking a ticker")
    remove_ticker_parser.add_argument("--ticker", required=True, help="Ticker symbol to remove")

    subparsers.add_parser("list-tickers", help="List tracked tickers")

    collect_parser = subparsers.add_parser("collect", help="Collect current news for a ticker and print it")
    collect_parser.add_argument("--ticker", required=True, help="Ticker symbol")

    summarize_parser = subparsers.add_parser("summarize", help="Run the daily summary workflow for a ticker")
    summarize_parser.add_argument("--ticker", required=True, help="Ticker symbol")

    subparsers.add_parser("summarize-all", help="Run the daily summary workflow for every tracked ticker")

    show_summaries_parser = subparsers.add_parser("show-summaries", help="Show the latest stored summaries for a ticker")
    show_summaries_parser.add_argument("--ticker", required=True, help="Ticker symbol")
    show_summaries_parser.add_argument("--n", type=int, default=1, help="Number of summaries to show")

    subparsers.add_parser("show-latest", help="Show the most recent stored summary for every ticker")

    return parser


async def add_ticker(ticker: str) -> dict:
    try:
        added = TickerStore().add_ticker(ticker)
        if not added:
            return {"ticker": ticker.upper(), "error_message": f"Ticker '{ticker.upper()}' is already tracked"}
        return {"ticker": ticker.upper(), "message": f"Ticker '{ticker.upper()}' added", "error_message": None}
    except Exception as e:
        return {"ticker": ticker, "error_message": f"Failed to add ticker: {str(e)}"}


async def remove_ticker(ticker: str) -> dict:
    try:
        removed = TickerStore().remove_ticker(ticker)
        if not removed:
            return {"ticker": ticker.upper(), "error_message": f"Ticker '{ticker.upper()}' is not tracked"}
        return {"ticker": ticker.upper(), "message": f"Ticker '{ticker.upper()}' removed", "error_message": None}
    except Exception as e:
        return {"ticker": ticker, "error_message": f"Failed to remove ticker: {str(e)}"}


async def list_tickers() -> dict:
    tickers = TickerStore().get_tickers()
    print("\n".join(tickers))
    return {"tickers": tickers, "error_message": None}


async def collect(ticker: str) -> dict:
    articles = await NewsCollector().collect_news(ticker.upper())
    print(json.dumps([article.to_dict() for article in articles], indent=2))
    return {"ticker": ticker.upper(), "articles_collected": len(articles), "error_message": None}


async def show_summaries(ticker: str, n: int) -> dict:
    stored = SummaryStore().get_latest(ticker, n)
    if not stored:
        return {"ticker": ticker.upper(), "error_message": f"No summaries stored for '{ticker.upper()}'"}

    print(json.dumps([entry.to_dict() for entry in stored], indent=2))
    return {"ticker": ticker.upper(), "summaries": len(stored), "error_message": None}


async def show_latest() -> dict:
    latest = SummaryStore().get_all_latest()
    if not latest:
        return {"error_message": "No summaries stored yet"}

    print(json.dumps({ticker: entry.to_dict() for ticker, entry in latest.items()}, indent=2))
    return {"tickers": list(latest), "error_message": None}


def main():
    """Main CLI entry point."""
    parser = setup_argparser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "add-ticker":
        workflow_func = lambda: add_ticker(args.ticker)
        input_data = {"ticker": args.ticker}

    elif args.command == "remove-ticker":
        workflow_func = lambda: remove_ticker(args.ticker)
        input_data = {"ticker": args.ticker}

    elif args.command == "list-tickers":
        workflow_func = lambda: list_tickers()
        input_data = {}

    elif args.command == "collect":
        workflow_func = lambda: collect(args.ticker)
        input_data = {"ticker": args.ticker}

    elif args.command == "summarize":
        workflow_func = lambda: execute_daily_summary_workflow(args.ticker)
        input_data = {"ticker": args.ticker}

    elif args.command == "summarize-all":
        workflow_func = lambda: execute_all_tickers_workflow()
        input_data = {}

    elif args.command == "show-summaries":
        workflow_func = lambda: show_summaries(args.ticker, args.n)
        input_data = {"ticker": args.ticker, "n": args.n}

    elif args.command == "show-latest":
        workflow_func = lambda: show_latest()
        input_data = {}

    else:
        parser.print_help()
        sys.exit(1)

    result = asyncio.run(run_workflow_with_history(
        command_name=args.command,
        input_data=input_data,
        workflow_func=workflow_func,
    ))

    if result and result.get("error_message"):
        sys.exit(1)


if __name__ == "__main__":
    main()
