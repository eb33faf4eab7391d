from typing import Any, Dict, Optional, Sequence, Union
import json
import re

from pydantic import ValidationError

from tickerbrief.agent.llm import GenerativeClient
from tickerbrief.agent.prompts import AIPrompt, SystemPrompt
from tickerbrief.config import CONFIG
from tickerbrief.news.model import NewsArticle
from tickerbrief.summary.model import (
    MAX_ARTICLES_ANALYZED,
    Confidence,
    MarketImpact,
    ProcessingStatus,
    Sentiment,
    Summary,
    SummaryOutcome,
)
from tickerbrief.summary.recovery import extract_from_prose, recover_fields
from tickerbrief.logging_config import create_logger


HistoryItem = Union[NewsArticle, Summary]

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)

# Neutral values for fields a recovered response did not contain
RECOVERY_DEFAULTS: Dict[str, Any] = {
    "summary": "Analysis in progress - partial data received.",
    "whatChangedToday": "Recent developments are being analyzed. Please refresh for complete analysis.",
    "keyPoints": [],
    "sentiment": Sentiment.NEUTRAL.value,
    "sentimentReasoning": "Partial analysis - full response was truncated.",
    "marketImplications": "Market analysis available but truncated.",
    "marketImpact": MarketImpact.MEDIUM.value,
}

REQUIRED_FIELDS = ["summary", "keyPoints", "sentiment", "marketImpact", "whatChangedToday"]

# Fields the model is asked for; everything else comes from the request
CONTENT_FIELDS = REQUIRED_FIELDS + ["sentimentReasoning", "marketImplications", "confidence"]


class SummaryParseError(Exception):
    """Raised when a model response is not a well-formed summary JSON object."""
    pass


def parse_summary_json(text: str) -> Dict[str, Any]:
    """Strip code fences, slice from the first '{' to the last '}' and decode."""
    cleaned = CODE_FENCE_PATTERN.sub("", text).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise SummaryParseError("No JSON object found in response")

    try:
        parsed = json.loads(cleaned[start:end + 1])
    except ValueError as e:
        raise SummaryParseError(f"Invalid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise SummaryParseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class SummaryGenerator:
    """
    Produces the structured daily summary for a ticker.

    Always returns a SummaryOutcome: COMPLETE when the response parses,
    RECOVERED when fields had to be salvaged, FALLBACK when no model output
    is usable, ERROR when even the fallback cannot be built.
    """

    def __init__(
        self,
        client: GenerativeClient,
        system_prompt: Optional[SystemPrompt] = None,
        max_articles: Optional[int] = None,
        max_history_items: Optional[int] = None,
        content_chars: Optional[int] = None,
    ):
        self.client = client
        self.system_prompt = system_prompt or SystemPrompt()
        self.max_articles = min(max_articles or CONFIG.SUMMARY_MAX_ARTICLES, MAX_ARTICLES_ANALYZED)
        self.max_history_items = max_history_items or CONFIG.SUMMARY_MAX_HISTORY_ITEMS
        self.content_chars = content_chars or CONFIG.SUMMARY_ARTICLE_CONTENT_CHARS
        self.logger = create_logger("SummaryGenerator")

    # Prompt

    def _render_history(self, history: Sequence[HistoryItem]) -> str:
        lines = []
        for i, item in enumerate(history[:self.max_history_items], 1):
            if isinstance(item, Summary):
                lines.append(
                    f"{i}. {item.last_updated.date().isoformat()} [{item.sentiment.value}]: {item.summary[:300]}"
                )
            else:
                lines.append(f"{i}. \"{item.title}\" ({item.published_at.date().isoformat()})")
        return "\n".join(lines)

    def build_prompt(self, ticker: str, articles: Sequence[NewsArticle], history: Sequence[HistoryItem]) -> str:
        today_text = "\n\n".join(
            f"{i}. \"{article.title}\"\n"
            f"   Source: {article.source.value}{f' ({article.provider})' if article.provider else ''}\n"
            f"   Published: {article.published_at.date().isoformat()}\n"
            f"   Content: {(article.content or article.title)[:self.content_chars]}..."
            for i, article in enumerate(articles, 1)
        )

        historical_context = ""
        if history:
            historical_context = (
                "\n\nFOR COMPARISON - Historical News (Past 7 days):\n"
                f"{self._render_history(history)}\n"
                "Use this history to explain what is NEW today rather than restating older developments."
            )

        prompt = AIPrompt(self.system_prompt)
        prompt.add_task_prompt(f"""
Analyze today's news about {ticker}.

TODAY'S NEWS:
{today_text}{historical_context}

Provide comprehensive analysis in exactly this JSON format:

{{
  "summary": "Detailed 3-4 paragraph daily summary covering all key developments and their implications",
  "keyPoints": ["Point 1", "Point 2", "Point 3", "Point 4", "Point 5"],
  "sentiment": "positive/negative/neutral/mixed",
  "sentimentReasoning": "Brief explanation",
  "whatChangedToday": "Comprehensive analysis of new developments and changes compared with the previous days",
  "marketImplications": "Detailed potential stock impact assessment",
  "marketImpact": "high/medium/low/minimal",
  "confidence": "high/medium/low"
}}

IMPORTANT:
- Provide complete, comprehensive analysis
- Return ONLY valid JSON with no truncation
- No markdown formatting, just the JSON object
- Ensure all JSON fields are properly closed
""")
        return prompt.get_prompt()

    # Outcomes

    def _metadata(self, ticker: str, analyzed: int, total: int, history: Sequence[HistoryItem]) -> Dict[str, Any]:
        return {
            "ticker": ticker,
            "articlesAnalyzed": min(analyzed, MAX_ARTICLES_ANALYZED),
            "totalArticles": total,
            "historicalArticlesUsed": len(history),
        }

    def no_news_outcome(self, ticker: str) -> SummaryOutcome:
        summary = Summary(
            ticker=ticker,
            summary=f"No recent news available for {ticker}. Please check back later for the latest updates.",
            whatChangedToday="No recent news to analyze changes.",
            keyPoints=[],
            sentiment=Sentiment.NEUTRAL,
            marketImpact=MarketImpact.MINIMAL,
            confidence=Confidence.LOW,
            articlesAnalyzed=0,
            processingStatus=ProcessingStatus.FALLBACK,
        )
        return SummaryOutcome(ProcessingStatus.FALLBACK, summary, ["No articles supplied"])

    def fallback_outcome(self, ticker: str, articles: Sequence[NewsArticle], history: Sequence[HistoryItem], reason: str) -> SummaryOutcome:
        """Deterministic summary built from raw titles and source names only."""
        recent_titles = [article.title for article in articles[:3]]
        sources = sorted({article.provider or article.source.value for article in articles})
        summary = Summary(
            summary=(
                f"Analysis of {len(articles)} recent articles about {ticker}. "
                f"Recent developments include: {'; '.join(recent_titles)}. "
                f"Sources: {', '.join(sources)}. For detailed analysis, please check individual sources."
            ),
            whatChangedToday="Unable to analyze changes due to processing error.",
            keyPoints=recent_titles,
            sentiment=Sentiment.NEUTRAL,
            marketImplications="Analysis temporarily unavailable.",
            marketImpact=MarketImpact.LOW,
            confidence=Confidence.LOW,
            processingStatus=ProcessingStatus.FALLBACK,
            error=reason,
            **self._metadata(ticker, len(articles), len(articles), history),
        )
        return SummaryOutcome(ProcessingStatus.FALLBACK, summary, [reason])

    def error_outcome(self, ticker: str, error: Exception) -> SummaryOutcome:
        summary = Summary(
            ticker=str(ticker),
            summary=f"Summary unavailable for {ticker} due to an internal error.",
            whatChangedToday="Unable to analyze changes.",
            keyPoints=[],
            sentiment=Sentiment.NEUTRAL,
            marketImpact=MarketImpact.MINIMAL,
            confidence=Confidence.LOW,
            processingStatus=ProcessingStatus.ERROR,
            error=str(error),
        )
        return SummaryOutcome(ProcessingStatus.ERROR, summary, [str(error)])

    def recovered_outcome(self, text: str, metadata: Dict[str, Any], parse_error: Exception) -> SummaryOutcome:
        fields = recover_fields(text)
        reasons = [f"Response was not valid JSON: {parse_error}"]

        if not fields:
            fields = extract_from_prose(text)
            reasons.append("No JSON fields found; extracted from prose")

        missing = [name for name in REQUIRED_FIELDS if name not in fields]
        if missing:
            reasons.append(f"Defaulted fields: {', '.join(missing)}")

        summary = Summary.model_validate({
            **RECOVERY_DEFAULTS,
            **fields,
            **metadata,
            "confidence": Confidence.LOW,
            "recovered": True,
            "processingStatus": ProcessingStatus.RECOVERED,
        })
        return SummaryOutcome(ProcessingStatus.RECOVERED, summary, reasons)

    def parse_response(self, text: str, metadata: Dict[str, Any]) -> SummaryOutcome:
        ticker = metadata["ticker"]
        try:
            parsed = parse_summary_json(text)
            summary = Summary.model_validate({
                **RECOVERY_DEFAULTS,
                **{key: parsed[key] for key in CONTENT_FIELDS if parsed.get(key) is not None},
                **metadata,
                "recovered": False,
                "processingStatus": ProcessingStatus.COMPLETE,
            })
            self.logger.info(f"Successfully parsed JSON response for {ticker}")
            return SummaryOutcome(ProcessingStatus.COMPLETE, summary)
        except (SummaryParseError, ValidationError) as e:
            self.logger.warning(f"JSON parsing failed for {ticker}, attempting field recovery: {e}")
            return self.recovered_outcome(text, metadata, e)

    # Entry point

    async def generate(
        self,
        ticker: str,
        articles: Sequence[NewsArticle],
        history: Optional[Sequence[HistoryItem]] = None,
    ) -> SummaryOutcome:
        try:
            if articles is None:
                articles = []
            if isinstance(articles, (str, bytes)) or not all(isinstance(article, NewsArticle) for article in articles):
                raise ValueError("Malformed article list")

            articles = list(articles)
            history = [item for item in (history or []) if isinstance(item, (NewsArticle, Summary))]

            if not articles:
                return self.no_news_outcome(ticker)

            to_analyze = articles[:self.max_articles]
            metadata = self._metadata(ticker, len(to_analyze), len(articles), history)

            try:
                self.logger.info(f"Requesting summary for {ticker}: {len(to_analyze)} articles, {len(history)} historical items")
                text = await self.client.complete(self.build_prompt(ticker, to_analyze, history))
            except Exception as e:
                self.logger.error(f"Generative call failed for {ticker}: {e}")
                return self.fallback_outcome(ticker, articles, history, f"Generative call failed: {e}")

            if not text or not text.strip():
                self.logger.error(f"Empty response from generative service for {ticker}")
                return self.fallback_outcome(ticker, articles, history, "Empty response from generative service")

            return self.parse_response(text, metadata)

        except Exception as e:
            self.logger.error(f"Unable to produce any summary for {ticker}: {e}")
            return self.error_outcome(ticker, e)
