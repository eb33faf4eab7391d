from typing import List, Optional, Sequence
import json
import re

from tickerbrief.agent.llm import GenerativeClient
from tickerbrief.agent.prompts import AIPrompt, SystemPrompt
from tickerbrief.config import CONFIG
from tickerbrief.news.model import NewsArticle
from tickerbrief.logging_config import create_logger
from tickerbrief.utils.time import to_iso


INDEX_ARRAY_PATTERN = re.compile(r"\[[\d\s,]+\]")
INTEGER_PATTERN = re.compile(r"\d+")


def parse_selection_indices(text: str) -> List[int]:
    """
    Read the 1-based article numbers out of a selection answer.

    A bracketed array is preferred; otherwise every integer in the text is
    taken in order.
    """
    match = INDEX_ARRAY_PATTERN.search(text)
    if match:
        try:
            return [int(value) for value in json.loads(match.group(0))]
        except ValueError:
            pass
    return [int(value) for value in INTEGER_PATTERN.findall(text)]


def select_by_credibility(articles: Sequence[NewsArticle], count: int) -> List[NewsArticle]:
    """Deterministic selection: most credible source tier first, original order within a tier."""
    return sorted(articles, key=lambda article: article.source.credibility, reverse=True)[:count]


class ArticleSelector:
    """
    Narrows a large article set to the handful worth summarizing.

    Small sets pass through untouched so no generative budget is spent on them.
    """

    def __init__(
        self,
        client: GenerativeClient,
        system_prompt: Optional[SystemPrompt] = None,
        max_articles: Optional[int] = None,
        fallback_count: Optional[int] = None,
    ):
        self.client = client
        self.system_prompt = system_prompt or SystemPrompt()
        self.max_articles = max_articles or CONFIG.SELECTOR_MAX_ARTICLES
        self.fallback_count = fallback_count or CONFIG.SELECTOR_FALLBACK_ARTICLES
        self.logger = create_logger("ArticleSelector")

    def build_prompt(self, articles: Sequence[NewsArticle]) -> str:
        articles_text = "\n".join(
            f"{i}. Title: {article.title}\n"
            f"Source: {article.source.value}\n"
            f"Published: {to_iso(article.published_at)}\n"
            f"Content: {article.content or 'No content available'}\n"
            f"URL: {article.url}\n"
            "---"
            for i, article in enumerate(articles, 1)
        )

        prompt = AIPrompt(self.system_prompt)
        prompt.add_task_prompt(f"""
Select the top 5-{self.max_articles} most relevant and credible articles from the following list for stock market analysis. Consider:

1. Credibility of source (Polygon > Finviz > TradingView for reliability)
2. Recency of publication
3. Content relevance to stock performance
4. Market impact potential
5. Avoid duplicate information

Articles:
{articles_text}

Respond with ONLY a JSON array of the article numbers you selected (e.g., [1, 3, 5, 7, 9]). No explanation needed.
""")
        return prompt.get_prompt()

    async def select(self, articles: Sequence[NewsArticle]) -> List[NewsArticle]:
        articles = list(articles)
        if len(articles) <= self.max_articles:
            return articles

        try:
            self.logger.info(f"Requesting article selection for {len(articles)} articles")
            response = await self.client.complete(self.build_prompt(articles))
            self.logger.debug(f"Article selection response: {response!r}")

            selected: List[NewsArticle] = []
            seen = set()
            for number in parse_selection_indices(response):
                index = number - 1
                if 0 <= index < len(articles) and index not in seen:
                    seen.add(index)
                    selected.append(articles[index])
                if len(selected) >= self.max_articles:
                    break

            if not selected:
                raise ValueError(f"No valid article numbers in selection response: {response[:200]!r}")

            self.logger.info(f"Selected {len(selected)} articles from {len(articles)} total")
            return selected

        except Exception as e:
            self.logger.error(f"Article selection failed, falling back to source credibility ordering: {e}")
            return select_by_credibility(articles, self.fallback_count)
