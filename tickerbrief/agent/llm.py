from typing import Any, Optional

from langchain_core.language_models.chat_models import BaseChatModel

from tickerbrief.agent.rate_limiter import RateLimiter, llm_rate_limiter
from tickerbrief.config import get_llm
from tickerbrief.logging_config import create_logger


def message_text(message: Any) -> str:
    """Flatten a chat model response (string or list of content parts) to raw text."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content)


class GenerativeClient:
    """
    Text-completion facade over a LangChain chat model.

    Every call acquires the shared rate limiter first, so all consumers of a
    client (or of clients sharing the limiter) draw from one budget.
    """

    def __init__(self, llm: Optional[BaseChatModel] = None, rate_limiter: Optional[RateLimiter] = None):
        self.llm = llm if llm is not None else get_llm()
        self.rate_limiter = rate_limiter if rate_limiter is not None else llm_rate_limiter
        self.logger = create_logger("GenerativeClient")

    async def complete(self, prompt: str) -> str:
        await self.rate_limiter.aacquire()
        self.logger.debug(f"Sending prompt of {len(prompt)} characters")
        response = await self.llm.ainvoke(prompt)
        text = message_text(response)
        self.logger.debug(f"Received response of {len(text)} characters")
        return text
