from typing import List, Optional
import os
import langchain_openai
import langchain_anthropic
import langchain_google_genai
import langchain_ollama
from langchain_core.rate_limiters import BaseRateLimiter
from dotenv import load_dotenv

load_dotenv()


class Config:
    """configuration class for environment variable"""

    # Logging
    @property
    def LOG_LEVEL(self) -> str:
        return os.getenv('LOG_LEVEL', 'info')

    # LLM Settings
    @property
    def MODEL_NAME(self) -> str:
        return os.getenv('MODEL_NAME', 'gemini-2.5-flash')

    @property
    def OPENAI_API_KEY(self) -> Optional[str]:
        return os.getenv('OPENAI_API_KEY')

    @property
    def ANTHROPIC_API_KEY(self) -> Optional[str]:
        return os.getenv('ANTHROPIC_API_KEY')

    @property
    def GEMINI_API_KEY(self) -> Optional[str]:
        return os.getenv('GEMINI_API_KEY')

    @property
    def OLLAMA_BASE_URL(self) -> str:
        return os.getenv('OLLAMA_BASE_URL', 'http://localhost:11434')

    @property
    def LLM_MAX_REQUESTS_PER_MINUTE(self) -> int:
        return int(os.getenv('LLM_MAX_REQUESTS_PER_MINUTE', '15'))

    @property
    def LLM_RATE_WINDOW_SECONDS(self) -> float:
        return float(os.getenv('LLM_RATE_WINDOW_SECONDS', '60'))

    # News Collection Settings
    @property
    def POLYGON_API_KEY(self) -> Optional[str]:
        return os.getenv('POLYGON_API_KEY')

    @property
    def NEWS_CACHE_TTL_SECONDS(self) -> float:
        return float(os.getenv('NEWS_CACHE_TTL_SECONDS', '300'))

    # Article Selection / Summary Settings
    @property
    def SELECTOR_MAX_ARTICLES(self) -> int:
        return int(os.getenv('SELECTOR_MAX_ARTICLES', '7'))

    @property
    def SELECTOR_FALLBACK_ARTICLES(self) -> int:
        return int(os.getenv('SELECTOR_FALLBACK_ARTICLES', '6'))

    @property
    def SUMMARY_MAX_ARTICLES(self) -> int:
        return int(os.getenv('SUMMARY_MAX_ARTICLES', '25'))

    @property
    def SUMMARY_MAX_HISTORY_ITEMS(self) -> int:
        return int(os.getenv('SUMMARY_MAX_HISTORY_ITEMS', '15'))

    @property
    def SUMMARY_ARTICLE_CONTENT_CHARS(self) -> int:
        return int(os.getenv('SUMMARY_ARTICLE_CONTENT_CHARS', '200'))

    # Storage / Scheduling Settings
    @property
    def DATABASE_URL(self) -> str:
        return os.getenv('DATABASE_URL', 'sqlite:///tickerbrief.db')

    @property
    def HISTORY_RETENTION_DAYS(self) -> int:
        return int(os.getenv('HISTORY_RETENTION_DAYS', '7'))

    @property
    def SUMMARY_RETENTION_COUNT(self) -> int:
        return int(os.getenv('SUMMARY_RETENTION_COUNT', '7'))

    @property
    def TICKER_BATCH_DELAY_SECONDS(self) -> float:
        return float(os.getenv('TICKER_BATCH_DELAY_SECONDS', '2'))

    @property
    def DEFAULT_TICKERS(self) -> List[str]:
        raw = os.getenv('DEFAULT_TICKERS', 'AAPL,MSFT,GOOGL,AMZN,TSLA,META,NVDA')
        return [ticker.strip().upper() for ticker in raw.split(',') if ticker.strip()]


CONFIG = Config()


def get_llm(model_name: Optional[str] = None, temperature: float = 0.7, rate_limiter: Optional[BaseRateLimiter] = None):
    """Get the language model based on config."""

    model_name = model_name or CONFIG.MODEL_NAME or "gemini-2.5-flash"

    # Set environment variables if they're in the config but not in the environment
    if CONFIG.OPENAI_API_KEY:
        os.environ['OPENAI_API_KEY'] = CONFIG.OPENAI_API_KEY
    if CONFIG.ANTHROPIC_API_KEY:
        os.environ['ANTHROPIC_API_KEY'] = CONFIG.ANTHROPIC_API_KEY
    if CONFIG.GEMINI_API_KEY:
        os.environ['GOOGLE_API_KEY'] = CONFIG.GEMINI_API_KEY

    if model_name.startswith('gpt'):
        if not CONFIG.OPENAI_API_KEY:
            raise ValueError('OpenAI API key not found. Please set OPENAI_API_KEY environment variable.')
        return langchain_openai.ChatOpenAI(
            model=model_name, temperature=temperature, top_p=0.95, max_tokens=8192, rate_limiter=rate_limiter
        )
    elif model_name.startswith('claude'):
        if not CONFIG.ANTHROPIC_API_KEY:
            raise ValueError('Anthropic API key not found. Please set ANTHROPIC_API_KEY environment variable.')
        return langchain_anthropic.ChatAnthropic(
            model_name=model_name, temperature=temperature, max_tokens=8192, timeout=30, stop=None, rate_limiter=rate_limiter
        )
    elif model_name.startswith('gemini'):
        if not CONFIG.GEMINI_API_KEY:
            raise ValueError('Google API key not found. Please set GEMINI_API_KEY environment variable.')
        return langchain_google_genai.ChatGoogleGenerativeAI(
            model=model_name,
            temperature=temperature,
            top_k=40,
            top_p=0.95,
            max_output_tokens=8192,
            rate_limiter=rate_limiter,
        )
    elif model_name.startswith('ollama-'):
        # Support for Ollama models with ollama- prefix
        actual_model_name = model_name[7:]
        return langchain_ollama.ChatOllama(
            model=actual_model_name,
            temperature=temperature,
            top_k=40,
            top_p=0.95,
            num_predict=8192,
            base_url=CONFIG.OLLAMA_BASE_URL,
            rate_limiter=rate_limiter
        )
    else:
        raise ValueError(f"Unsupported model: {model_name}.")


__all__ = ["CONFIG", "get_llm"]
