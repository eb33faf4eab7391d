import pytest
from datetime import datetime, timezone

from pydantic import ValidationError

from tickerbrief.news.model import NewsSourceType
from tickerbrief.news.source import NewsSourceRegistry
from tickerbrief.news.source.http import SourceUnavailableError
from tickerbrief.news.source.strategy import ScrapedPage
from tickerbrief.news.source.api import polygon
from tickerbrief.news.source.api.polygon import (
    PolygonNewsParam,
    build_polygon_query,
    parse_polygon_response,
)
from tickerbrief.news.source.web import finviz, tradingview
from tickerbrief.news.source.web.finviz import extract_finviz_articles, parse_finviz_timestamp
from tickerbrief.news.source.web.tradingview import extract_tradingview_articles, get_tradingview_news_url


TRADINGVIEW_TABLE_HTML = """
<html><body>
  <nav><a href="/chart/">Chart</a> <a href="/signin/">Sign in</a></nav>
  <table>
    <tr><td>5 minutes ago</td><td>AAPL</td><td><a href="/news/reuters:123-apple-revenue/">Apple reports record quarterly revenue on iPhone demand</a></td><td>Reuters</td></tr>
    <tr><td>2 hours ago</td><td>AAPL</td><td><a href="/news/mt:456/">Analyst lifts price target ahead of results</a></td><td>MarketWatch</td></tr>
    <tr><td>Oct 1</td><td>AAPL</td><td><a href="/news/old:789/">This row carries no relative time marker</a></td><td>Other</td></tr>
  </table>
</body></html>
"""

TRADINGVIEW_CONTAINER_HTML = """
<html><body>
  <div class="news-item">
    <a href="/news/abc/">Tesla announces new factory expansion in Texas</a>
    <span class="time">3 hours ago</span>
  </div>
  <div class="news-item"><a href="/news/short/">Short</a></div>
</body></html>
"""

TRADINGVIEW_TEXT_ONLY_HTML = "<html><body><p>Microsoft reports strong cloud revenue growth this quarter</p></body></html>"

FINVIZ_HTML = """
<html><body>
<table id="news-table">
  <tr>
    <td width="130" align="right">Oct-17-25 08:30AM</td>
    <td align="left">
      <div class="news-link-container">
        <div class="news-link-left"><a class="tab-link-news" href="https://finance.yahoo.com/news/nvidia-1.html">Nvidia earnings preview: what analysts expect</a></div>
        <div class="news-link-right"><span>(Yahoo Finance)</span></div>
      </div>
    </td>
  </tr>
  <tr>
    <td align="right">07:15AM</td>
    <td align="left">
      <div class="news-link-left"><a class="tab-link-news" href="/news/123">NVDA shares climb in premarket trading session</a></div>
      <div class="news-link-right"><span>(Reuters)</span></div>
    </td>
  </tr>
  <tr>
    <td align="right">Oct-16-25 05:00PM</td>
    <td align="left"><a class="tab-link-news" href="https://example.com/n3">Short</a></td>
  </tr>
</table>
</body></html>
"""

FINVIZ_FALLBACK_HTML = """
<html><body>
  <div class="news"><a class="tab-link-news" href="/news/9">Nvidia announces new AI accelerators for data centers</a></div>
</body></html>
"""

POLYGON_PAYLOAD = {
    "status": "OK",
    "count": 3,
    "results": [
        {
            "id": "abc",
            "title": "Apple announces record buyback",
            "article_url": "https://www.benzinga.com/news/1",
            "published_utc": "2025-10-17T12:00:00Z",
            "description": "Apple said it will repurchase shares.",
            "publisher": {"name": "Benzinga", "homepage_url": "https://www.benzinga.com/"},
            "tickers": ["AAPL"],
        },
        {"title": "Result without a url"},
        {
            "title": "AAPL options activity picks up",
            "article_url": "https://example.com/2",
        },
    ],
}


class TestTradingView:

    def test_table_rows_with_relative_time(self):
        articles = extract_tradingview_articles(TRADINGVIEW_TABLE_HTML, "aapl")

        assert [a.title for a in articles] == [
            "Apple reports record quarterly revenue on iPhone demand",
            "Analyst lifts price target ahead of results",
        ]
        first, second = articles
        assert first.source == NewsSourceType.TRADINGVIEW
        assert first.provider == "Reuters"
        assert first.url == "https://in.tradingview.com/news/reuters:123-apple-revenue/"
        assert first.time_ago == "5 minutes ago"
        assert first.published_at > second.published_at

    def test_news_item_containers(self):
        articles = extract_tradingview_articles(TRADINGVIEW_CONTAINER_HTML, "TSLA")

        assert len(articles) == 1
        assert articles[0].title == "Tesla announces new factory expansion in Texas"
        assert articles[0].time_ago == "3 hours ago"
        assert articles[0].url == "https://in.tradingview.com/news/abc/"

    def test_text_pattern_fallback(self):
        articles = extract_tradingview_articles(TRADINGVIEW_TEXT_ONLY_HTML, "MSFT")

        assert len(articles) == 1
        assert articles[0].title == "Microsoft reports strong cloud revenue growth this quarter"
        assert articles[0].url == get_tradingview_news_url("MSFT")

    def test_text_pattern_reads_each_headline_separately(self):
        html = (
            "<html><body><div>"
            "<p>Microsoft reports cloud revenue jump</p>"
            "<p>Analyst upgrades Microsoft on AI demand</p>"
            "</div></body></html>"
        )

        articles = extract_tradingview_articles(html, "MSFT")

        assert [a.title for a in articles] == [
            "Microsoft reports cloud revenue jump",
            "Analyst upgrades Microsoft on AI demand",
        ]

    def test_navigation_only_page_yields_nothing(self):
        html = "<html><body><p>Sign in to see the full Microsoft earnings chart</p></body></html>"
        assert extract_tradingview_articles(html, "MSFT") == []

    @pytest.mark.asyncio
    async def test_non_200_status_yields_empty(self, monkeypatch):
        async def fake_fetch_text(url, headers=None, params=None, timeout=15.0):
            return 403, "<html>blocked</html>"

        monkeypatch.setattr(tradingview, "fetch_text", fake_fetch_text)
        assert await tradingview.tradingview_news("AAPL") == []

    @pytest.mark.asyncio
    async def test_unavailable_source_is_isolated_by_registry(self, monkeypatch):
        async def fake_fetch_text(url, headers=None, params=None, timeout=15.0):
            raise SourceUnavailableError("Timed out")

        monkeypatch.setattr(tradingview, "fetch_text", fake_fetch_text)
        assert await NewsSourceRegistry.retrieve_news_articles_from_source(NewsSourceType.TRADINGVIEW, "AAPL") == []


class TestFinviz:

    def test_news_table_carries_date_forward(self, now):
        articles = extract_finviz_articles(FINVIZ_HTML, "NVDA", now=now)

        assert [a.title for a in articles] == [
            "Nvidia earnings preview: what analysts expect",
            "NVDA shares climb in premarket trading session",
        ]
        assert articles[0].published_at == datetime(2025, 10, 17, 12, 30, tzinfo=timezone.utc)
        assert articles[1].published_at == datetime(2025, 10, 17, 11, 15, tzinfo=timezone.utc)
        assert articles[0].provider == "Yahoo Finance"
        assert articles[1].provider == "Reuters"
        assert articles[1].url == "https://finviz.com/news/123"
        assert all(a.source == NewsSourceType.FINVIZ for a in articles)

    def test_headline_link_fallback(self, now):
        articles = extract_finviz_articles(FINVIZ_FALLBACK_HTML, "NVDA", now=now)

        assert len(articles) == 1
        assert articles[0].url == "https://finviz.com/news/9"

    def test_timestamp_forms(self, now):
        published, day = parse_finviz_timestamp("Today 09:15AM", None, now)
        assert published == datetime(2025, 10, 17, 13, 15, tzinfo=timezone.utc)

        published, carried = parse_finviz_timestamp("10:00PM", day, now)
        assert published == datetime(2025, 10, 18, 2, 0, tzinfo=timezone.utc)
        assert carried == day

    def test_unparseable_timestamp_defaults_to_now(self, now):
        published, day = parse_finviz_timestamp("n/a", None, now)
        assert published == now
        assert day is None

    @pytest.mark.asyncio
    async def test_non_200_status_yields_empty(self, monkeypatch):
        async def fake_fetch_text(url, headers=None, params=None, timeout=10.0):
            return 404, ""

        monkeypatch.setattr(finviz, "fetch_text", fake_fetch_text)
        assert await finviz.finviz_news("NVDA") == []


class TestPolygon:

    def test_parse_response_maps_native_schema(self, now):
        articles = parse_polygon_response(POLYGON_PAYLOAD, now=now)

        assert len(articles) == 2
        first, second = articles
        assert first.provider == "Benzinga"
        assert first.content == "Apple said it will repurchase shares."
        assert first.published_at == datetime(2025, 10, 17, 12, 0, tzinfo=timezone.utc)
        assert second.provider == "Polygon"
        assert second.content == second.title
        assert second.published_at == now
        assert all(a.source == NewsSourceType.POLYGON for a in articles)

    @pytest.mark.parametrize("payload", [None, "error", {"status": "ERROR"}, {"results": "nope"}])
    def test_parse_response_tolerates_garbage(self, payload):
        assert parse_polygon_response(payload) == []

    def test_query_supports_server_side_filters(self):
        query = build_polygon_query(
            "aapl",
            PolygonNewsParam(limit=5, order="asc", published_utc_gte="2025-10-10"),
            "test-key",
        )

        assert query == {
            "ticker": "AAPL",
            "limit": 5,
            "order": "asc",
            "sort": "published_utc",
            "apiKey": "test-key",
            "published_utc.gte": "2025-10-10",
        }

    def test_param_limits(self):
        with pytest.raises(ValidationError):
            PolygonNewsParam(limit=0)
        with pytest.raises(ValidationError):
            PolygonNewsParam(order="sideways")

    @pytest.mark.asyncio
    async def test_missing_api_key_skips_request(self, monkeypatch):
        async def fake_fetch_json(*args, **kwargs):
            raise AssertionError("request must not be issued without an API key")

        monkeypatch.delenv("POLYGON_API_KEY", raising=False)
        monkeypatch.setattr(polygon, "fetch_json", fake_fetch_json)
        assert await polygon.polygon_news("AAPL") == []

    @pytest.mark.asyncio
    async def test_auth_rejection_is_unavailable_not_a_crash(self, monkeypatch):
        async def fake_fetch_json(url, headers=None, params=None, timeout=10.0):
            return 401, {"status": "ERROR", "error": "Unknown API Key"}

        monkeypatch.setenv("POLYGON_API_KEY", "bad-key")
        monkeypatch.setattr(polygon, "fetch_json", fake_fetch_json)
        assert await polygon.polygon_news("AAPL") == []

    @pytest.mark.asyncio
    async def test_success_sends_key_and_filters(self, monkeypatch):
        captured = {}

        async def fake_fetch_json(url, headers=None, params=None, timeout=10.0):
            captured["params"] = params
            captured["timeout"] = timeout
            return 200, POLYGON_PAYLOAD

        monkeypatch.setenv("POLYGON_API_KEY", "test-key")
        monkeypatch.setattr(polygon, "fetch_json", fake_fetch_json)

        articles = await polygon.polygon_news("AAPL", PolygonNewsParam(limit=3))

        assert len(articles) == 2
        assert captured["params"]["apiKey"] == "test-key"
        assert captured["params"]["limit"] == 3
        assert captured["timeout"] == 10.0


class TestScrapedPage:

    @pytest.fixture
    def page(self, now):
        return ScrapedPage.from_html("<html></html>", "https://finviz.com/quote.ashx?t=AAPL", "aapl", NewsSourceType.FINVIZ, "https://finviz.com", now=now)

    @pytest.mark.parametrize("href,expected", [
        ("//cdn.example.com/story", "https://cdn.example.com/story"),
        ("/news/apple-1", "https://finviz.com/news/apple-1"),
        ("news/apple-2", "https://finviz.com/news/apple-2"),
        ("https://www.reuters.com/a", "https://www.reuters.com/a"),
        (None, "https://finviz.com/quote.ashx?t=AAPL"),
    ])
    def test_absolute_url(self, page, href, expected):
        assert page.absolute_url(href) == expected
