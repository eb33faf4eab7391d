import asyncio
import threading
import pytest

from langchain_core.language_models.fake_chat_models import FakeListChatModel

from tickerbrief.agent.llm import GenerativeClient, message_text
from tickerbrief.agent.rate_limiter import RateLimiter
from tickerbrief.summary.generator import SummaryGenerator
from tickerbrief.summary.selector import ArticleSelector


class FakeClock:
    """Monotonic clock whose sleeps advance time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    async def async_sleep(self, seconds):
        self.sleep(seconds)


class LockedClock(FakeClock):
    """FakeClock that can be advanced from several threads."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self.now

    def sleep(self, seconds):
        with self._lock:
            self.sleeps.append(seconds)
            self.now += seconds


def assert_rolling_limit(start_times, max_requests, window_seconds):
    for i in range(len(start_times) - max_requests):
        assert start_times[i + max_requests] - start_times[i] >= window_seconds


class TestRateLimiter:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def limiter(self, clock):
        return RateLimiter(
            max_requests=15,
            window_seconds=60,
            clock=clock,
            sleep=clock.sleep,
            async_sleep=clock.async_sleep,
        )

    def test_never_more_than_limit_in_rolling_window(self, limiter, clock):
        start_times = []
        for _ in range(40):
            assert limiter.acquire()
            start_times.append(clock())

        assert_rolling_limit(start_times, 15, 60)
        assert start_times[14] == 0
        assert start_times[15] == 60

    def test_spread_out_calls_do_not_wait(self, limiter, clock):
        for _ in range(30):
            limiter.acquire()
            clock.now += 4

        assert clock.sleeps == []

    def test_non_blocking_acquire(self, limiter, clock):
        for _ in range(15):
            assert limiter.acquire(blocking=False)

        assert not limiter.acquire(blocking=False)
        assert clock.sleeps == []

    def test_window_state(self, limiter, clock):
        assert limiter.window_start is None
        assert limiter.count == 0

        clock.now = 10
        limiter.acquire()
        clock.now = 20
        limiter.acquire()

        assert limiter.window_start == 10
        assert limiter.count == 2

        clock.now = 71
        assert limiter.window_start == 20
        assert limiter.count == 1

    def test_threads_share_one_budget(self, limiter, clock):
        barrier = threading.Barrier(8)
        granted = []

        def worker():
            barrier.wait()
            granted.append(sum(limiter.acquire(blocking=False) for _ in range(10)))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(granted) == 15
        assert limiter.count == 15

        clock.now = 60
        assert limiter.count == 0

    def test_blocking_threads_respect_rolling_limit(self):
        clock = LockedClock()
        limiter = RateLimiter(max_requests=15, window_seconds=60, clock=clock, sleep=clock.sleep)
        start_times = []
        lock = threading.Lock()

        def worker():
            for _ in range(5):
                limiter.acquire()
                with lock:
                    start_times.append(clock())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(start_times) == 40
        assert clock() >= 120
        assert limiter.count <= 15

    @pytest.mark.asyncio
    async def test_async_acquire_suspends_instead_of_failing(self, limiter, clock):
        start_times = []
        for _ in range(20):
            assert await limiter.aacquire()
            start_times.append(clock())

        assert_rolling_limit(start_times, 15, 60)
        assert clock.sleeps == [60]

    @pytest.mark.asyncio
    async def test_concurrent_async_callers_share_budget(self, limiter, clock):
        start_times = []

        async def call():
            await limiter.aacquire()
            start_times.append(clock())

        await asyncio.gather(*(call() for _ in range(45)))

        start_times.sort()
        assert_rolling_limit(start_times, 15, 60)

    @pytest.mark.asyncio
    async def test_selector_and_generator_draw_from_one_budget(self, limiter, make_article):
        client = GenerativeClient(
            llm=FakeListChatModel(responses=["[1, 2, 3]", '{"summary": "AAPL steady", "whatChangedToday": "Little"}']),
            rate_limiter=limiter,
        )
        articles = [make_article(f"AAPL headline number {i}") for i in range(10)]

        selected = await ArticleSelector(client).select(articles)
        await SummaryGenerator(client).generate("AAPL", selected)

        assert limiter.count == 2


class TestGenerativeClient:

    def test_message_text_flattens_content_parts(self):
        class Message:
            content = [{"type": "text", "text": "Hello "}, "world", {"type": "image_url", "image_url": "x"}]

        assert message_text(Message()) == "Hello world"
        assert message_text("plain") == "plain"

    @pytest.mark.asyncio
    async def test_complete_returns_raw_text(self):
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        client = GenerativeClient(llm=FakeListChatModel(responses=["first", "second"]), rate_limiter=limiter)

        assert await client.complete("prompt one") == "first"
        assert await client.complete("prompt two") == "second"
        assert limiter.count == 2
