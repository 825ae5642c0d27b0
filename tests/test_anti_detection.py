"""
Unit tests for the request shaper
"""

import asyncio
import random

import aiohttp
import pytest

from leadminer.scraping.anti_detection import (
    ACCEPT_LANGUAGES, ALL_USER_AGENTS, RequestShaper, detect_platform,
    get_domain, is_mobile_agent
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


class FakeResponse:
    def __init__(self, status: int):
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeProxySession:
    """Answers proxy probes from a proxy-url -> status/exception map"""

    def __init__(self, outcomes):
        self.outcomes = outcomes

    def get(self, url, proxy=None, **kwargs):
        outcome = self.outcomes[proxy]
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


def make_shaper(clock, sleep, proxies=None, seed=42):
    return RequestShaper(
        proxies=proxies or [],
        requests_per_minute=30,
        rng=random.Random(seed),
        clock=clock,
        sleep=sleep,
    )


class TestHelpers:
    """Test user agent helpers"""

    def test_get_domain(self):
        """Test host extraction"""
        assert get_domain("https://News.Example.com/a?b=c") == "news.example.com"
        assert get_domain("not a url") == ""

    def test_detect_platform(self):
        """Test mobile agents are not mistaken for desktop platforms"""
        iphone = next(agent for agent in ALL_USER_AGENTS if "iPhone" in agent)
        android = next(agent for agent in ALL_USER_AGENTS if "Android" in agent)
        assert detect_platform(iphone) == "iOS"
        assert detect_platform(android) == "Android"
        assert detect_platform(ALL_USER_AGENTS[0]) == "Windows"

    def test_user_agent_pool(self):
        """Test pool covers several browser families and device classes"""
        assert any("Firefox" in agent for agent in ALL_USER_AGENTS)
        assert any("Edg/" in agent for agent in ALL_USER_AGENTS)
        assert any("Version/" in agent and "Chrome" not in agent for agent in ALL_USER_AGENTS)
        assert any(is_mobile_agent(agent) for agent in ALL_USER_AGENTS)


class TestThrottling:
    """Test delay calculation"""

    def test_first_request_is_not_delayed(self, clock, sleep):
        """Test an unseen domain with no prior traffic proceeds immediately"""
        shaper = make_shaper(clock, sleep)
        waited = asyncio.run(shaper.throttle("https://a.com/1"))
        assert waited == 0
        assert sleep.calls == []

    def test_same_domain_within_window_is_inflated(self, clock, sleep):
        """Test a repeat hit within 5 seconds waits 2-3x the base delay"""
        shaper = make_shaper(clock, sleep)
        shaper.reserve_slot("https://a.com/1")
        clock.advance(1)

        wait = shaper.reserve_slot("https://a.com/2")
        # base delay 2s at 30 rpm, factor 2-3, minus 1s elapsed
        assert 3.0 <= wait <= 5.0

    def test_concurrent_reservations_queue(self, clock, sleep):
        """Test two workers never get the same stale delay"""
        shaper = make_shaper(clock, sleep)
        first = shaper.reserve_slot("https://a.com/1")
        second = shaper.reserve_slot("https://a.com/2")
        assert first == 0
        assert second >= 4.0

    def test_rate_limit_penalty(self, clock, sleep):
        """Test HTTP 429 blocks the domain for 30 seconds"""
        shaper = make_shaper(clock, sleep)
        shaper.reserve_slot("https://x.com/a")
        shaper.record_result("https://x.com/a", success=False, status=429)

        clock.advance(5)
        waited = asyncio.run(shaper.throttle("https://x.com/b"))

        assert waited >= 25
        assert sleep.calls == [waited]
        assert shaper.get_stats()["rate_limited_requests"] == 1

    def test_penalty_does_not_affect_other_domains(self, clock, sleep):
        """Test the 429 penalty is per domain"""
        shaper = make_shaper(clock, sleep)
        shaper.reserve_slot("https://x.com/a")
        shaper.record_result("https://x.com/a", success=False, status=429)

        clock.advance(5)
        assert shaper.reserve_slot("https://y.com/a") < 25

    def test_forbidden_is_counted_as_block(self, clock, sleep):
        """Test HTTP 403 is telemetry only"""
        shaper = make_shaper(clock, sleep)
        shaper.prepare_request("https://x.com/a")
        shaper.record_result("https://x.com/a", success=False, status=403)

        stats = shaper.get_stats()
        assert stats["blocked_requests"] == 1
        assert stats["block_rate"] == 100.0
        clock.advance(10)
        assert shaper.reserve_slot("https://x.com/b") < 30


class TestProxies:
    """Test proxy selection and health"""

    def test_unhealthy_proxy_never_selected(self, clock, sleep):
        """Test a proxy at health 40 loses to any proxy above 50"""
        shaper = make_shaper(clock, sleep, proxies=["bad:8080", "good:8080"])
        for _ in range(6):
            shaper.record_result("https://x.com", success=False, proxy_address="bad:8080")

        health = {proxy.address: proxy.health for proxy in shaper.get_proxies()}
        assert health["bad:8080"] == 40

        for i in range(20):
            shaped = shaper.prepare_request(f"https://site{i}.com/")
            assert shaped.proxy.address == "good:8080"

    def test_least_recently_used_among_equals(self, clock, sleep):
        """Test equally healthy proxies rotate"""
        shaper = make_shaper(clock, sleep, proxies=["p1:1", "p2:2"])
        first = shaper.prepare_request("https://a.com").proxy.address
        clock.advance(1)
        second = shaper.prepare_request("https://b.com").proxy.address
        assert {first, second} == {"p1:1", "p2:2"}

    def test_no_proxies_means_direct_connection(self, clock, sleep):
        """Test an empty pool is not an error"""
        shaper = make_shaper(clock, sleep)
        assert shaper.prepare_request("https://a.com").proxy is None

    def test_all_unhealthy_falls_back_to_direct(self, clock, sleep):
        """Test selection never raises when every proxy is excluded"""
        shaper = make_shaper(clock, sleep, proxies=["p1:1"])
        for _ in range(5):
            shaper.record_result("https://a.com", success=False, proxy_address="p1:1")
        assert shaper.prepare_request("https://a.com").proxy is None

    def test_health_stays_within_bounds(self, clock, sleep):
        """Test long success and failure streaks stay in [0, 100]"""
        shaper = make_shaper(clock, sleep, proxies=["p1:1"])
        for _ in range(50):
            shaper.record_result("https://a.com", success=True, proxy_address="p1:1")
        assert shaper.get_proxies()[0].health == 100

        for _ in range(50):
            shaper.record_result("https://a.com", success=False, proxy_address="p1:1")
        proxy = shaper.get_proxies()[0]
        assert proxy.health == 0
        assert proxy.failure_count == 50
        assert proxy.success_count == 50

    def test_health_check(self, clock, sleep):
        """Test probes add 10 on success and remove 20 on failure"""
        shaper = make_shaper(clock, sleep, proxies=["ok:1", "down:2"])
        shaper.record_result("https://a.com", success=False, proxy_address="ok:1")
        session = FakeProxySession({
            "http://ok:1": 200,
            "http://down:2": aiohttp.ClientConnectionError("refused"),
        })

        health = asyncio.run(shaper.health_check_proxies(session))

        assert health == {"ok:1": 100, "down:2": 80}

    def test_returned_proxy_is_a_copy(self, clock, sleep):
        """Test callers cannot mutate the pool"""
        shaper = make_shaper(clock, sleep, proxies=["p1:1"])
        shaped = shaper.prepare_request("https://a.com")
        shaped.proxy.health = 0
        assert shaper.get_proxies()[0].health == 100


class TestSessionsAndHeaders:
    """Test browsing sessions and header shaping"""

    def test_session_reused_per_domain(self, clock, sleep):
        """Test requests to one domain share a session"""
        shaper = make_shaper(clock, sleep)
        first = shaper.prepare_request("https://a.com/1").session
        second = shaper.prepare_request("https://a.com/2").session
        other = shaper.prepare_request("https://b.com/1").session

        assert first.id == second.id
        assert other.id != first.id
        assert second.request_count == 2

    def test_session_retired_after_ten_requests(self, clock, sleep):
        """Test the request cap rotates the session"""
        shaper = make_shaper(clock, sleep)
        ids = {shaper.prepare_request(f"https://a.com/{i}").session.id for i in range(10)}
        assert len(ids) == 1

        eleventh = shaper.prepare_request("https://a.com/10").session
        assert eleventh.id not in ids
        assert eleventh.request_count == 1

    def test_session_retired_after_thirty_minutes(self, clock, sleep):
        """Test the age cap rotates the session"""
        shaper = make_shaper(clock, sleep)
        first = shaper.get_or_create_session("a.com")
        clock.advance(1800)
        assert shaper.get_or_create_session("a.com").id != first.id

    def test_referer_follows_session(self, clock, sleep):
        """Test the previous page becomes the referer"""
        shaper = make_shaper(clock, sleep)
        first = shaper.prepare_request("https://a.com/1")
        second = shaper.prepare_request("https://a.com/2")
        assert first.headers["Referer"] == "https://www.google.com/"
        assert second.headers["Referer"] == "https://a.com/1"

    def test_headers_consistent_with_user_agent(self, clock, sleep):
        """Test client hints derive from the chosen user agent"""
        shaper = make_shaper(clock, sleep, seed=3)
        for i in range(30):
            headers = shaper.prepare_request(f"https://site{i}.com/").headers
            agent = headers["User-Agent"]
            assert agent in ALL_USER_AGENTS
            assert headers["Accept-Language"] in ACCEPT_LANGUAGES
            assert headers["Sec-Ch-Ua-Mobile"] == ("?1" if is_mobile_agent(agent) else "?0")
            assert headers["Sec-Ch-Ua-Platform"] == f'"{detect_platform(agent)}"'

    def test_human_behavior_is_reproducible(self, clock):
        """Test seeded randomness gives identical pauses"""
        pauses = []
        for _ in range(2):
            sleep = RecordingSleep()
            shaper = make_shaper(clock, sleep, seed=11)
            pauses.append([asyncio.run(shaper.simulate_human_behavior()) for _ in range(20)])

        assert pauses[0] == pauses[1]
        assert all(0 <= pause <= 3 for pause in pauses[0])
        assert any(pause > 0 for pause in pauses[0])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
