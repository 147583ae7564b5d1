import asyncio
from datetime import timedelta

import pytest

from src.exceptions import DeserializationError, UpstreamUnavailableError
from src.news.services.category_cache import CacheState, CategoryCache, normalize_category


@pytest.fixture
def cache(mock_upstream_client, clock):
    return CategoryCache(mock_upstream_client, clock=clock)


class TestCacheHits:
    @pytest.mark.asyncio
    async def test_fresh_entry_never_calls_upstream(self, cache, mock_upstream_client, sample_articles):
        await cache.get("Tech")
        mock_upstream_client.fetch_articles.reset_mock()

        result = await cache.get("Tech")

        mock_upstream_client.fetch_articles.assert_not_called()
        assert result == sample_articles

    @pytest.mark.asyncio
    async def test_category_key_ignores_case_and_whitespace(self, cache, mock_upstream_client):
        await cache.get("Tech")
        await cache.get("  tech ")
        await cache.get("TECH")

        assert mock_upstream_client.fetch_articles.await_count == 1

    @pytest.mark.asyncio
    async def test_language_and_country_are_part_of_the_key(self, cache, mock_upstream_client):
        await cache.get("Tech", "en", "us")
        await cache.get("Tech", "fr", "fr")

        assert mock_upstream_client.fetch_articles.await_count == 2

    @pytest.mark.asyncio
    async def test_returned_list_is_a_copy(self, cache, sample_articles):
        first = await cache.get("Tech")
        first.clear()

        second = await cache.get("Tech")
        assert second == sample_articles

    def test_key_contains_search_window(self, cache):
        assert cache.build_key(" Tech ") == "news_tech_10d_en_us"
        assert normalize_category("  Sports") == "sports"


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_upstream_call(self, cache, mock_upstream_client, sample_articles):
        release = asyncio.Event()

        async def slow_fetch(*args, **kwargs):
            await release.wait()
            return sample_articles

        mock_upstream_client.fetch_articles.side_effect = slow_fetch

        tasks = [asyncio.create_task(cache.get("Tech")) for _ in range(10)]
        await asyncio.sleep(0.01)
        assert cache.peek("Tech").state == CacheState.LOADING

        release.set()
        results = await asyncio.gather(*tasks)

        assert mock_upstream_client.fetch_articles.await_count == 1
        assert all(result == sample_articles for result in results)

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_negative_result(self, cache, mock_upstream_client):
        release = asyncio.Event()

        async def failing_fetch(*args, **kwargs):
            await release.wait()
            raise UpstreamUnavailableError("provider down")

        mock_upstream_client.fetch_articles.side_effect = failing_fetch

        tasks = [asyncio.create_task(cache.get("Tech")) for _ in range(5)]
        await asyncio.sleep(0.01)
        release.set()
        results = await asyncio.gather(*tasks)

        assert mock_upstream_client.fetch_articles.await_count == 1
        assert results == [[]] * 5

    @pytest.mark.asyncio
    async def test_unrelated_category_is_not_blocked(self, cache, mock_upstream_client, sample_articles):
        release = asyncio.Event()

        async def fetch(categories, **kwargs):
            if categories == ["Tech"]:
                await release.wait()
            return sample_articles

        mock_upstream_client.fetch_articles.side_effect = fetch

        tech_task = asyncio.create_task(cache.get("Tech"))
        await asyncio.sleep(0.01)

        sports = await asyncio.wait_for(cache.get("Sports"), timeout=1)
        assert sports == sample_articles
        assert not tech_task.done()

        release.set()
        assert await tech_task == sample_articles


class TestExpiry:
    @pytest.mark.asyncio
    async def test_success_entry_lives_five_days(self, cache, mock_upstream_client, clock):
        await cache.get("Tech")

        clock.advance(days=4, hours=23)
        await cache.get("Tech")
        assert mock_upstream_client.fetch_articles.await_count == 1
        assert cache.peek("Tech").state == CacheState.READY

        clock.advance(hours=1, minutes=1)
        await cache.get("Tech")
        assert mock_upstream_client.fetch_articles.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_is_negative_cached_for_five_minutes(self, cache, mock_upstream_client, clock, sample_articles):
        mock_upstream_client.fetch_articles.side_effect = [UpstreamUnavailableError("503"), sample_articles]

        assert await cache.get("Tech") == []
        entry = cache.peek("Tech")
        assert entry.state == CacheState.FAILED
        assert entry.expires_at == clock() + timedelta(minutes=5)

        clock.advance(minutes=4)
        assert await cache.get("Tech") == []
        assert mock_upstream_client.fetch_articles.await_count == 1

        clock.advance(minutes=1, seconds=1)
        assert await cache.get("Tech") == sample_articles
        assert mock_upstream_client.fetch_articles.await_count == 2
        assert cache.peek("Tech").state == CacheState.READY

    @pytest.mark.asyncio
    async def test_deserialization_failure_counts_as_upstream_failure(self, cache, mock_upstream_client):
        mock_upstream_client.fetch_articles.side_effect = DeserializationError("bad json", raw_payload="<html>")

        assert await cache.get("Tech") == []
        assert cache.peek("Tech").state == CacheState.FAILED
        assert cache.get_cache_stats()["upstream_failures"] == 1


class TestUnexpectedErrors:
    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_wedge_the_key(self, cache, mock_upstream_client, sample_articles):
        mock_upstream_client.fetch_articles.side_effect = [RuntimeError("boom"), sample_articles]

        with pytest.raises(RuntimeError):
            await cache.get("Tech")
        assert cache.peek("Tech") is None

        assert await cache.get("Tech") == sample_articles

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, cache, mock_upstream_client):
        await cache.get("Tech")
        assert cache.invalidate("Tech") is True
        assert cache.invalidate("Tech") is False

        await cache.get("Tech")
        assert mock_upstream_client.fetch_articles.await_count == 2

    @pytest.mark.asyncio
    async def test_stats_track_hits_and_misses(self, cache):
        await cache.get("Tech")
        await cache.get("Tech")
        await cache.get("Sports")

        stats = cache.get_cache_stats()
        assert stats["cache_hits"] == 1
        assert stats["cache_misses"] == 2
        assert stats["upstream_calls"] == 2
        assert stats["entries"] == 2


class TestReclaim:
    @pytest.mark.asyncio
    async def test_expired_entries_are_dropped_on_next_miss(self, cache, clock):
        for index in range(50):
            await cache.get(f"topic-{index}")
        assert cache.get_cache_stats()["entries"] == 50

        clock.advance(days=6)
        await cache.get("Tech")

        assert cache.get_cache_stats()["entries"] == 1
        assert cache.peek("topic-0") is None

    @pytest.mark.asyncio
    async def test_expired_negative_entries_are_dropped(self, cache, mock_upstream_client, clock):
        mock_upstream_client.fetch_articles.side_effect = UpstreamUnavailableError("down")
        await cache.get("Sports")
        mock_upstream_client.fetch_articles.side_effect = None

        clock.advance(minutes=6)
        await cache.get("Tech")

        assert cache.peek("Sports") is None
        assert cache.get_cache_stats()["entries"] == 1

    @pytest.mark.asyncio
    async def test_fresh_entries_survive_pruning(self, cache, clock):
        await cache.get("Tech")
        clock.advance(days=1)
        await cache.get("Sports")

        assert cache.peek("Tech").state == CacheState.READY
        assert cache.get_cache_stats()["entries"] == 2

    @pytest.mark.asyncio
    async def test_gates_are_released_after_loading(self, cache, mock_upstream_client, sample_articles):
        release = asyncio.Event()

        async def slow_fetch(*args, **kwargs):
            await release.wait()
            return sample_articles

        mock_upstream_client.fetch_articles.side_effect = slow_fetch
        tasks = [asyncio.create_task(cache.get("Tech")) for _ in range(5)]
        await asyncio.sleep(0.01)
        assert cache.get_cache_stats()["gates"] == 1

        release.set()
        await asyncio.gather(*tasks)

        assert cache.get_cache_stats()["gates"] == 0
        for index in range(20):
            await cache.get(f"topic-{index}")
        assert cache.get_cache_stats()["gates"] == 0
