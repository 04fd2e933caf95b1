"""Tests for per-session memoization."""

import asyncio
import threading

import pytest

from econ_assist.services.session_memo import SessionMemoStore


def _value(v):
    async def run():
        return v

    return run


class TestSessionMemoStore:
    @pytest.fixture
    def memo(self) -> SessionMemoStore:
        return SessionMemoStore()

    def test_default_capacity(self, memo):
        assert memo.max_keys == 200

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            SessionMemoStore(max_keys=-1)

    @pytest.mark.asyncio
    async def test_hit_skips_run(self, memo):
        calls = 0

        async def run():
            nonlocal calls
            calls += 1
            return {"n": calls}

        first = await memo.with_memo("s1", "k", run)
        second = await memo.with_memo("s1", "k", run)
        assert calls == 1
        assert first is second
        assert memo.stats()["hit_count"] == 1
        assert memo.stats()["miss_count"] == 1

    @pytest.mark.asyncio
    async def test_no_session_never_caches(self, memo):
        calls = 0

        async def run():
            nonlocal calls
            calls += 1
            return calls

        assert await memo.with_memo(None, "k", run) == 1
        assert await memo.with_memo("", "k", run) == 2
        assert memo.stats()["sessions"] == 0

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, memo):
        calls = 0

        async def run():
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        for _ in range(2):
            with pytest.raises(RuntimeError):
                await memo.with_memo("s1", "k", run)
        assert calls == 2
        assert memo.size("s1") == 0

    @pytest.mark.asyncio
    async def test_201st_key_evicts_first_inserted(self, memo):
        for i in range(200):
            await memo.with_memo("s1", f"k{i}", _value(i))
        assert memo.size("s1") == 200

        await memo.with_memo("s1", "k200", _value(200))
        keys = memo.keys("s1")
        assert len(keys) == 200
        assert "k0" not in keys
        assert keys[0] == "k1"
        assert keys[-1] == "k200"

    @pytest.mark.asyncio
    async def test_hits_do_not_refresh_position(self):
        memo = SessionMemoStore(max_keys=2)
        await memo.with_memo("s1", "a", _value(1))
        await memo.with_memo("s1", "b", _value(2))
        # Reading "a" must not protect it from FIFO eviction
        assert await memo.with_memo("s1", "a", _value(99)) == 1
        await memo.with_memo("s1", "c", _value(3))
        assert memo.keys("s1") == ["b", "c"]

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, memo):
        await memo.with_memo("s1", "k", _value("one"))
        assert await memo.with_memo("s2", "k", _value("two")) == "two"

    @pytest.mark.asyncio
    async def test_least_recently_used_session_dropped(self):
        memo = SessionMemoStore(max_keys=5, max_sessions=2)
        await memo.with_memo("s1", "k", _value(1))
        await memo.with_memo("s2", "k", _value(2))
        # Reading s1 makes s2 the least recently used session
        await memo.with_memo("s1", "k", _value(0))
        await memo.with_memo("s3", "k", _value(3))

        assert "s1" in memo
        assert "s2" not in memo
        assert "s3" in memo

    @pytest.mark.asyncio
    async def test_clear(self, memo):
        await memo.with_memo("s1", "k", _value(1))
        await memo.with_memo("s2", "k", _value(2))
        memo.clear("s1")
        assert "s1" not in memo
        memo.clear()
        assert memo.stats()["sessions"] == 0

    def test_counters_exact_across_threads(self):
        memo = SessionMemoStore(max_keys=10)
        threads, calls = 8, 500

        async def worker(n):
            for i in range(calls):
                await memo.with_memo(f"s{n % 2}", f"k{i % 20}", _value(i))

        pool = [threading.Thread(target=asyncio.run, args=(worker(n),)) for n in range(threads)]
        for t in pool:
            t.start()
        for t in pool:
            t.join()

        stats = memo.stats()
        assert stats["hit_count"] + stats["miss_count"] == threads * calls
        assert memo.size("s0") <= 10
        assert memo.size("s1") <= 10
