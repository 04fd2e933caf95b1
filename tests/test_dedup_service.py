"""Tests for the composed memo -> coalesce -> retry pipeline."""

import asyncio

import pytest

from econ_assist.models.results import ResultRecord
from econ_assist.services import dedup_service
from econ_assist.services.dedup_service import DedupService
from econ_assist.services.session_memo import SessionMemoStore
from econ_assist.utils import retry


class CountingCall:
    def __init__(self, result=None, delay=0.0):
        self.result = result if result is not None else {"results": []}
        self.delay = delay
        self.queries = []

    async def __call__(self, query, options):
        self.queries.append(query)
        await asyncio.sleep(self.delay)
        return self.result


class TestFetch:
    @pytest.mark.asyncio
    async def test_concurrent_same_session_calls_hit_api_once(self, service):
        call = CountingCall(delay=0.01)
        results = await asyncio.gather(
            *[
                service.fetch("web_search", q, {"search_type": "all"}, call, session_id="s1")
                for q in ("GDP", " gdp ", "Gdp")
            ]
        )
        assert len(call.queries) == 1
        assert all(r is results[0] for r in results)

    @pytest.mark.asyncio
    async def test_memo_answers_repeat_after_completion(self, service):
        call = CountingCall()
        await service.fetch("t", "gdp", {}, call, session_id="s1")
        await service.fetch("t", "GDP", {}, call, session_id="s1")
        assert len(call.queries) == 1
        assert service.memo.size("s1") == 1

    @pytest.mark.asyncio
    async def test_without_session_repeats_call(self, service):
        call = CountingCall()
        await service.fetch("t", "gdp", {}, call)
        await service.fetch("t", "gdp", {}, call)
        assert len(call.queries) == 2

    @pytest.mark.asyncio
    async def test_api_query_sent_but_key_uses_query(self, service):
        call = CountingCall()
        await service.fetch("fred", "GDP", {}, call, session_id="s1", api_query="FRED series: GDP")
        await service.fetch("fred", "gdp", {}, call, session_id="s1", api_query="FRED series: gdp")
        assert call.queries == ["FRED series: GDP"]

    @pytest.mark.asyncio
    async def test_failures_propagate_and_are_not_memoized(self, service, monkeypatch):
        async def no_sleep(_seconds):
            return None

        monkeypatch.setattr(retry, "_backoff_sleep", no_sleep)
        attempts = 0

        async def failing(query, options):
            nonlocal attempts
            attempts += 1
            raise Exception("401 unauthorized")

        for _ in range(2):
            with pytest.raises(Exception, match="401"):
                await service.fetch("t", "gdp", {}, failing, session_id="s1")
        assert attempts == 2
        assert service.memo.size("s1") == 0

    @pytest.mark.asyncio
    async def test_capacity_comes_from_injected_memo(self):
        service = DedupService(memo=SessionMemoStore(max_keys=1))
        call = CountingCall()
        await service.fetch("t", "a", {}, call, session_id="s1")
        await service.fetch("t", "b", {}, call, session_id="s1")
        await service.fetch("t", "a", {}, call, session_id="s1")
        assert call.queries == ["a", "b", "a"]


class TestFinalizeRecords:
    def test_dedupes_within_and_across_calls(self, service):
        a = ResultRecord(id="1", title="a", url="u1")
        a_again = ResultRecord(id="1", title="a2", url="u1b")
        b = ResultRecord(id="2", title="b", url="u2")

        first = service.finalize_records("t1", "req", [a, a_again])
        second = service.finalize_records("t2", "req", [b, a])
        assert first == [a]
        assert second == [b]

    def test_without_request_only_in_response_dedupe(self, service):
        a = ResultRecord(id="1", title="a", url="u1")
        assert service.finalize_records("t", None, [a, a]) == [a]
        assert service.finalize_records("t", None, [a]) == [a]


@pytest.mark.asyncio
async def test_module_level_helpers_use_shared_service():
    shared = dedup_service.get_dedup_service()
    assert dedup_service.get_dedup_service() is shared

    async def run():
        return "value"

    assert await dedup_service.with_session_memo("s1", "k", run) == "value"
    assert shared.memo.size("s1") == 1
    assert await dedup_service.once("t", "q", {}, run) == "value"
    items = ["x", "x"]
    assert dedup_service.dedupe_against_request(None, items, lambda i: i) is items
    assert dedup_service.dedupe_against_request("r", items, lambda i: i) == ["x"]
