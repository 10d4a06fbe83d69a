"""
Тесты нормализации завершения рекламы (awaited / callback).
"""

import asyncio

import pytest

from ad_rewards.schemas.watch import CompletionResult, WatchOutcome
from ad_rewards.services.provider_adapter import (
    NOT_READY,
    AwaitedProvider,
    CallbackProvider,
    CompletionLatch,
    ProviderRegistry,
)


class TestAwaitedProvider:
    @pytest.mark.asyncio
    async def test_completed_after_minimum(self, monotonic):
        async def show():
            monotonic.advance(6)

        result = await AwaitedProvider("adexora", show, clock=monotonic).attempt(5)

        assert result.outcome == WatchOutcome.COMPLETED
        assert result.elapsed_seconds == 6

    @pytest.mark.asyncio
    async def test_exactly_minimum_completes(self, monotonic):
        async def show():
            monotonic.advance(5)

        result = await AwaitedProvider("adexora", show, clock=monotonic).attempt(5)

        assert result.completed

    @pytest.mark.asyncio
    async def test_short_watch_fails(self, monotonic):
        async def show():
            monotonic.advance(2)

        result = await AwaitedProvider("adexora", show, clock=monotonic).attempt(5)

        assert result.outcome == WatchOutcome.FAILED
        assert "minimum 5 seconds" in result.reason

    @pytest.mark.asyncio
    async def test_provider_error_fails(self, monotonic):
        async def show():
            monotonic.advance(10)
            raise RuntimeError("user skipped")

        result = await AwaitedProvider("adexora", show, clock=monotonic).attempt(5)

        assert result.outcome == WatchOutcome.FAILED
        assert result.reason == "user skipped"

    @pytest.mark.asyncio
    async def test_missing_entry_point(self):
        provider = AwaitedProvider("libtl", None)

        result = await provider.attempt(5)

        assert provider.is_available() is False
        assert result.outcome == WatchOutcome.FAILED
        assert result.reason == NOT_READY


class TestCallbackProvider:
    @pytest.mark.asyncio
    async def test_success_callback_completes(self):
        def launch(on_success, on_failure):
            asyncio.get_running_loop().call_soon(on_success)

        result = await CallbackProvider("adextra", launch, watchdog_floor=1, watchdog_grace=0).attempt(0)

        assert result.outcome == WatchOutcome.COMPLETED

    @pytest.mark.asyncio
    async def test_failure_callback_fails(self):
        def launch(on_success, on_failure):
            asyncio.get_running_loop().call_soon(on_failure)

        result = await CallbackProvider("adextra", launch, watchdog_floor=1, watchdog_grace=0).attempt(0)

        assert result.outcome == WatchOutcome.FAILED
        assert result.reason == "Ad failed to load. Please try again."

    @pytest.mark.asyncio
    async def test_watchdog_times_out_when_no_callback(self):
        signals = {}

        def launch(on_success, on_failure):
            signals["success"] = on_success

        provider = CallbackProvider("adextra", launch, watchdog_floor=0.05, watchdog_grace=0)
        result = await provider.attempt(0)

        assert result.outcome == WatchOutcome.TIMED_OUT

        # a late success after the watchdog changes nothing
        signals["success"]()

    @pytest.mark.asyncio
    async def test_release_runs_after_timeout(self):
        released = []

        def launch(on_success, on_failure):
            return lambda: released.append(True)

        result = await CallbackProvider("adextra", launch, watchdog_floor=0.05, watchdog_grace=0).attempt(0)

        assert result.outcome == WatchOutcome.TIMED_OUT
        assert released == [True]

    @pytest.mark.asyncio
    async def test_first_signal_wins(self):
        def launch(on_success, on_failure):
            on_success()
            on_failure()
            on_success()

        result = await CallbackProvider("adextra", launch, watchdog_floor=1, watchdog_grace=0).attempt(0)

        assert result.outcome == WatchOutcome.COMPLETED

    @pytest.mark.asyncio
    async def test_launch_error_fails(self):
        def launch(on_success, on_failure):
            raise RuntimeError("script blocked")

        result = await CallbackProvider("adextra", launch, watchdog_floor=1, watchdog_grace=0).attempt(0)

        assert result.outcome == WatchOutcome.FAILED
        assert result.reason == "script blocked"

    @pytest.mark.asyncio
    async def test_missing_entry_point(self):
        result = await CallbackProvider("adextra", None).attempt(5)

        assert result.reason == NOT_READY

    def test_watchdog_duration(self):
        provider = CallbackProvider("adextra", None, watchdog_floor=15, watchdog_grace=5)

        assert provider.watchdog_seconds(5) == 15
        assert provider.watchdog_seconds(30) == 35


class TestCompletionLatch:
    @pytest.mark.asyncio
    async def test_resolves_once(self):
        latch = CompletionLatch()
        first = CompletionResult(outcome=WatchOutcome.COMPLETED)
        second = CompletionResult(outcome=WatchOutcome.TIMED_OUT)

        assert latch.resolve(first) is True
        assert latch.resolve(second) is False
        assert latch.resolved
        assert await latch.wait() == first


class TestProviderRegistry:
    def test_lookup(self):
        registry = ProviderRegistry([AwaitedProvider("adexora", None), CallbackProvider("adextra", None)])

        assert "adexora" in registry
        assert registry.get("adextra").provider_id == "adextra"
        assert registry.get("unknown") is None
        assert registry.ids() == ["adexora", "adextra"]
        assert len(registry) == 2
