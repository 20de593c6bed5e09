from __future__ import annotations

import asyncio
import threading
import time

import pytest

from speech_relay.models import CancellationReason, SynthesisCanceled, SynthesisCompleted
from speech_relay.synthesis import SynthesisClient


class StubEngine:
    def __init__(self, outcome=None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.outcome = outcome or SynthesisCompleted()
        self.error = error
        self.delay = delay
        self.spoken: list[str] = []
        self.threads: set[int] = set()
        self.close_calls = 0
        self.close_threads: set[int] = set()

    def speak(self, text: str):
        self.threads.add(threading.get_ident())
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.spoken.append(text)
        return self.outcome

    def close(self) -> None:
        self.close_threads.add(threading.get_ident())
        self.close_calls += 1


def test_speak_runs_every_call_on_the_same_worker_thread() -> None:
    engine = StubEngine()

    async def _run() -> list:
        async with SynthesisClient(engine, voice_name="en-US-GuyNeural") as client:
            return [await client.speak("Hello"), await client.speak("  good   bye ")]

    outcomes = asyncio.run(_run())

    assert outcomes == [SynthesisCompleted(), SynthesisCompleted()]
    assert engine.spoken == ["Hello", "good bye"]
    assert len(engine.threads) == 1
    assert threading.get_ident() not in engine.threads
    assert engine.close_calls == 1
    assert engine.close_threads == engine.threads


def test_engine_failure_becomes_error_cancellation() -> None:
    engine = StubEngine(error=ConnectionError("tls handshake failed"))

    async def _run():
        async with SynthesisClient(engine) as client:
            return await client.speak("Hello")

    outcome = asyncio.run(_run())

    assert outcome == SynthesisCanceled(CancellationReason.ERROR, "ConnectionError", "tls handshake failed")


def test_engine_cancellation_is_passed_through() -> None:
    canceled = SynthesisCanceled(CancellationReason.ERROR, "AuthenticationFailure", "401")
    engine = StubEngine(outcome=canceled)

    async def _run():
        async with SynthesisClient(engine) as client:
            return await client.speak("Hello")

    assert asyncio.run(_run()) is canceled


def test_timeout_becomes_error_cancellation() -> None:
    engine = StubEngine(delay=0.2)

    async def _run():
        async with SynthesisClient(engine, timeout_seconds=0.01) as client:
            return await client.speak("Hello")

    outcome = asyncio.run(_run())

    assert isinstance(outcome, SynthesisCanceled)
    assert outcome.reason is CancellationReason.ERROR
    assert outcome.error_code == "Timeout"


def test_blank_text_is_not_sent_to_engine() -> None:
    engine = StubEngine()

    async def _run():
        async with SynthesisClient(engine) as client:
            return await client.speak("   ")

    assert asyncio.run(_run()) == SynthesisCompleted()
    assert engine.spoken == []


def test_close_is_idempotent_and_blocks_further_use() -> None:
    engine = StubEngine()
    client = SynthesisClient(engine)

    client.close()
    client.close()

    assert client.closed is True
    assert engine.close_calls == 1
    with pytest.raises(RuntimeError, match="closed"):
        asyncio.run(client.speak("Hello"))


def test_cancellation_details_require_error_reason() -> None:
    with pytest.raises(ValueError):
        SynthesisCanceled(CancellationReason.END_OF_STREAM, "Code", "details")

    assert SynthesisCanceled(CancellationReason.CANCELLED_BY_USER).error_code is None


def test_close_waits_for_a_timed_out_render_before_releasing_the_engine() -> None:
    engine = StubEngine(delay=0.2)
    released = threading.Event()
    original_close = engine.close

    def _close() -> None:
        original_close()
        released.set()

    engine.close = _close

    async def _run():
        async with SynthesisClient(engine, timeout_seconds=0.01) as client:
            return await client.speak("Hello")

    outcome = asyncio.run(_run())

    assert outcome.error_code == "Timeout"
    assert released.wait(timeout=2)
    assert engine.spoken == ["Hello"]
    assert engine.close_threads == engine.threads
