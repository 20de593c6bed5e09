"""Shared fakes for pipeline tests."""

from __future__ import annotations

import time

from speech_relay.models import (
    CancellationReason,
    SessionStarted,
    SessionStopped,
    SynthesisCompleted,
)


class ScriptedStream:
    """Recognition stream that replays scripted events when started."""

    def __init__(self, log: list, events=(), *, start_error: Exception | None = None) -> None:
        self.log = log
        self.events = list(events)
        self.handlers = []
        self.start_error = start_error
        self.start_calls = 0
        self.stop_calls = 0

    def subscribe(self, handler) -> None:
        self.handlers.append(handler)

    def emit(self, event) -> None:
        for handler in self.handlers:
            handler(event)

    async def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.emit(SessionStarted())
        for event in self.events:
            self.emit(event)

    async def stop(self) -> None:
        self.stop_calls += 1
        self.log.append(("stop",))
        self.emit(SessionStopped())


class FakeTranslator:
    def __init__(self, log: list, mapping: dict[str, str] | None = None, errors=(), delay: float = 0.0) -> None:
        self.log = log
        self.mapping = mapping or {}
        self.errors = list(errors)
        self.delay = delay
        self.calls = 0
        self.closed = False

    def translate(self, text: str, target_language: str) -> str:
        self.calls += 1
        self.log.append(("translate", text, target_language))
        if self.delay:
            time.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        return self.mapping.get(text, text)

    def close(self) -> None:
        self.closed = True


class FakeEngine:
    def __init__(self, log: list, outcome=None) -> None:
        self.log = log
        self.outcome = outcome or SynthesisCompleted()
        self.closed = False

    def speak(self, text: str):
        self.log.append(("speak", text))
        return self.outcome

    def close(self) -> None:
        self.closed = True


class RecordingObserver:
    def __init__(self, log: list) -> None:
        self.log = log

    def on_prompt(self) -> None:
        self.log.append(("on_prompt",))

    def on_partial_text(self, text: str) -> None:
        self.log.append(("on_partial_text", text))

    def on_final_text(self, text: str) -> None:
        self.log.append(("on_final_text", text))

    def on_translated_text(self, text: str) -> None:
        self.log.append(("on_translated_text", text))

    def on_unrecognized(self) -> None:
        self.log.append(("on_unrecognized",))

    def on_recognition_error(self, code: str, details: str) -> None:
        self.log.append(("on_recognition_error", code, details))

    def on_synthesis_error(self, reason: CancellationReason, code=None, details=None) -> None:
        self.log.append(("on_synthesis_error", reason, code, details))

    def on_session_stopped(self) -> None:
        self.log.append(("on_session_stopped",))
